# bridge/core/middleware.py
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from bridge.config import settings
from bridge.errors import BridgeError
from bridge.utils.logging import logger


async def bridge_error_handler(request: Request, exc: BridgeError) -> JSONResponse:
    """Render a domain error as `{error, message, code, ...details}`."""
    extra = {"path": request.url.path, "code": exc.error_code, "status": exc.http_status}
    if exc.http_status >= 500:
        logger.error(f"Request failed: {exc.message}", extra=extra)
    else:
        logger.warning(f"Request rejected: {exc.message}", extra=extra)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


def setup_middleware(app: FastAPI):
    """Configure all middleware"""
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(BridgeError, bridge_error_handler)
