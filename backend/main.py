# backend/main.py
import os

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from bridge.api import admin, checkout, documents, health, share, translate, upload, users, webhooks
from bridge.config import settings
from bridge.core.lifespan import lifespan
from bridge.core.middleware import setup_middleware


app = FastAPI(
    title="Bridge API",
    version="1.0.0",
    description="Translate and summarize documents for families navigating institutions",
    lifespan=lifespan
)

# Setup middleware
setup_middleware(app)

# Register API routes
app.include_router(upload.router, tags=["upload"])
app.include_router(translate.router, tags=["translation"])
app.include_router(documents.router, tags=["documents"])
app.include_router(share.router, tags=["share"])
app.include_router(users.router, tags=["users"])
app.include_router(checkout.router, tags=["billing"])
app.include_router(webhooks.router)
app.include_router(admin.router)
app.include_router(health.router, tags=["health"])  # also /metrics for Prometheus

# Serve locally stored uploads when running without R2
if settings.storage_backend == "local" or not settings.r2_configured:
    settings.local_storage_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/files", StaticFiles(directory=settings.local_storage_dir), name="files")

# ---------- Run ----------

if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=port,
        log_level="info"
    )
