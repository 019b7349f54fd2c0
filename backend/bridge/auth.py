# backend/bridge/auth.py
"""Clerk authentication dependencies"""
import secrets
from functools import lru_cache
from typing import Optional

import httpx
from clerk_backend_api import Clerk
from clerk_backend_api.security.types import AuthenticateRequestOptions
from fastapi import Depends, Header, HTTPException, Request

from bridge.config import settings
from bridge.db_models_users import User
from bridge.errors import ConfigurationError
from bridge.repositories.user_repository import UserRepository
from bridge.utils.logging import logger


@lru_cache
def get_clerk_client() -> Clerk:
    if not settings.clerk_secret_key:
        raise ConfigurationError("CLERK_SECRET_KEY", "authentication")
    return Clerk(bearer_auth=settings.clerk_secret_key)


def get_user_repository() -> UserRepository:
    return UserRepository()


def get_current_user_id(request: Request) -> str:
    """
    Extract and verify Clerk session token from request.
    Returns the Clerk user ID.
    """
    auth_header = request.headers.get("authorization")

    if not auth_header or not auth_header.startswith("Bearer "):
        logger.info("Missing or invalid authorization header", extra={"path": request.url.path})
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")

    clerk = get_clerk_client()
    try:
        # Convert FastAPI request to httpx request for Clerk SDK
        httpx_request = httpx.Request(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers)
        )

        # Empty options accepts session tokens by default (not OAuth tokens)
        request_state = clerk.authenticate_request(
            httpx_request,
            AuthenticateRequestOptions()
        )

        if not request_state.is_signed_in:
            logger.info("Session token rejected", extra={"reason": str(request_state.reason)})
            raise HTTPException(status_code=401, detail="Not signed in")

        # The user ID is in the 'sub' field of the JWT payload
        user_id = request_state.payload.get("sub") if request_state.payload else None

        if not user_id:
            logger.warning("Token payload has no subject")
            raise HTTPException(status_code=401, detail="Could not extract user_id from token")
        return user_id

    except HTTPException:
        raise
    except Exception as e:
        logger.warning(f"Token verification failed: {e}")
        raise HTTPException(status_code=401, detail="Invalid session token")


def _primary_email(clerk_user) -> Optional[str]:
    addresses = clerk_user.email_addresses or []
    for address in addresses:
        if address.id == clerk_user.primary_email_address_id:
            return address.email_address
    return addresses[0].email_address if addresses else None


def get_current_user(
    user_id: str = Depends(get_current_user_id),
    user_repo: UserRepository = Depends(get_user_repository),
) -> User:
    """
    Get or create user from database using repository pattern.
    If user doesn't exist (first login), create them on the free plan.
    """
    user = user_repo.get_user(user_id)

    if not user:
        # First sign-in: fetch profile details from Clerk
        clerk_user = get_clerk_client().users.get(user_id=user_id)
        email = _primary_email(clerk_user) or f"{user_id}@unknown.com"
        name = " ".join(part for part in (clerk_user.first_name, clerk_user.last_name) if part) or None
        user = user_repo.get_or_create_user(user_id=user_id, email=email, name=name)

    if not user:
        logger.error("Failed to get or create user", extra={"user_id": user_id})
        raise HTTPException(status_code=500, detail="Failed to authenticate user")

    if user.banned:
        logger.warning("Banned user rejected", extra={"user_id": user_id})
        raise HTTPException(status_code=403, detail="Account disabled")

    return user


def require_admin_api_key(x_admin_api_key: Optional[str] = Header(default=None)) -> None:
    """Operator endpoints are guarded by a shared key rather than a session"""
    if not settings.admin_api_key:
        raise ConfigurationError("ADMIN_API_KEY", "admin endpoints")
    if not x_admin_api_key or not secrets.compare_digest(x_admin_api_key, settings.admin_api_key):
        raise HTTPException(status_code=401, detail="Invalid admin API key")
