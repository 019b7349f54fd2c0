"""
Centralized ID generation utilities.

All IDs in the system should use these functions for consistency.
"""
import secrets
import uuid


def generate_id() -> str:
    """
    Generate a unique ID for database records.

    Returns:
        36-character UUID string (e.g., "550e8400-e29b-41d4-a716-446655440000")
    """
    return str(uuid.uuid4())


def generate_blob_name(extension: str = "") -> str:
    """
    Generate a collision-resistant storage filename.

    Args:
        extension: Original file extension including the dot (".pdf"), may be empty

    Returns:
        21-character URL-safe random id followed by the extension
    """
    return f"{secrets.token_urlsafe(16)[:21]}{extension.lower()}"


def generate_share_token() -> str:
    """
    Generate a bearer token for public share links.

    32 random bytes, URL-safe base64 encoded (43 characters).
    """
    return secrets.token_urlsafe(32)
