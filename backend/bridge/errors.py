"""
Domain exceptions for the Bridge backend.

Each exception carries the HTTP status and machine-readable code the API
returns for it. Services raise these; `core.middleware` renders them as
`{error, message, code, ...details}` JSON.
"""
from typing import Any, Dict, Optional

from fastapi import status

from bridge.enums import PipelineStage


class BridgeError(Exception):
    """
    Base exception for all Bridge domain errors.

    Attributes:
        http_status: HTTP status code for response
        error_code: Machine-readable error code
        error: Short human-readable title
        message: User-facing message
        details: Extra fields merged into the JSON body
    """
    http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"
    error: str = "Internal error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.error
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        body = {"error": self.error, "message": self.message, "code": self.error_code}
        body.update(self.details)
        return body


class UploadValidationError(BridgeError):
    """Raised before any storage write when an upload is rejected"""
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_UPLOAD"
    error = "Invalid upload"


class RequestValidationError(BridgeError):
    """Raised when a request body field is missing or out of range"""
    http_status = status.HTTP_400_BAD_REQUEST
    error_code = "INVALID_REQUEST"
    error = "Invalid request"


class QuotaExceededError(BridgeError):
    """Raised when the user's translation count has reached their limit"""
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "TRANSLATION_LIMIT_EXCEEDED"
    error = "Translation limit exceeded"

    def __init__(self, limit: int, count: int, plan: str, upgrade_url: str = "/settings/billing"):
        message = (
            f"You have used {count} of {limit} translations on the {plan} plan. "
            "Upgrade your plan to translate more documents."
        )
        super().__init__(
            message,
            details={"limit": limit, "count": count, "plan": plan, "upgradeUrl": upgrade_url},
        )


class PipelineError(BridgeError):
    """Raised when a translation pipeline stage fails; no Result is written"""
    http_status = status.HTTP_502_BAD_GATEWAY
    error_code = "TRANSLATION_FAILED"
    error = "Translation failed"

    def __init__(self, message: str, stage: PipelineStage, details: Optional[Dict[str, Any]] = None):
        self.stage = stage
        merged = {"stage": stage.value}
        merged.update(details or {})
        super().__init__(message, details=merged)


class ExtractionError(PipelineError):
    """Raised when a PDF yields no usable text (image-only or unreadable)"""
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "EXTRACTION_FAILED"
    error = "Could not read document"

    def __init__(self, message: str):
        super().__init__(message, stage=PipelineStage.EXTRACTING)


class MalformedResponseError(PipelineError):
    """Raised when the generation service response is missing required fields"""
    error_code = "MALFORMED_RESPONSE"
    error = "Translation service returned an invalid response"

    def __init__(self, message: str, missing_fields=None):
        details = {"missing_fields": list(missing_fields)} if missing_fields else None
        super().__init__(message, stage=PipelineStage.VALIDATING, details=details)


class ResultConflictError(BridgeError):
    """Raised when a document already has a Result"""
    http_status = status.HTTP_409_CONFLICT
    error_code = "RESULT_ALREADY_EXISTS"
    error = "Document already translated"


class NotFoundError(BridgeError):
    http_status = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"
    error = "Not found"


class ForbiddenError(BridgeError):
    http_status = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"
    error = "Forbidden"


class ExportNotImplementedError(BridgeError):
    http_status = status.HTTP_501_NOT_IMPLEMENTED
    error_code = "EXPORT_NOT_IMPLEMENTED"
    error = "Export format not implemented"


class ConfigurationError(BridgeError):
    """Raised at the call site when a required provider setting is missing"""
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = "NOT_CONFIGURED"
    error = "Service not configured"

    def __init__(self, setting_name: str, purpose: str):
        super().__init__(f"{setting_name} is not set; {purpose} is unavailable")
        self.setting_name = setting_name
