# backend/bridge/models.py
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List

from bridge.enums import Domain, ExportFormat, Plan, Role


# ---------- Generation output ----------
class TranslationSummary(BaseModel):
    purpose: str = Field(description="The main purpose of the document in plain language")
    actions: List[str] = Field(default_factory=list, description="Actions the recipient needs to take")
    due_dates: Optional[List[str]] = Field(default=None, description="Important dates and deadlines mentioned")
    costs: Optional[List[str]] = Field(default=None, description="Costs, fees, or financial obligations")


class TranslationOutput(BaseModel):
    """Schema the generation service is constrained to."""
    translation_html: str = Field(
        description="Translated document as semantic HTML, preserving headings, lists and tables"
    )
    summary: TranslationSummary
    detected_language: str = Field(
        description='ISO 639-1 code of the source document (e.g. "vi", "es", "zh")'
    )


# ---------- Request bodies ----------
class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class TranslateRequest(CamelModel):
    file_url: str = Field(alias="fileUrl")
    filename: str
    mime_type: str = Field(alias="mimeType")
    file_size: int = Field(alias="fileSize", ge=0)
    target_lang: str = Field(default="en", alias="targetLang", min_length=2, max_length=16)
    domain: Optional[Domain] = None


class ExportRequest(BaseModel):
    format: ExportFormat = ExportFormat.PDF


class ShareRequest(CamelModel):
    doc_id: str = Field(alias="docId")
    ttl: Optional[int] = Field(default=None, description="Lifetime in hours")
    can_download: bool = Field(default=True, alias="canDownload")


class CheckoutRequest(CamelModel):
    email: str = Field(pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
    price_id: Optional[str] = Field(default=None, alias="priceId")
    return_url: Optional[str] = Field(default=None, alias="returnUrl")


class AdminPlanUpdate(BaseModel):
    plan: Plan
    role: Optional[Role] = None
