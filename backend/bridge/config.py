# backend/bridge/config.py
from pydantic_settings import BaseSettings
from pathlib import Path
from pydantic import field_validator

class Settings(BaseSettings):
    """Application settings from environment variables"""

    # API Keys
    anthropic_api_key: str = ""
    admin_api_key: str = ""  # x-admin-api-key for operator endpoints

    # Authentication (Clerk)
    clerk_secret_key: str = ""  # Get from https://dashboard.clerk.com
    clerk_webhook_secret: str = ""  # Svix signing secret for /api/webhooks/clerk

    # Database
    database_url: str = ""

    # LLM Settings (structured translation + summary)
    llm_model: str = "claude-sonnet-4-5-20250929"
    llm_max_tokens: int = 8000
    llm_temperature: float = 0.3
    llm_max_input_chars: int = 130000
    llm_timeout_seconds: int = 120

    # Billing (Stripe)
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_price_starter: str = ""
    stripe_price_pro: str = ""
    stripe_price_enterprise: str = ""
    stripe_trial_days: int = 14

    # Email (Resend)
    resend_api_key: str = ""
    resend_api_url: str = "https://api.resend.com/emails"
    email_from: str = "Bridge <onboarding@resend.dev>"

    # Public URLs
    app_url: str = "http://localhost:3000"
    marketing_site_url: str = "https://bridge.com"

    # Upload limits
    max_upload_bytes: int = 10 * 1024 * 1024  # 10 MiB
    min_extracted_chars: int = 20  # below this a PDF is treated as image-only

    # Sharing
    share_default_ttl_hours: int = 48
    share_max_ttl_hours: int = 720

    # ===== STORAGE SETTINGS =====
    # "r2" for Cloudflare R2 (S3-compatible), "local" for filesystem
    storage_backend: str = "r2"
    r2_access_key_id: str = ""
    r2_secret_access_key: str = ""
    r2_bucket: str = ""
    r2_endpoint_url: str = ""  # e.g. https://<accountid>.r2.cloudflarestorage.com
    r2_public_base_url: str = ""  # public bucket domain used to build durable URLs
    local_storage_dir: Path = Path("uploads")
    local_storage_base_url: str = "http://localhost:8000/files"
    storage_fetch_timeout_seconds: int = 30

    # Logging
    log_dir: Path = Path("logs")
    log_level: str = "INFO"
    log_to_file: bool = True
    service_name: str = "bridge-backend"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]
    @field_validator("cors_origins", mode="before")
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            import json
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [v]
        return v

    # Environment
    environment: str = "development"  # development, production
    mock_mode: bool = False

    class Config:
        # backend/.env, so scripts run from the repo root still load variables
        env_file = Path(__file__).resolve().parent.parent / ".env"
        case_sensitive = False
        extra = "ignore"  # Allow future env vars without breaking startup

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    @property
    def r2_configured(self) -> bool:
        return bool(
            self.r2_access_key_id and self.r2_secret_access_key
            and self.r2_bucket and self.r2_endpoint_url
        )

    @property
    def price_ids(self) -> dict[str, str]:
        """Configured Stripe price id per paid plan name."""
        return {
            "starter": self.stripe_price_starter,
            "pro": self.stripe_price_pro,
            "enterprise": self.stripe_price_enterprise,
        }

# Global settings instance
settings = Settings()
