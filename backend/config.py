import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent / ".env")


def _require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value


def _get_list(name: str, fallback: str = "") -> List[str]:
    raw_value = os.getenv(name, fallback)
    if not raw_value:
        return []
    return [item.strip() for item in raw_value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    encryption_key: str = _require_env("ENCRYPTION_KEY")
    storage_backend: str = os.getenv("STORAGE_BACKEND", "supabase")
    supabase_url: str | None = os.getenv("SUPABASE_URL")
    supabase_service_role_key: str | None = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
    bundles_seed_file: str | None = os.getenv("BUNDLES_SEED_FILE")
    paystack_secret_key: str | None = os.getenv("PAYSTACK_SECRET_KEY")
    paystack_base_url: str = os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co")
    currency: str = os.getenv("CURRENCY", "GHS")
    public_base_url: str | None = os.getenv("PUBLIC_BASE_URL")
    admin_password_hash: str | None = os.getenv("ADMIN_PASSWORD_HASH")
    user_token_ttl_seconds: int = int(os.getenv("USER_TOKEN_TTL_SECONDS", str(7 * 24 * 3600)))
    admin_token_ttl_seconds: int = int(os.getenv("ADMIN_TOKEN_TTL_SECONDS", str(24 * 3600)))
    smtp_host: str = os.getenv("SMTP_HOST", "smtp.gmail.com")
    smtp_port: int = int(os.getenv("SMTP_PORT", "465"))
    smtp_user: str | None = os.getenv("SMTP_USER")
    smtp_password: str | None = os.getenv("SMTP_PASSWORD")
    admin_email: str | None = os.getenv("ADMIN_EMAIL")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    allowed_origins: List[str] = field(
        default_factory=lambda: _get_list("ALLOWED_ORIGINS", "*")
    )

    @property
    def mail_enabled(self) -> bool:
        return bool(self.smtp_user and self.smtp_password)


settings = Settings()
