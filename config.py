"""Process configuration loaded once from the environment (.env supported)."""

from __future__ import annotations

from dataclasses import dataclass
import logging
import os

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_CONTACT_EMAIL = "no-reply@example.com"
_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(slots=True, frozen=True)
class Settings:
    contact_email: str
    vapid_public_key: str | None
    vapid_private_key: str | None
    store_url: str | None = None
    store_service_key: str | None = None
    db_dsn: str | None = None
    host: str = "0.0.0.0"
    port: int = 8080
    verify_signatures: bool = True
    verify_confirmations: bool = False
    cert_host_pattern: str | None = None
    cert_require_https: bool = False
    http_timeout: float = 10.0
    push_timeout: float = 10.0
    push_max_concurrency: int = 0
    log_level: str = "INFO"

    @property
    def vapid_subject(self) -> str:
        return f"mailto:{self.contact_email}"

    def validate(self) -> None:
        if not self.vapid_public_key or not self.vapid_private_key:
            raise RuntimeError("VAPID_PUBLIC_KEY / VAPID_PRIVATE_KEY must be set")
        if not self.db_dsn and not (self.store_url and self.store_service_key):
            raise RuntimeError(
                "Subscription store is not configured. Set SUPABASE_URL/SUPABASE_SERVICE_ROLE_KEY or DB_DSN in .env"
            )


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUTHY


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, "") or default)


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, "") or default)


def load_settings() -> Settings:
    load_dotenv()
    settings = Settings(
        contact_email=os.getenv("NOTIFICATIONS_FROM_EMAIL") or DEFAULT_CONTACT_EMAIL,
        vapid_public_key=os.getenv("VAPID_PUBLIC_KEY"),
        vapid_private_key=os.getenv("VAPID_PRIVATE_KEY"),
        store_url=os.getenv("SUPABASE_URL"),
        store_service_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
        db_dsn=os.getenv("DB_DSN") or None,
        host=os.getenv("WEBHOOK_HOST", "0.0.0.0"),
        port=_env_int("WEBHOOK_PORT", 8080),
        verify_signatures=_env_bool("SNS_VERIFY_SIGNATURES", True),
        verify_confirmations=_env_bool("SNS_VERIFY_CONFIRMATIONS", False),
        cert_host_pattern=os.getenv("SNS_CERT_HOST_PATTERN") or None,
        cert_require_https=_env_bool("SNS_CERT_REQUIRE_HTTPS", False),
        http_timeout=_env_float("HTTP_TIMEOUT_SECONDS", 10.0),
        push_timeout=_env_float("PUSH_TIMEOUT_SECONDS", 10.0),
        push_max_concurrency=_env_int("PUSH_MAX_CONCURRENCY", 0),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )
    if not settings.verify_signatures:
        logger.warning("SNS signature verification is DISABLED (SNS_VERIFY_SIGNATURES)")
    return settings


__all__ = ["DEFAULT_CONTACT_EMAIL", "Settings", "load_settings"]
