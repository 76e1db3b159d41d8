import logging
import os
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "change-me"
DEFAULT_CORS_ORIGINS = [
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
    "http://127.0.0.1:3000",
]


class Settings:
    """Centralised application configuration sourced from environment variables."""

    def __init__(self) -> None:
        load_dotenv()
        self.environment = os.getenv("ENVIRONMENT", "development")
        self.database_path = Path(os.getenv("DATABASE_PATH", "data/bulkbuy.db")).resolve()
        self.jwt_secret = os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET)
        self.jwt_expire_days = self._get_int("JWT_EXPIRE_DAYS", default=30)
        self.otp_expire_minutes = self._get_int("OTP_EXPIRE_MINUTES", default=10)
        self.presence_sweep_seconds = self._get_int("PRESENCE_SWEEP_SECONDS", default=60)
        self.presence_idle_minutes = self._get_int("PRESENCE_IDLE_MINUTES", default=5)
        self.background_workers = self._get_int("BACKGROUND_WORKERS", default=1)
        self.bcrypt_rounds = self._get_int("BCRYPT_ROUNDS", default=12)
        self.smtp_host = os.getenv("SMTP_HOST")
        self.smtp_port = self._get_int("SMTP_PORT", default=587)
        self.smtp_username = os.getenv("SMTP_USERNAME")
        self.smtp_password = os.getenv("SMTP_PASSWORD")
        self.from_email = os.getenv("FROM_EMAIL")
        self.cors_allow_origins = self._get_list("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ORIGINS)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    def warn_insecure_defaults(self) -> None:
        if self.jwt_secret == DEFAULT_JWT_SECRET:
            logger.warning("JWT_SECRET is not set; using an insecure default signing key.")

    @staticmethod
    def _get_list(key: str, default: List[str]) -> List[str]:
        value = os.getenv(key)
        if not value:
            return list(default)
        return [item.strip() for item in value.split(",") if item.strip()]

    @staticmethod
    def _get_int(key: str, default: Optional[int] = None) -> int:
        value = os.getenv(key)
        if value is None:
            if default is None:
                raise RuntimeError(f"Missing required environment variable: {key}")
            return default
        try:
            return int(value)
        except ValueError as exc:
            raise RuntimeError(f"Environment variable {key} must be an integer") from exc
