from __future__ import annotations

import os
from pathlib import Path
from typing import List


class Settings:
    """Centralized configuration for the Bob diet coach backend."""

    def __init__(self) -> None:
        base_dir = Path(__file__).resolve().parent
        repo_root = base_dir.parent
        data_root_default = repo_root / "data"

        self.data_root: Path = Path(
            os.environ.get("BOB_DATA_ROOT") or data_root_default
        ).expanduser()
        self.app_db_path: Path = Path(
            os.environ.get("BOB_DB_PATH") or (self.data_root / "bob.db")
        ).expanduser()

        # ---- Auth ----
        # In production you MUST set BOB_JWT_SECRET. We fall back to a dev secret to keep local
        # demos easy, but this is not safe for public deployments.
        self.jwt_secret: str = os.environ.get("BOB_JWT_SECRET") or "dev-secret-change-me"
        self.token_ttl_days: int = int(os.environ.get("BOB_TOKEN_TTL_DAYS") or "7")
        self.cookie_secure: bool = (os.environ.get("BOB_COOKIE_SECURE") or "").strip() in {"1", "true", "True"}

        # ---- LLM (Anthropic Messages API) ----
        self.llm_api_key: str | None = os.environ.get("ANTHROPIC_API_KEY") or None
        self.llm_base_url: str = os.environ.get("BOB_LLM_BASE_URL", "https://api.anthropic.com")
        self.llm_model: str = os.environ.get("BOB_LLM_MODEL", "claude-sonnet-4-20250514")
        self.vision_model: str = os.environ.get("BOB_VISION_MODEL") or self.llm_model
        self.llm_timeout: float = float(os.environ.get("BOB_LLM_TIMEOUT", "60"))
        self.llm_max_tokens: int = int(os.environ.get("BOB_LLM_MAX_TOKENS", "1024"))
        self.agent_max_steps: int = int(os.environ.get("BOB_AGENT_MAX_STEPS", "5"))

        # ---- Business rules ----
        self.confirmation_ttl_min: int = int(os.environ.get("BOB_CONFIRMATION_TTL_MIN") or "5")
        self.bubble_ttl_days: int = int(os.environ.get("BOB_BUBBLE_TTL_DAYS") or "7")
        self.session_cache_ttl_sec: int = int(os.environ.get("BOB_SESSION_CACHE_TTL_SEC") or "300")
        self.free_chat_limit: int = int(os.environ.get("BOB_FREE_CHAT_LIMIT") or "5")
        self.free_photo_limit: int = int(os.environ.get("BOB_FREE_PHOTO_LIMIT") or "2")
        self.max_image_bytes: int = int(os.environ.get("BOB_MAX_IMAGE_BYTES") or "1500000")

        # ---- Background maintenance (0 disables the loop) ----
        self.maintenance_interval_sec: float = float(os.environ.get("BOB_MAINTENANCE_INTERVAL_SEC") or "60")

        # ---- Observability ----
        self.log_level: str = (os.environ.get("BOB_LOG_LEVEL") or "INFO").upper()
        self.sentry_dsn: str | None = os.environ.get("SENTRY_DSN") or None
        self.sentry_environment: str = os.environ.get("SENTRY_ENVIRONMENT") or "development"

        cors = os.environ.get("BOB_CORS_ORIGINS", "*")
        if cors.strip() == "*":
            self.cors_origins: List[str] = ["*"]
        else:
            self.cors_origins = [
                origin.strip() for origin in cors.split(",") if origin.strip()
            ]


settings = Settings()
