# app/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Storage ───────────────────────────────────────────────────────────
    STORAGE_BACKEND: str = "memory"     # memory | sql
    DATABASE_URL: str = "sqlite:///./library_occupancy.db"

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 5000
    WS_PATH: str = "/ws"

    # ── Security ──────────────────────────────────────────────────────────
    API_KEY: Optional[str] = None   # Set in .env to protect admin writes
    INSTITUTIONAL_EMAIL_DOMAIN: str = "@student.chula.ac.th"

    # ── Library ───────────────────────────────────────────────────────────
    TOTAL_CAPACITY: int = 400
    SEED_DEMO_DATA: bool = True

    # ── Live updates ──────────────────────────────────────────────────────
    WS_SEND_QUEUE_SIZE: int = 256          # Per-connection backlog before drop
    HYGIENE_INTERVAL_SECONDS: int = 0      # 0 disables the expiry sweep

    # ── Client sync ───────────────────────────────────────────────────────
    CLIENT_RECONNECT_SECONDS: float = 5.0
    CLIENT_POLL_SECONDS: float = 60.0

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None   # Defaults to <repo>/logs

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
