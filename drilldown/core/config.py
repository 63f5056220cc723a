"""
Centralised application settings loaded from environment / .env file.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseSettings):
    # ── Postgres ─────────────────────────────────────────
    postgres_user: str = "drilldown"
    postgres_password: str = "drilldown_pw"
    postgres_db: str = "retail"
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    data_schema: str = "public"
    query_timeout_ms: int = 10_000

    # ── Drill engine ─────────────────────────────────────
    drill_top_n: int = 20
    channel_conversion_value: float = 50.0
    catalog_path: str = ""  # empty -> packaged dimensions.yml

    # ── Table snapshot cache ─────────────────────────────
    table_cache_ttl_seconds: float = 60.0
    table_cache_max_size: int = 32

    # ── Drill sessions ───────────────────────────────────
    session_idle_ttl_seconds: float = 1800.0
    session_max_open: int = 200

    # ── App ──────────────────────────────────────────────
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()
