"""
Centralised settings for SQL generation and artifact output, loaded from
environment / .env file.
"""
from __future__ import annotations

from pathlib import Path
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Load .env from project root (two levels up from this file)
_ENV_PATH = Path(__file__).resolve().parents[2] / ".env"
load_dotenv(_ENV_PATH)

# Artifact layout is fixed; the deployment tool parses these bytes exactly.
PIPE_NODE_NAME = "endpoint"
ARTIFACT_INDENT = "    "


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    # ── Pipe templates ───────────────────────────────────
    strict_template_params: bool = True  # raise on {{ T(name) }} with undeclared name


@lru_cache
def get_settings() -> Settings:
    return Settings()
