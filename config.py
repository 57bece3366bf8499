from __future__ import annotations
import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv
load_dotenv()

DEFAULT_OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
DEFAULT_MODEL = "openai/gpt-4o-mini"


@dataclass(frozen=True)
class Settings:
    openrouter_api_key: str = ""
    openrouter_url: str = DEFAULT_OPENROUTER_URL
    openrouter_model: str = DEFAULT_MODEL
    app_referer: str = ""
    app_title: str = "CodeCrafter"
    timeout_seconds: float = 60.0
    temperature: float = 0.2
    log_level: str = "INFO"
    base_url: str = "http://127.0.0.1:8000"


def get_settings() -> Settings:
    return Settings(
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY", "").strip(),
        openrouter_url=os.getenv("OPENROUTER_URL", "").strip() or DEFAULT_OPENROUTER_URL,
        openrouter_model=os.getenv("OPENROUTER_MODEL", "").strip() or DEFAULT_MODEL,
        app_referer=os.getenv("APP_REFERER", "").strip(),
        app_title=os.getenv("APP_TITLE", "").strip() or "CodeCrafter",
        timeout_seconds=get_timeout_seconds(),
        temperature=get_temperature(),
        log_level=(os.getenv("CODECRAFTER_LOG_LEVEL", "").strip() or "INFO").upper(),
        base_url=os.getenv("CODECRAFTER_BASE_URL", "").strip() or "http://127.0.0.1:8000",
    )


def get_timeout_seconds() -> float:
    raw = os.getenv("OPENROUTER_TIMEOUT_SECONDS", "60").strip()
    try:
        value = float(raw)
    except ValueError:
        return 60.0
    return max(5.0, min(value, 180.0))


def get_temperature() -> float:
    raw = os.getenv("CODECRAFTER_TEMPERATURE", "0.2").strip()
    try:
        value = float(raw)
    except ValueError:
        return 0.2
    return max(0.0, min(value, 2.0))


def configure_logging(level: str = "INFO") -> None:
    # No-op when the root logger already has handlers (e.g. under pytest)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
