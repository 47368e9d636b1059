"""Backend application factory.

``create_app`` builds the process-wide dependencies (settings and the shared
Gemini SDK client). ``create_session`` builds the per-browser-session container
holding the gateway and its controllers, so each session gets its own chat
conversation and generation state.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv
from google import genai

from .ai.gemini_client import DEFAULT_IMAGE_MODEL, DEFAULT_TEXT_MODEL, GeminiClient
from .controllers.chat import ChatController
from .controllers.script import ScriptController
from .errors import MissingCredentialsError

# Ensure local `.env` values are available when running via Streamlit/CLI.
load_dotenv(Path(__file__).resolve().parents[2] / ".env", override=False)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass(frozen=True)
class Settings:
    api_key: str
    text_model: str = DEFAULT_TEXT_MODEL
    image_model: str = DEFAULT_IMAGE_MODEL
    log_level: str = "INFO"


def _read_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_settings() -> Settings:
    """Read settings from the environment; the API key is mandatory."""
    api_key = _read_env("GEMINI_API_KEY") or _read_env("API_KEY")
    if not api_key:
        raise MissingCredentialsError()
    return Settings(
        api_key=api_key,
        text_model=_read_env("GEMINI_TEXT_MODEL") or DEFAULT_TEXT_MODEL,
        image_model=_read_env("GEMINI_IMAGE_MODEL") or DEFAULT_IMAGE_MODEL,
        log_level=(_read_env("LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("script_visuals").setLevel(level)


def create_app(settings: Settings | None = None) -> Dict[str, Any]:
    """Create the process-wide dependency container."""
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    return {
        "settings": settings,
        "genai_client": genai.Client(api_key=settings.api_key),
    }


def create_session(app: Dict[str, Any]) -> Dict[str, Any]:
    """Create the gateway and controllers for one browser session."""
    settings: Settings = app["settings"]
    ai_client = GeminiClient(
        app["genai_client"],
        text_model=settings.text_model,
        image_model=settings.image_model,
    )
    return {
        "ai_client": ai_client,
        "controllers": {
            "script": ScriptController(ai_client),
            "chat": ChatController(ai_client),
        },
    }
