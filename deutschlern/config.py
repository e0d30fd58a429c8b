"""
Configuration for DeutschLern.

Settings come from the environment, optionally populated from a .env file
at the project root:

    OPENROUTER_API_KEY=sk-or-...
    DEUTSCHLERN_MODEL=deepseek/deepseek-chat
    DEUTSCHLERN_REPORTS_PATH=~/.deutschlern/reports.json
    FIREBASE_CREDENTIALS_PATH=./firebase-credentials.json   # optional

We use python-dotenv + os.getenv so secrets stay out of git.
"""

import os
from dataclasses import dataclass, replace
from typing import List, Optional

from dotenv import load_dotenv

from .logger import logger

DEFAULT_API_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL_ID = "deepseek/deepseek-chat"
DEFAULT_TEMPERATURE = 0.8  # slightly high for more variety between items
DEFAULT_REPORTS_PATH = os.path.join("~", ".deutschlern", "reports.json")
DEFAULT_DISPLAY_DELAY = 1.5  # seconds between answering and the next question

# Identification headers recommended by OpenRouter
APP_REFERER = "https://deutschlern.ai"
APP_TITLE = "DeutschLern AI"


@dataclass(frozen=True)
class AiModel:
    id: str
    name: str
    provider: str
    is_free: bool = False


AVAILABLE_MODELS: List[AiModel] = [
    AiModel("deepseek/deepseek-chat", "DeepSeek Chat", "DeepSeek", is_free=True),
    AiModel("mistralai/mistral-7b-instruct:free", "Mistral 7B Instruct", "MistralAI", is_free=True),
    AiModel("google/gemma-7b-it:free", "Gemma 7B", "Google", is_free=True),
    AiModel("google/gemini-pro-1.0", "Gemini Pro 1.0", "Google", is_free=True),
]


@dataclass(frozen=True)
class Settings:
    api_key: str = ""
    api_url: str = DEFAULT_API_URL
    model_id: str = DEFAULT_MODEL_ID
    temperature: float = DEFAULT_TEMPERATURE
    referer: str = APP_REFERER
    app_title: str = APP_TITLE
    reports_path: str = DEFAULT_REPORTS_PATH
    firebase_credentials_path: Optional[str] = None
    display_delay: float = DEFAULT_DISPLAY_DELAY

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())

    @property
    def masked_api_key(self) -> str:
        key = self.api_key
        return f"{key[:8]}...{key[-4:]}" if len(key) > 12 else "***"

    def with_model(self, model_id: str) -> "Settings":
        """Switch to another curated model."""
        if not any(m.id == model_id for m in AVAILABLE_MODELS):
            raise ValueError(f"Unknown model: {model_id}")
        return replace(self, model_id=model_id)


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"{name}={raw!r} is not a number, using {default}")
        return default


def load_settings(dotenv_path: Optional[str] = None) -> Settings:
    """Load settings from .env and the process environment."""
    logger.env("Loading environment variables from .env file...")
    if load_dotenv(dotenv_path):
        logger.env_success("dotenv file loaded successfully")
    else:
        logger.warning("No .env file found or file is empty")

    model_id = (os.getenv("DEUTSCHLERN_MODEL") or DEFAULT_MODEL_ID).strip()
    if not any(m.id == model_id for m in AVAILABLE_MODELS):
        logger.warning(f"Model {model_id} is not in the curated list, using {DEFAULT_MODEL_ID}")
        model_id = DEFAULT_MODEL_ID

    settings = Settings(
        api_key=(os.getenv("OPENROUTER_API_KEY") or "").strip(),
        api_url=(os.getenv("OPENROUTER_BASE_URL") or DEFAULT_API_URL).strip(),
        model_id=model_id,
        temperature=_float_env("DEUTSCHLERN_TEMPERATURE", DEFAULT_TEMPERATURE),
        reports_path=os.path.expanduser(os.getenv("DEUTSCHLERN_REPORTS_PATH") or DEFAULT_REPORTS_PATH),
        firebase_credentials_path=os.getenv("FIREBASE_CREDENTIALS_PATH") or None,
        display_delay=_float_env("DEUTSCHLERN_DISPLAY_DELAY", DEFAULT_DISPLAY_DELAY),
    )

    if settings.has_api_key:
        logger.env_success(f"OPENROUTER_API_KEY found: {settings.masked_api_key}")
    else:
        logger.env_error("OPENROUTER_API_KEY not found in environment!")
        logger.warning("Content generation will fail until a key is configured")

    logger.env(f"Chat model: {settings.model_id}")
    logger.env(f"Reports file: {settings.reports_path}")
    return settings
