import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment overrides from config/.env
BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env")


def _env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


class Settings:
    OPENAI_API_KEY: Optional[str] = os.getenv("OPENAI_API_KEY")
    OPENAI_BASE_URL: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")

    OPENAI_IMAGE_MODEL: str = os.getenv("OPENAI_IMAGE_MODEL") or "gpt-image-1"
    OPENAI_REFINE_MODEL: str = os.getenv("OPENAI_REFINE_MODEL") or "gpt-5"

    IMAGE_SIZE: str = os.getenv("IMAGE_SIZE", "1024x1024")
    # "url" or "b64_json"; unset leaves the choice to the image service
    IMAGE_RESPONSE_FORMAT: Optional[str] = os.getenv("IMAGE_RESPONSE_FORMAT") or None

    MAX_UPLOAD_BYTES: int = _env_int("MAX_UPLOAD_BYTES", 4 * 1024 * 1024)

    REQUEST_TIMEOUT: float = _env_float("REQUEST_TIMEOUT", 60.0)  # seconds
    REFINE_TIMEOUT: float = _env_float("REFINE_TIMEOUT", 30.0)
    DISCONNECT_POLL_INTERVAL: float = _env_float("DISCONNECT_POLL_INTERVAL", 0.5)

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    API_HOST: str = os.getenv("API_HOST", "127.0.0.1")
    API_PORT: int = _env_int("API_PORT", 8000)

settings = Settings()
