import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env
BASE_DIR = Path(__file__).resolve().parent
load_dotenv(BASE_DIR / ".env")


def _optional_float(name: str, default: float | None) -> float | None:
    raw = os.getenv(name)
    if raw is None:
        return default
    if raw.strip().lower() in ("", "none", "off"):
        return None
    return float(raw)


class Settings:
    GEMINI_API_KEY: str | None = os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")

    GENERATE_MODEL: str = os.getenv("GENERATE_MODEL", "imagen-4.0-generate-001")
    EDIT_MODEL: str = os.getenv("EDIT_MODEL", "gemini-2.5-flash-image")

    # HTTP transport timeout (seconds) for calls to the model, None disables it
    REQUEST_TIMEOUT: float | None = _optional_float("REQUEST_TIMEOUT", 300.0)

    # Sessions untouched for SESSION_TTL seconds are dropped with their images
    SESSION_TTL: float = float(os.getenv("SESSION_TTL", "1800"))
    SESSION_SWEEP_INTERVAL: float = 60.0

    BACKEND_URL: str = os.getenv("BACKEND_URL", "http://127.0.0.1:8000")

    POLL_INTERVAL: float = 0.5  # seconds
    POLL_TIMEOUT: float = 120.0

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

settings = Settings()
