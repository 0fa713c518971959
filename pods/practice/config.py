"""Practice pod configuration and initialization."""

import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    """Configuration for practice pod."""

    # Service
    SERVICE_NAME = "practice"
    SERVICE_VERSION = "0.1.0"
    SERVICE_PORT = int(os.getenv("PRACTICE_PORT", 8010))
    ENV = os.getenv("HM_ENV", "development")

    # Limits
    MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", 10 * 1024 * 1024))  # 10 MB
    MAX_AUDIO_DURATION = int(os.getenv("MAX_AUDIO_DURATION", 120))  # seconds
    MAX_NOTE_COUNT = int(os.getenv("MAX_NOTE_COUNT", 64))

    # Logging
    LOG_LEVEL = os.getenv("HM_LOG_LEVEL", "INFO" if ENV == "production" else "DEBUG")


__all__ = ["Config"]
