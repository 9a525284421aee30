"""Configuration settings for Lumen."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./lumen.db")

    # JWT
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", "43200"))

    # Completion endpoint (any OpenAI-compatible chat-completion API)
    COMPLETION_API_KEY: str = os.getenv("COMPLETION_API_KEY", "")
    COMPLETION_BASE_URL: str = os.getenv("COMPLETION_BASE_URL", "https://api.groq.com/openai/v1")
    COMPLETION_MODEL: str = os.getenv("COMPLETION_MODEL", "llama-3.3-70b-versatile")
    COMPLETION_TEMPERATURE: float = float(os.getenv("COMPLETION_TEMPERATURE", "0.7"))

    # Whisper
    WHISPER_MODEL_SIZE: str = os.getenv("WHISPER_MODEL_SIZE", "base")
    WHISPER_LANGUAGE: str | None = os.getenv("WHISPER_LANGUAGE") or None

    # Recording
    RECORDINGS_DIR: str = os.getenv("RECORDINGS_DIR", "recordings")
    SAMPLE_RATE: int = int(os.getenv("SAMPLE_RATE", "16000"))
    PARTIAL_INTERVAL_SECONDS: float = float(os.getenv("PARTIAL_INTERVAL_SECONDS", "2.0"))

    # Upload
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    MAX_UPLOAD_SIZE_MB: int = int(os.getenv("MAX_UPLOAD_SIZE_MB", "100"))

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    def __init__(self) -> None:
        self._generated_secret = not self.JWT_SECRET_KEY
        if self._generated_secret:
            self.JWT_SECRET_KEY = secrets.token_urlsafe(32)

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        warnings = []
        if self._generated_secret:
            warnings.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if not self.COMPLETION_API_KEY:
            warnings.append("COMPLETION_API_KEY is not set - titles, summaries and chat will use fallback text")
        return warnings


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
