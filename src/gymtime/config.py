"""Configuration settings for gymtime."""
import os
from typing import Literal


EnvironmentType = Literal["development", "staging", "production"]

_DEFAULT_COMPLETION_BASE_URL = "https://api.groq.com/openai/v1"
_DEFAULT_HELICONE_BASE_URL = "https://groq.helicone.ai/openai/v1"
_DEFAULT_MODEL = "llama-3.1-8b-instant"


class Settings:
    """Application settings."""

    # Feature flags
    HELICONE_ENABLED: bool = False

    # Environment
    ENVIRONMENT: EnvironmentType = "development"
    LOG_LEVEL: str = "INFO"

    # Hosted completion endpoint (OpenAI-compatible)
    COMPLETION_API_KEY: str | None = None
    COMPLETION_BASE_URL: str = _DEFAULT_COMPLETION_BASE_URL
    COMPLETION_TIMEOUT: float = 60.0
    EXTRACTION_MODEL: str = _DEFAULT_MODEL
    SUMMARY_MODEL: str = _DEFAULT_MODEL

    # Helicone gateway
    HELICONE_API_KEY: str | None = None
    HELICONE_BASE_URL: str = _DEFAULT_HELICONE_BASE_URL

    # Supabase
    SUPABASE_URL: str | None = None
    SUPABASE_KEY: str | None = None
    SUPABASE_JWT_SECRET: str | None = None

    def __init__(self):
        # Environment
        env = os.getenv("ENVIRONMENT", "development").lower()
        if env in ("development", "staging", "production"):
            self.ENVIRONMENT = env  # type: ignore
        else:
            self.ENVIRONMENT = "development"
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        # Feature flags
        self.HELICONE_ENABLED = os.getenv("HELICONE_ENABLED", "false").lower() == "true"

        # Completion endpoint
        self.COMPLETION_API_KEY = os.getenv("GROQ_API_KEY") or os.getenv("OPENAI_API_KEY")
        self.COMPLETION_BASE_URL = os.getenv("COMPLETION_BASE_URL", _DEFAULT_COMPLETION_BASE_URL)
        self.COMPLETION_TIMEOUT = float(os.getenv("COMPLETION_TIMEOUT", "60"))
        self.EXTRACTION_MODEL = os.getenv("EXTRACTION_MODEL", _DEFAULT_MODEL)
        self.SUMMARY_MODEL = os.getenv("SUMMARY_MODEL", _DEFAULT_MODEL)

        self.HELICONE_API_KEY = os.getenv("HELICONE_API_KEY")
        self.HELICONE_BASE_URL = os.getenv("HELICONE_BASE_URL", _DEFAULT_HELICONE_BASE_URL)

        # Supabase
        self.SUPABASE_URL = os.getenv("SUPABASE_URL")
        self.SUPABASE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY") or os.getenv("SUPABASE_ANON_KEY")
        self.SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")


settings = Settings()
