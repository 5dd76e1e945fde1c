"""Application configuration.

Environment variables override all defaults.
CRITICAL: AUTH_SECRET_KEY must be set in .env - will fail fast if missing in production.
"""

import os
from pathlib import Path
from typing import List, Optional


# Load .env for local development (safe no-op if not installed)
try:
    from dotenv import load_dotenv  # type: ignore

    _BACKEND_DIR = Path(__file__).resolve().parents[2]
    load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)
except ImportError:
    pass


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Settings:
    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./pharmacy.db")

    # Operator tokens are issued by the identity provider; we only verify them.
    AUTH_SECRET_KEY: str = os.getenv("AUTH_SECRET_KEY", "")
    if not AUTH_SECRET_KEY:
        if ENVIRONMENT == "production":
            raise ValueError(
                "CRITICAL: AUTH_SECRET_KEY must be set in production environment."
            )
        import warnings
        warnings.warn(
            "AUTH_SECRET_KEY not set in environment. Using development default. "
            "Set AUTH_SECRET_KEY in .env to the identity provider's signing key.",
            RuntimeWarning
        )
        AUTH_SECRET_KEY = "development-only-weak-default-change-in-production"

    AUTH_ALGORITHM: str = os.getenv("AUTH_ALGORITHM", "HS256")
    AUTH_AUDIENCE: Optional[str] = os.getenv("AUTH_AUDIENCE") or None

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = _split_csv(
        os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173")
    )

    # Distribution log paging
    DISTRIBUTION_PAGE_DEFAULT: int = int(os.getenv("DISTRIBUTION_PAGE_DEFAULT", "50"))
    DISTRIBUTION_PAGE_MAX: int = int(os.getenv("DISTRIBUTION_PAGE_MAX", "200"))

    # Operator client
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://127.0.0.1:8000")
    CLIENT_TIMEOUT_SECONDS: float = float(os.getenv("CLIENT_TIMEOUT_SECONDS", "10"))
    CLIENT_READ_RETRIES: int = int(os.getenv("CLIENT_READ_RETRIES", "2"))


settings = Settings()
