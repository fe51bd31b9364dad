"""
Environment-aware configuration.
Token durations, cookie flags and the initial maintenance state all come from env.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///library-auth.db")

    # HS512 needs a key of at least 64 bytes
    JWT_SECRET = os.getenv(
        "JWT_SECRET",
        "dev-secret-change-me-dev-secret-change-me-dev-secret-change-me-0000",
    )
    JWT_ALGORITHM = "HS512"
    JWT_ISSUER = os.getenv("JWT_ISSUER", "library-auth")
    ACCESS_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("ACCESS_TOKEN_EXPIRES_SECONDS", "3600")))
    REFRESH_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("REFRESH_TOKEN_EXPIRES_SECONDS", str(30 * 24 * 3600))))
    RESET_TOKEN_EXPIRES = timedelta(seconds=int(os.getenv("RESET_TOKEN_EXPIRES_SECONDS", "600")))

    OTP_TTL = timedelta(seconds=int(os.getenv("OTP_TTL_SECONDS", "300")))
    COOKIE_SECURE = _env_bool("COOKIE_SECURE", "true")
    MAINTENANCE_MODE = _env_bool("MAINTENANCE_MODE", "false")
    # Shared key for /internal/* calls from sibling services; empty disables the check
    INTERNAL_API_KEY = os.getenv("INTERNAL_API_KEY", "")


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    DATABASE_URL = "sqlite://"
    JWT_SECRET = "test-secret-key-for-testing-only-test-secret-key-for-testing-only"
    MAINTENANCE_MODE = False
    INTERNAL_API_KEY = ""


class ProductionConfig(BaseConfig):
    DEBUG = False


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/test/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
