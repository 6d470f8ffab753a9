"""
CourseHub Configuration
Database, token and policy settings read from the environment
"""

import os
from dotenv import load_dotenv

load_dotenv()

DEV_SECRET_KEY = "dev-secret-key-change-in-production"

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
DEBUG = ENVIRONMENT == "development"
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO")

# MongoDB
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "coursehub_db")
MONGO_TIMEOUT_MS = int(os.getenv("MONGO_TIMEOUT_MS", "5000"))

# Tokens
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", DEV_SECRET_KEY)
JWT_ALGORITHM = "HS256"
TOKEN_EXPIRE_HOURS = int(os.getenv("TOKEN_EXPIRE_HOURS", "24"))

# Reviews
RATING_MIN = 1
RATING_MAX = 5

# Courses
MAX_PRICE = int(os.getenv("MAX_PRICE", "1000000000"))

CERTIFICATE_ISSUER = os.getenv("CERTIFICATE_ISSUER", "CourseHub Academy")

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "5000"))


def _parse_origins(origins_str: str) -> list:
    return [origin.strip() for origin in origins_str.split(",") if origin.strip()]


CORS_ORIGINS = _parse_origins(os.getenv("CORS_ORIGINS", "*"))


class Config:
    """
    Configuration class for the application.
    Mirrors the module-level settings so they can be passed around as one object.
    """

    ENVIRONMENT = ENVIRONMENT
    DEBUG = DEBUG
    LOG_LEVEL = LOG_LEVEL

    MONGO_URL = MONGO_URL
    MONGO_DB_NAME = MONGO_DB_NAME
    MONGO_TIMEOUT_MS = MONGO_TIMEOUT_MS

    JWT_SECRET_KEY = JWT_SECRET_KEY
    JWT_ALGORITHM = JWT_ALGORITHM
    TOKEN_EXPIRE_HOURS = TOKEN_EXPIRE_HOURS

    RATING_MIN = RATING_MIN
    RATING_MAX = RATING_MAX
    MAX_PRICE = MAX_PRICE
    CERTIFICATE_ISSUER = CERTIFICATE_ISSUER

    CORS_ORIGINS = CORS_ORIGINS
    HOST = HOST
    PORT = PORT

    @classmethod
    def validate(cls) -> None:
        """
        Fail fast on settings that must never reach production.
        Raises RuntimeError if a required value is missing or unsafe.
        """
        if cls.ENVIRONMENT == "production" and cls.JWT_SECRET_KEY == DEV_SECRET_KEY:
            raise RuntimeError("❌ FATAL: JWT_SECRET_KEY must be set in production")
        if not cls.MONGO_URL:
            raise RuntimeError("❌ FATAL: Missing required environment variable: MONGO_URL")
