from __future__ import annotations
import os
from pathlib import Path

class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")
    BASE_DIR = Path(__file__).resolve().parent
    # SQLite file in project directory; Postgres in production via DATABASE_URL
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", f"sqlite:///{BASE_DIR / 'app.db'}")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # сетка слотов и длительность сессии, минуты
    SLOT_MINUTES = int(os.getenv("SLOT_MINUTES", "60"))
    SESSION_MINUTES = int(os.getenv("SESSION_MINUTES", "60"))
    DEFAULT_TIMEZONE = "UTC"
    BOOKING_TITLE = "Mentorship session"
    AVAILABILITY_MAX_HORIZON_DAYS = 365

    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", str(BASE_DIR / "uploads"))
    MAX_CV_BYTES = 5 * 1024 * 1024

    MATCHING_LIMIT = int(os.getenv("MATCHING_LIMIT", "20"))

class DevConfig(BaseConfig):
    DEBUG = True
    SEED_TEST_DATA = True

class TestConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SEED_TEST_DATA = False

class ProdConfig(BaseConfig):
    DEBUG = False
    SEED_TEST_DATA = False

config_map = {
    "dev": DevConfig,
    "test": TestConfig,
    "prod": ProdConfig,
    "default": DevConfig,
}
