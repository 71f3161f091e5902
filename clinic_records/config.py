import os
from dotenv import load_dotenv

load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    USER_DATA_DIR = os.getenv("USER_DATA_DIR", os.path.abspath("userData"))
    APP_DATA_DIR = os.getenv("APP_DATA_DIR", os.path.join(USER_DATA_DIR, "appData"))

    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL", "sqlite:///" + os.path.join(APP_DATA_DIR, "ent-studio.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Legacy folder store migration
    MIGRATE_ON_STARTUP = _flag("MIGRATE_ON_STARTUP", "true")
    FS_TIMEOUT_SECONDS = float(os.getenv("FS_TIMEOUT_SECONDS", "10"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-prod")
    JSON_SORT_KEYS = False
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    MIGRATE_ON_STARTUP = False
    FS_TIMEOUT_SECONDS = 5.0
    LOG_LEVEL = "DEBUG"
