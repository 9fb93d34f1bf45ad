# edu_portal/config.py
import os
import logging
from datetime import timedelta

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_SECRET_KEY = "fallback_secret_key_change_me"
DEFAULT_ADMIN_PASSWORD = "ChangeThisPassword123!"


def _env_flag(name, default):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def resolve_database_uri():
    """Hosted database when DATABASE_URL is set, embedded SQLite file otherwise."""
    database_url = os.getenv("DATABASE_URL")
    if database_url:
        # Some hosts still hand out the old postgres:// scheme
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)
        return database_url

    sqlite_path = os.getenv("SQLITE_PATH", os.path.join(BASE_DIR, "instance", "database.db"))
    return f"sqlite:///{os.path.abspath(sqlite_path)}"


def load_config():
    """Build the Flask config mapping from the environment."""
    app_env = os.getenv("APP_ENV", "development").lower()
    is_production = app_env == "production"

    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        logger.warning("SECRET_KEY is not set, using the development fallback key.")
        secret_key = DEFAULT_SECRET_KEY

    return {
        "APP_ENV": app_env,
        "SECRET_KEY": secret_key,
        "SQLALCHEMY_DATABASE_URI": resolve_database_uri(),
        "SQLALCHEMY_TRACK_MODIFICATIONS": False,
        # Session cookie carries the admin login
        "SESSION_COOKIE_HTTPONLY": True,
        "SESSION_COOKIE_SAMESITE": "Lax",
        "SESSION_COOKIE_SECURE": is_production,
        "PERMANENT_SESSION_LIFETIME": timedelta(hours=int(os.getenv("SESSION_LIFETIME_HOURS", 24))),
        "REMEMBER_COOKIE_HTTPONLY": True,
        "WTF_CSRF_ENABLED": _env_flag("WTF_CSRF_ENABLED", True),
        "WTF_CSRF_TIME_LIMIT": None,
        "MAX_CONTENT_LENGTH": int(os.getenv("MAX_UPLOAD_MB", 5)) * 1024 * 1024,
        "ADMIN_USERNAME": os.getenv("ADMIN_USERNAME", "admin"),
        "ADMIN_PASSWORD": os.getenv("ADMIN_PASSWORD", DEFAULT_ADMIN_PASSWORD),
        "CLOUDINARY_CLOUD_NAME": os.getenv("CLOUDINARY_CLOUD_NAME"),
        "CLOUDINARY_API_KEY": os.getenv("CLOUDINARY_API_KEY"),
        "CLOUDINARY_API_SECRET": os.getenv("CLOUDINARY_API_SECRET"),
        "CLOUDINARY_URL": os.getenv("CLOUDINARY_URL"),
        "CLOUDINARY_FOLDER": os.getenv("CLOUDINARY_FOLDER", "lessons"),
        "LOG_LEVEL": os.getenv("LOG_LEVEL", "INFO").upper(),
    }
