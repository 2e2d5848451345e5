"""
Django settings for the catalog / point-of-sale back office.

Two independent databases:
- "default" holds catalog orders (Order Store)
- "ledger" holds POS sales transactions (Ledger Store)

Everything is read from the environment; a local .env file is honoured.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-secret-key-change-in-production")

DEBUG = os.getenv("DJANGO_DEBUG", "True") == "True"

ALLOWED_HOSTS = os.getenv("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "orders",
    "sales",
    "fulfillment",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"


def _database(prefix: str, default_name: str) -> dict:
    engine = os.getenv(f"{prefix}_DB_ENGINE", "django.db.backends.sqlite3")
    if engine.endswith("sqlite3"):
        return {
            "ENGINE": engine,
            "NAME": os.getenv(f"{prefix}_DB_NAME", str(BASE_DIR / f"{default_name}.sqlite3")),
        }
    return {
        "ENGINE": engine,
        "NAME": os.getenv(f"{prefix}_DB_NAME", default_name),
        "USER": os.getenv(f"{prefix}_DB_USER", "postgres"),
        "PASSWORD": os.getenv(f"{prefix}_DB_PASSWORD", "postgres"),
        "HOST": os.getenv(f"{prefix}_DB_HOST", "localhost"),
        "PORT": os.getenv(f"{prefix}_DB_PORT", "5432"),
        "CONN_MAX_AGE": int(os.getenv(f"{prefix}_DB_CONN_MAX_AGE", "60")),
    }


# No ATOMIC_REQUESTS: the synchronizer owns its transaction boundaries.
DATABASES = {
    "default": _database("ORDERS", "catalog"),
    "ledger": _database("LEDGER", "ledger"),
}

DATABASE_ROUTERS = ["config.routers.LedgerRouter"]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = False
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# RabbitMQ (event publication is best-effort; empty host disables it)
RABBIT_HOST = os.getenv("RABBIT_HOST", "")
RABBIT_PORT = int(os.getenv("RABBIT_PORT", "5672"))
RABBIT_VHOST = os.getenv("RABBIT_VHOST", "/")
RABBIT_USER = os.getenv("RABBIT_USER", "guest")
RABBIT_PASS = os.getenv("RABBIT_PASS", "guest")
RABBIT_EXCHANGE = os.getenv("RABBIT_EXCHANGE", "order_events")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.json.JsonFormatter",
            "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
        },
        "verbose": {
            "format": "{levelname} {asctime} {name} {process:d} {thread:d} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "level": "DEBUG",
            "class": "logging.StreamHandler",
            "formatter": "verbose" if DEBUG else "json",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console"],
            "level": "ERROR",
            "propagate": False,
        },
        "fulfillment": {
            "level": LOG_LEVEL,
        },
    },
}
