"""
CRISTAL – Django Settings (Infrastructure Only)
=================================================
Django hosts the durable remote store (adapters.django_store) and the
CRISTAL_SYNC configuration block. The state container itself does not
depend on Django being configured.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("CRISTAL_SECRET_KEY", "cristal-dev-key-replace-before-deployment")

DEBUG = os.environ.get("CRISTAL_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "adapters.django_store",
]

MIDDLEWARE = []

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("CRISTAL_DB_PATH", BASE_DIR / "db.sqlite3"),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "pt-br"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Sync ──────────────────────────────────────────────────────
# Read by core.config.rules.load_sync_config. Keys mirror SyncConfig.
CRISTAL_SYNC = {
    "attempt_timeouts": (10.0, 30.0, None),
    "retry_backoff_seconds": 2.0,
    "price_debounce_seconds": 1.0,
    "scan_delay_seconds": 5.0,
    "scan_interval_seconds": 1800.0,
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {
            "format": "%(asctime)s %(levelname)s %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "plain",
        },
    },
    "loggers": {
        "cristal": {
            "handlers": ["console"],
            "level": os.environ.get("CRISTAL_LOG_LEVEL", "INFO"),
            "propagate": True,
        },
    },
}
