"""
TrackFlow — DEVELOPMENT settings.
Uses SQLite (no Docker needed), DEBUG=True and the mock M-Pesa gateway.
DO NOT use in production.
"""

import os
from pathlib import Path
from datetime import timedelta

BASE_DIR = Path(__file__).resolve().parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = "dev-insecure-key-change-in-production-do-not-use"

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = True

ALLOWED_HOSTS = ["*"]

DJANGO_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
]

THIRD_PARTY_APPS = [
    "rest_framework",
    "drf_spectacular",
    "django_filters",
    "corsheaders",
]

LOCAL_APPS = [
    "apps.orders",
    "apps.payments",
    "apps.notifications",
    "apps.ops",
]

INSTALLED_APPS = DJANGO_APPS + THIRD_PARTY_APPS + LOCAL_APPS

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "trackflow.urls"
WSGI_APPLICATION = "trackflow.wsgi.application"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# ── Database: SQLite for dev, no Docker needed ────────────────────────────────
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# ── Cache: in-memory for dev ──────────────────────────────────────────────────
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

# ── Celery: run tasks inline unless a broker is given ─────────────────────────
CELERY_BROKER_URL        = os.environ.get("CELERY_BROKER_URL", "memory://")
CELERY_TASK_ALWAYS_EAGER = "CELERY_BROKER_URL" not in os.environ
CELERY_BEAT_SCHEDULE     = {
    "refresh-pending-payments": {
        "task":     "apps.payments.tasks.refresh_pending_payments",
        "schedule": timedelta(minutes=5),
    },
}

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",  # useful in dev/browsable API
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.AllowAny",
    ],
    "DEFAULT_FILTER_BACKENDS": [
        "django_filters.rest_framework.DjangoFilterBackend",
    ],
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 20,
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    # No throttling in dev
}

SPECTACULAR_SETTINGS = {
    "TITLE": "TrackFlow Payments API (Dev)",
    "DESCRIPTION": "Development build — TrackFlow M-Pesa payments",
    "VERSION": "dev",
}

LANGUAGE_CODE = "en-us"
TIME_ZONE     = "Africa/Nairobi"
USE_I18N      = True
USE_TZ        = True

STATIC_URL  = "/static/"

# Dev: relaxed CORS
CORS_ALLOW_ALL_ORIGINS = True

# M-Pesa: mock gateway by default; set MPESA_GATEWAY=daraja plus credentials
# to hit the Daraja sandbox (or docker/mocks/daraja_server.py on :8004).
MPESA_GATEWAY         = os.environ.get("MPESA_GATEWAY", "mock")
MPESA_ENV             = "sandbox"
MPESA_BASE_URL        = os.environ.get("MPESA_BASE_URL", "")
MPESA_CONSUMER_KEY    = os.environ.get("MPESA_CONSUMER_KEY", "dev-key")
MPESA_CONSUMER_SECRET = os.environ.get("MPESA_CONSUMER_SECRET", "dev-secret")
MPESA_SHORTCODE       = os.environ.get("MPESA_SHORTCODE", "174379")
MPESA_PASSKEY         = os.environ.get("MPESA_PASSKEY", "dev-passkey")
MPESA_CALLBACK_URL    = os.environ.get("MPESA_CALLBACK_URL", "http://localhost:8000/api/payments/callback/")
MPESA_TIMEOUT         = 15

PAYMENT_PENDING_GRACE_SECONDS = 120
PAYMENT_REFRESH_AFTER_SECONDS = 300

# Mock external services (all point to localhost stubs)
SMS_GATEWAY_URL    = "http://localhost:8003"
DEFAULT_FROM_EMAIL = "TrackFlow <payments@localhost>"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Dev-only: print emails to console instead of sending
EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"

# Dev logging: verbose, human-readable (not JSON)
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        }
    },
    "formatters": {
        "verbose": {
            "format": "[{levelname}] {name}: {message}",
            "style": "{",
        }
    },
    "root": {"handlers": ["console"], "level": "DEBUG"},
}
