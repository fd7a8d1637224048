"""
pytest configuration for TrackFlow.
Sets Django settings and provides shared fixtures.
"""

import pytest
from django.conf import settings


def pytest_configure(config):
    """Configure Django settings before tests run."""
    if not settings.configured:
        settings.configure(
            DATABASES={
                "default": {
                    "ENGINE": "django.db.backends.sqlite3",
                    "NAME":   ":memory:",
                }
            },
            INSTALLED_APPS=[
                "django.contrib.admin",
                "django.contrib.contenttypes",
                "django.contrib.auth",
                "django.contrib.sessions",
                "django.contrib.messages",
                "django.contrib.staticfiles",
                "rest_framework",
                "drf_spectacular",
                "django_filters",
                "corsheaders",
                "apps.orders",
                "apps.payments",
                "apps.notifications",
                "apps.ops",
            ],
            REST_FRAMEWORK={
                "DEFAULT_AUTHENTICATION_CLASSES": [
                    "rest_framework.authentication.SessionAuthentication",
                ],
                "DEFAULT_PERMISSION_CLASSES": [
                    "rest_framework.permissions.AllowAny",
                ],
                "DEFAULT_FILTER_BACKENDS": [
                    "django_filters.rest_framework.DjangoFilterBackend",
                ],
                "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
                "PAGE_SIZE": 50,
                "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
            },
            SPECTACULAR_SETTINGS={
                "TITLE": "TrackFlow Payments API",
                "DESCRIPTION": "M-Pesa payments for parcel deliveries",
                "VERSION": "1.0.0",
                "SERVE_INCLUDE_SCHEMA": False,
            },
            SECRET_KEY="test-secret-key-not-for-production",
            DEBUG=True,
            USE_TZ=True,
            TIME_ZONE="Africa/Nairobi",
            ROOT_URLCONF="trackflow.urls",
            DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
            TEMPLATES=[{
                "BACKEND": "django.template.backends.django.DjangoTemplates",
                "DIRS": [],
                "APP_DIRS": True,
                "OPTIONS": {
                    "context_processors": [
                        "django.template.context_processors.debug",
                        "django.template.context_processors.request",
                        "django.contrib.auth.context_processors.auth",
                        "django.contrib.messages.context_processors.messages",
                    ],
                },
            }],
            MIDDLEWARE=[
                "django.middleware.security.SecurityMiddleware",
                "corsheaders.middleware.CorsMiddleware",
                "django.contrib.sessions.middleware.SessionMiddleware",
                "django.middleware.common.CommonMiddleware",
                "django.middleware.csrf.CsrfViewMiddleware",
                "django.contrib.auth.middleware.AuthenticationMiddleware",
                "django.contrib.messages.middleware.MessageMiddleware",
            ],
            STATIC_URL="/static/",
            STATIC_ROOT="/tmp/staticfiles_test",
            # M-Pesa: real client against a dummy host (HTTP is mocked in tests)
            MPESA_GATEWAY="daraja",
            MPESA_ENV="sandbox",
            MPESA_BASE_URL="http://mpesa-mock",
            MPESA_CONSUMER_KEY="test-consumer-key",
            MPESA_CONSUMER_SECRET="test-consumer-secret",
            MPESA_SHORTCODE="174379",
            MPESA_PASSKEY="test-passkey",
            MPESA_CALLBACK_URL="https://trackflow.test/api/payments/callback/",
            MPESA_TIMEOUT=5,
            PAYMENT_PENDING_GRACE_SECONDS=120,
            PAYMENT_REFRESH_AFTER_SECONDS=300,
            # Dummy external service URLs (mocked in tests)
            SMS_GATEWAY_URL="http://sms-mock:8003",
            DEFAULT_FROM_EMAIL="TrackFlow <payments@trackflow.test>",
            EMAIL_BACKEND="django.core.mail.backends.locmem.EmailBackend",
            CACHES={
                "default": {
                    "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
                }
            },
            CELERY_TASK_ALWAYS_EAGER=True,   # Execute tasks synchronously in tests
            CELERY_TASK_EAGER_PROPAGATES=True,
            CORS_ALLOW_ALL_ORIGINS=True,
        )


@pytest.fixture(autouse=True)
def clear_cache():
    """The M-Pesa access token lives in the cache; start every test without one."""
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def sms_gateway():
    """No test talks to the SMS gateway; assert on this mock instead."""
    from unittest.mock import patch, MagicMock
    with patch("apps.notifications.service.requests.post",
               return_value=MagicMock(status_code=200)) as mocked:
        yield mocked
