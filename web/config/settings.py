"""Django settings for the checkout web service.

Every value can be overridden through environment variables so the same
image runs in development, CI and production. Test runs use
``config.settings_test`` which swaps the database for SQLite and wires
in-process stubs instead of HTTP adapters.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-insecure-change-me")
DEBUG = os.getenv("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = [h for h in os.getenv("DJANGO_ALLOWED_HOSTS", "*").split(",") if h]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "rest_framework",
    "apps.catalog",
    "apps.payments",
    "apps.shipping",
    "apps.orders",
    "apps.coupons",
    "apps.monitoring",
]

MIDDLEWARE = [
    "gateway.middleware.RequestIdMiddleware",
    "gateway.middleware.ApiSizeLimitMiddleware",
    "gateway.middleware.CallerContextMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "config.urls"
WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "HOST": os.getenv("DB_HOST", "checkout-db"),
        "PORT": os.getenv("DB_PORT", "5432"),
        "NAME": os.getenv("DB_NAME", "checkout"),
        "USER": os.getenv("DB_USER", "checkout_user"),
        "PASSWORD": os.getenv("DB_PASSWORD", "checkout-pass"),
        "CONN_MAX_AGE": int(os.getenv("DB_CONN_MAX_AGE", "60")),
        "CONN_HEALTH_CHECKS": True,
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
USE_TZ = True
TIME_ZONE = "UTC"

# ---- REST framework ----
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "EXCEPTION_HANDLER": "apps.common.responses.api_exception_handler",
    "DEFAULT_THROTTLE_RATES": {
        "orders_create": os.getenv("THROTTLE_ORDERS_CREATE", "60/min"),
        "orders_list": os.getenv("THROTTLE_ORDERS_LIST", "120/min"),
        "orders_detail": os.getenv("THROTTLE_ORDERS_DETAIL", "240/min"),
        "orders_pay": os.getenv("THROTTLE_ORDERS_PAY", "30/min"),
        "coupons": os.getenv("THROTTLE_COUPONS", "120/min"),
    },
}

# ---- Checkout ----
DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")
ORDER_TRANSACTION_TIMEOUT_MS = int(os.getenv("ORDER_TRANSACTION_TIMEOUT_MS", "5000"))
ORDER_EMAIL_DELAY_SECS = int(os.getenv("ORDER_EMAIL_DELAY_SECS", "10"))
# Fresh transactions tried to record a charge whose first commit failed
PAYMENT_RECORD_ATTEMPTS = int(os.getenv("PAYMENT_RECORD_ATTEMPTS", "3"))
# In-progress idempotency keys older than this are reclaimed by the next request
IDEMPOTENCY_STALE_SECS = int(os.getenv("IDEMPOTENCY_STALE_SECS", "60"))

# ---- Payment gateways ----
# Every configured gateway stays registered so orders created under it can
# still be captured after ACTIVE_PAYMENT_GATEWAY changes.
PAYMENT_GATEWAYS = {
    "brainTree": {
        "ENVIRONMENT": os.getenv("BRAINTREE_ENVIRONMENT", "sandbox"),
        "MERCHANT_ID": os.getenv("BRAINTREE_MERCHANT_ID", ""),
        "MERCHANT_ACCOUNT_ID": os.getenv("BRAINTREE_MERCHANT_ACCOUNT_ID", ""),
        "PUBLIC_KEY": os.getenv("BRAINTREE_PUBLIC_KEY", ""),
        "PRIVATE_KEY": os.getenv("BRAINTREE_PRIVATE_KEY", ""),
    },
    "fake": {},
}
ACTIVE_PAYMENT_GATEWAY = os.getenv("ACTIVE_PAYMENT_GATEWAY", "brainTree")
PAYMENT_GATEWAY_TIMEOUT_SECS = float(os.getenv("PAYMENT_GATEWAY_TIMEOUT_SECS", "20"))

# ---- Outbound HTTP ----
USE_HTTP_ADAPTERS = os.getenv("USE_HTTP_ADAPTERS", "1") == "1"
NOTIFICATIONS_BASE_URL = os.getenv("NOTIFICATIONS_BASE_URL", "http://notifications:9002")
HTTP_TIMEOUT_SECS = float(os.getenv("HTTP_TIMEOUT_SECS", "3"))
HTTP_RETRY_MAX = int(os.getenv("HTTP_RETRY_MAX", "3"))
HTTP_RETRY_BACKOFF_BASE = float(os.getenv("HTTP_RETRY_BACKOFF_BASE", "0.15"))
HTTP_RETRY_MAX_SLEEP = float(os.getenv("HTTP_RETRY_MAX_SLEEP", "0.5"))
HTTP_CIRCUIT_FAIL_THRESHOLD = int(os.getenv("HTTP_CIRCUIT_FAIL_THRESHOLD", "5"))
HTTP_CIRCUIT_RESET_TIMEOUT = float(os.getenv("HTTP_CIRCUIT_RESET_TIMEOUT", "30"))

# ---- Logging ----
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "filters": {
        "request_id": {"()": "gateway.logging_filters.RequestIdFilter"},
    },
    "formatters": {
        "json": {
            "()": "pythonjsonlogger.jsonlogger.JsonFormatter",
            "fmt": "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "filters": ["request_id"],
        },
    },
    "root": {"handlers": ["console"], "level": LOG_LEVEL},
    "loggers": {
        "django.db.backends": {"level": "WARNING"},
    },
}
