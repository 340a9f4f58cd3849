"""
Django settings for the Mercato marketplace backend.

Deployment values are read from the environment. Business rules (escrow
holding period, commission defaults, payout thresholds, refund windows) live
in the ``*_SETTINGS`` dictionaries at the bottom of this module so they can be
overridden per environment and in tests with ``override_settings``.
"""

import os
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

from django.core.exceptions import ImproperlyConfigured


BASE_DIR = Path(__file__).resolve().parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def env_list(name, default=""):
    return [item.strip() for item in os.environ.get(name, default).split(",") if item.strip()]


SECRET_KEY = os.environ.get("SECRET_KEY")
if not SECRET_KEY:
    raise ImproperlyConfigured("SECRET_KEY environment variable is required")

DEBUG = env_bool("DEBUG", False)
ALLOWED_HOSTS = env_list("ALLOWED_HOSTS", "localhost,127.0.0.1")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third party
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    "django_celery_beat",
    # Mercato apps
    "authentication",
    "sellers",
    "marketplace",
    "payment_system",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "mercato.middleware.JWTCSRFBypassMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "mercato.middleware.RequestLoggingMiddleware",
]

ROOT_URLCONF = "mercato.urls"
WSGI_APPLICATION = "mercato.wsgi.application"

TEMPLATES = [
    {
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
    },
]

DATABASES = {
    "default": {
        "ENGINE": os.environ.get("DB_ENGINE", "django.db.backends.postgresql"),
        "NAME": os.environ.get("DB_NAME", "mercato"),
        "USER": os.environ.get("DB_USER", "mercato"),
        "PASSWORD": os.environ.get("DB_PASSWORD", ""),
        "HOST": os.environ.get("DB_HOST", "localhost"),
        "PORT": os.environ.get("DB_PORT", "5432"),
        "CONN_MAX_AGE": int(os.environ.get("DB_CONN_MAX_AGE", "60")),
    }
}

AUTH_USER_MODEL = "authentication.CustomUser"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator", "OPTIONS": {"min_length": 8}},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = "media/"
MEDIA_ROOT = BASE_DIR / "media"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Django REST Framework
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_THROTTLE_RATES": {"anon": "100/hour", "user": "2000/hour"},
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=int(os.environ.get("JWT_ACCESS_MINUTES", "30"))),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=int(os.environ.get("JWT_REFRESH_DAYS", "7"))),
    "ROTATE_REFRESH_TOKENS": True,
    "AUTH_HEADER_TYPES": ("Bearer",),
    "USER_ID_FIELD": "id",
    "USER_ID_CLAIM": "user_id",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Mercato API",
    "DESCRIPTION": "Multi-vendor marketplace: identity, cart, orders, payments and seller onboarding.",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "COMPONENT_SPLIT_REQUEST": True,
}

# Celery
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://localhost:6379/0")
CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")
CELERY_TASK_ALWAYS_EAGER = env_bool("CELERY_TASK_ALWAYS_EAGER", False)
CELERY_TIMEZONE = "UTC"

# E-mail
EMAIL_BACKEND = "django.core.mail.backends.smtp.EmailBackend"
EMAIL_HOST = os.environ.get("EMAIL_HOST", "localhost")
EMAIL_PORT = int(os.environ.get("EMAIL_PORT", "587"))
EMAIL_HOST_USER = os.environ.get("EMAIL_HOST_USER", "")
EMAIL_HOST_PASSWORD = os.environ.get("EMAIL_HOST_PASSWORD", "")
EMAIL_USE_TLS = env_bool("EMAIL_USE_TLS", True)
DEFAULT_FROM_EMAIL = os.environ.get("DEFAULT_FROM_EMAIL", "Mercato <no-reply@mercato.local>")

# Stripe
STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY", "")
STRIPE_PUBLISHABLE_KEY = os.environ.get("STRIPE_PUBLISHABLE_KEY", "")

# S3 (KYC documents)
AWS_ACCESS_KEY_ID = os.environ.get("AWS_ACCESS_KEY_ID", "")
AWS_SECRET_ACCESS_KEY = os.environ.get("AWS_SECRET_ACCESS_KEY", "")
AWS_STORAGE_BUCKET_NAME = os.environ.get("AWS_STORAGE_BUCKET_NAME", "mercato-documents")
AWS_S3_REGION_NAME = os.environ.get("AWS_S3_REGION_NAME", "eu-west-1")
AWS_S3_ENDPOINT_URL = os.environ.get("AWS_S3_ENDPOINT_URL") or None
AWS_DEFAULT_ACL = None
AWS_QUERYSTRING_AUTH = True

# Infrastructure backends
INFRASTRUCTURE = {
    "STORAGE_BACKEND": os.environ.get("STORAGE_BACKEND", "s3"),
    "EMAIL_BACKEND_TYPE": os.environ.get("EMAIL_BACKEND_TYPE", "smtp"),
    "PAYMENT_PROVIDER": os.environ.get("PAYMENT_PROVIDER", "simulated"),
    "EVENT_BUS": os.environ.get("EVENT_BUS", "redis"),
    "EVENT_BUS_REDIS_URL": os.environ.get("EVENT_BUS_REDIS_URL", CELERY_BROKER_URL),
}

# Tracing
TRACING = {
    "ENABLED": env_bool("TRACING_ENABLED", False),
    "SERVICE_NAME": os.environ.get("TRACING_SERVICE_NAME", "mercato"),
}

# Business rules
PAYMENT_SETTINGS = {
    "CURRENCY": os.environ.get("PAYMENT_CURRENCY", "USD"),
    "ENABLE_CREDIT_CARD": env_bool("PAYMENT_ENABLE_CREDIT_CARD", True),
    "ENABLE_PAYPAL": env_bool("PAYMENT_ENABLE_PAYPAL", True),
    "ENABLE_BANK_TRANSFER": env_bool("PAYMENT_ENABLE_BANK_TRANSFER", True),
    "ENABLE_BLIK": env_bool("PAYMENT_ENABLE_BLIK", True),
}

ESCROW_SETTINGS = {
    "PAYOUT_ELIGIBILITY_DAYS": int(os.environ.get("PAYOUT_ELIGIBILITY_DAYS", "7")),
}

COMMISSION_SETTINGS = {
    "DEFAULT_COMMISSION_RATE": Decimal(os.environ.get("DEFAULT_COMMISSION_RATE", "10.00")),
}

PAYOUT_SETTINGS = {
    "MINIMUM_PAYOUT_THRESHOLD": Decimal(os.environ.get("MINIMUM_PAYOUT_THRESHOLD", "50.00")),
    "DEFAULT_SCHEDULE_FREQUENCY": os.environ.get("PAYOUT_SCHEDULE_FREQUENCY", "weekly"),
    "MAX_RETRY_ATTEMPTS": int(os.environ.get("PAYOUT_MAX_RETRY_ATTEMPTS", "3")),
    "ENABLE_BATCH_PROCESSING": env_bool("PAYOUT_ENABLE_BATCH_PROCESSING", True),
    "MAX_PAYOUTS_PER_BATCH": int(os.environ.get("MAX_PAYOUTS_PER_BATCH", "100")),
}

REFUND_SETTINGS = {
    "SELLER_REFUND_WINDOW_DAYS": int(os.environ.get("SELLER_REFUND_WINDOW_DAYS", "14")),
    "ALLOW_SELLER_PARTIAL_REFUNDS": env_bool("ALLOW_SELLER_PARTIAL_REFUNDS", True),
    "MAX_SELLER_REFUND_PERCENTAGE": Decimal(os.environ.get("MAX_SELLER_REFUND_PERCENTAGE", "100")),
    "LOG_PROVIDER_ERRORS": env_bool("LOG_REFUND_PROVIDER_ERRORS", True),
}

INVOICE_SETTINGS = {
    "DEFAULT_TAX_RATE": Decimal(os.environ.get("INVOICE_TAX_RATE", "23.00")),
    "PAYMENT_DUE_DAYS": int(os.environ.get("INVOICE_PAYMENT_DUE_DAYS", "14")),
    "PLATFORM_NAME": os.environ.get("PLATFORM_NAME", "Mercato"),
}

RETURN_SETTINGS = {
    "RETURN_WINDOW_DAYS": int(os.environ.get("RETURN_WINDOW_DAYS", "30")),
}

CART_SETTINGS = {
    "DEFAULT_SHIPPING_FLAT_RATE": Decimal(os.environ.get("DEFAULT_SHIPPING_FLAT_RATE", "5.99")),
}

KYC_SETTINGS = {
    "MAX_FILE_SIZE_BYTES": int(os.environ.get("KYC_MAX_FILE_SIZE_BYTES", str(5 * 1024 * 1024))),
    "ALLOWED_CONTENT_TYPES": ["application/pdf", "image/jpeg", "image/png"],
}

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "[{asctime}] {levelname} {name} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "django.db.backends": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "celery": {"handlers": ["console"], "level": "INFO", "propagate": False},
    },
}
