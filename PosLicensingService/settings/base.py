"""
Base Django settings for PosLicensingService.

These settings are shared across all environments.
Environment-specific overrides are in dev.py, test.py, and prod.py
"""
import os
from pathlib import Path

from .logging import get_logging_config

# Build paths inside the project
BASE_DIR = Path(__file__).resolve().parent.parent.parent

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.environ.get(
    "SECRET_KEY", "django-insecure-3k#p1x!v7q9zt@2m$c0w8e+r4y^u6i(o5a)s&d-f*g_h=j%l"
)

# Application definition
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third party
    "rest_framework",
    "drf_spectacular",
    # Local apps
    "PosLicensingService.apps.PosLicensingServiceConfig",
    "core",
    "licenses",
    "api",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    # Custom middleware
    "core.middleware.observability.ObservabilityMiddleware",
]

ROOT_URLCONF = "PosLicensingService.urls"

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

# Database
# https://docs.djangoproject.com/en/4.2/ref/settings/#databases
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.environ.get("DB_NAME", "pos_licensing"),
        "USER": os.environ.get("DB_USER", "postgres"),
        "PASSWORD": os.environ.get("DB_PASSWORD", "postgres"),
        "HOST": os.environ.get("DB_HOST", "localhost"),
        "PORT": os.environ.get("DB_PORT", "5432"),
        "OPTIONS": {
            "connect_timeout": 10,
        },
    }
}

# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]

# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# Static files (CSS, JavaScript, Images)
STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

# Default primary key field type
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# REST Framework
# Staff identity comes from the signed session cookie, resolved in the views.
REST_FRAMEWORK = {
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
    ],
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": [],
    "UNAUTHENTICATED_USER": None,
    "EXCEPTION_HANDLER": "api.exceptions.custom_exception_handler",
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

# drf-spectacular settings
SPECTACULAR_SETTINGS = {
    "TITLE": "POS Licensing Service API",
    "DESCRIPTION": (
        "License and subscription reconciliation for the POS. "
        "Receives Stripe webhooks and exposes subscription commands to tenant staff."
    ),
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
    "COMPONENT_SPLIT_REQUEST": True,
    "SCHEMA_PATH_PREFIX": "/api/v1",
    "TAGS": [
        {"name": "Webhooks", "description": "Payment provider event ingestion"},
        {"name": "Subscription", "description": "Staff-facing subscription commands"},
        {"name": "Account", "description": "Account deletion lifecycle"},
        {"name": "Health", "description": "Health check endpoints"},
    ],
}

# Stripe
STRIPE = {
    "SECRET_KEY": os.environ.get("STRIPE_SECRET_KEY", ""),
    "WEBHOOK_SECRET": os.environ.get("STRIPE_WEBHOOK_SECRET", ""),
    "WEBHOOK_TOLERANCE_SECONDS": int(os.environ.get("STRIPE_WEBHOOK_TOLERANCE_SECONDS", "300")),
    "TIMEOUT_SECONDS": int(os.environ.get("STRIPE_TIMEOUT_SECONDS", "10")),
    "MAX_NETWORK_RETRIES": int(os.environ.get("STRIPE_MAX_NETWORK_RETRIES", "2")),
    "PRICES": {
        "monthly": os.environ.get("STRIPE_PRICE_MONTHLY", ""),
        "annual": os.environ.get("STRIPE_PRICE_ANNUAL", ""),
    },
    "PORTAL_RETURN_URL": os.environ.get(
        "STRIPE_PORTAL_RETURN_URL", "http://localhost:3000/dashboard/settings"
    ),
    "CHECKOUT_SUCCESS_URL": os.environ.get(
        "STRIPE_CHECKOUT_SUCCESS_URL",
        "http://localhost:3000/success?session_id={CHECKOUT_SESSION_ID}",
    ),
    "CHECKOUT_CANCEL_URL": os.environ.get(
        "STRIPE_CHECKOUT_CANCEL_URL", "http://localhost:3000/pay"
    ),
}

# Licensing
LICENSING = {
    "COOLING_PERIOD_DAYS": int(os.environ.get("LICENSING_COOLING_PERIOD_DAYS", "14")),
    "ACCOUNT_DELETION_GRACE_DAYS": int(os.environ.get("LICENSING_DELETION_GRACE_DAYS", "14")),
    "ENFORCE_EVENT_ORDERING": os.environ.get("LICENSING_ENFORCE_EVENT_ORDERING", "true").lower()
    == "true",
    "EVENT_CLAIM_LEASE_SECONDS": int(
        os.environ.get("LICENSING_EVENT_CLAIM_LEASE_SECONDS", "300")
    ),
    "CALLER_RESOLVER": "licenses.infrastructure.caller_resolver.SignedStaffCookieResolver",
    "STAFF_COOKIE_NAME": "current_staff",
    "STAFF_COOKIE_SALT": "licenses.staff",
    "STAFF_COOKIE_MAX_AGE": 60 * 60 * 12,
}

# Celery
CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://127.0.0.1:6379/0")
CELERY_TASK_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_IGNORE_RESULT = True

# Email
EMAIL_BACKEND = os.environ.get("EMAIL_BACKEND", "django.core.mail.backends.smtp.EmailBackend")
EMAIL_HOST = os.environ.get("EMAIL_HOST", "localhost")
EMAIL_PORT = int(os.environ.get("EMAIL_PORT", "25"))
DEFAULT_FROM_EMAIL = os.environ.get("DEFAULT_FROM_EMAIL", "licensing@localhost")

# Observability
LOGGING = get_logging_config(os.environ.get("ENVIRONMENT", "development"))
