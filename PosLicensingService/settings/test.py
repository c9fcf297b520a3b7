"""
Test settings for PosLicensingService.
"""

import os

from .base import *  # noqa: F403, F401

DEBUG = False

ALLOWED_HOSTS = ["testserver", "localhost"]

# Use in-memory SQLite for faster local tests
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Password hashers for faster tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Stripe test credentials; the provider itself is replaced by fakes in tests
STRIPE = {
    **STRIPE,  # noqa: F405
    "SECRET_KEY": "sk_test_dummy",
    "WEBHOOK_SECRET": "whsec_test_secret",
    "PRICES": {
        "monthly": "price_monthly_test",
        "annual": "price_annual_test",
    },
    "PORTAL_RETURN_URL": "http://testserver/dashboard/settings",
    "CHECKOUT_SUCCESS_URL": "http://testserver/success?session_id={CHECKOUT_SESSION_ID}",
    "CHECKOUT_CANCEL_URL": "http://testserver/pay",
}

# Run Celery tasks inline and keep mail in memory
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = False
CELERY_BROKER_URL = "memory://"
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

# No span export during tests
os.environ.setdefault("OTEL_SDK_DISABLED", "true")

# Disable logging during tests
LOGGING_CONFIG = None
