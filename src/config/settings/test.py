"""
Django test settings for the contact telemetry service.
"""

from .base import *  # noqa: F403
from .base import env

DEBUG = False

SECRET_KEY = "django-insecure-test-key-only"  # noqa: S105

ALLOWED_HOSTS = ["*"]

# Use fast password hasher for tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Use in-memory email backend
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
CONTACT_NOTIFICATION_EMAILS = ["ops@example.com"]

# Use DATABASE_URL if set (Docker), otherwise fall back to SQLite
DATABASES = {
    "default": env.db("DATABASE_URL", default="sqlite:///test_contacts.sqlite3"),
}

# Providers must never be reached from tests
IP_LOOKUP_URL = "https://ip.test.invalid/?format=json"
IP_GEO_URL = "https://geo.test.invalid/{ip}/json"
IPINFO_TOKEN = "test-token"  # noqa: S105

# Use simple static files storage in tests
STORAGES = {
    "staticfiles": {
        "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage",
    },
}
