"""
Django production settings for the contact telemetry service.

Submissions and the dashboard are JSON endpoints; the only cookie-based
surface is the Django admin, which the session and CSRF settings cover.
"""

from .base import *  # noqa: F403
from .base import env

DEBUG = False

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

SECRET_KEY = env("SECRET_KEY")

# HTTPS (terminated at the proxy)
_ssl = env.bool("SECURE_SSL_REDIRECT", default=True)
SECURE_SSL_REDIRECT = _ssl
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_HSTS_SECONDS = 31536000 if _ssl else 0
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
SECURE_HSTS_PRELOAD = True

# Admin login
SESSION_COOKIE_SECURE = _ssl
CSRF_COOKIE_SECURE = _ssl
CSRF_TRUSTED_ORIGINS = env.list("CSRF_TRUSTED_ORIGINS", default=[env("SITE_URL", default="http://localhost:8000")])

# Operator notifications via Mailgun
EMAIL_BACKEND = "anymail.backends.mailgun.EmailBackend"
