"""Tests for the production settings module."""

import importlib

import pytest


@pytest.fixture
def prod_settings(monkeypatch):
    """Import ``config.settings.prod`` against a production-like environment."""

    def _load(**environ):
        monkeypatch.setenv("SECRET_KEY", "prod-secret")
        for name, value in environ.items():
            monkeypatch.setenv(name, value)
        module = importlib.import_module("config.settings.prod")
        return importlib.reload(module)

    return _load


class TestProductionSettings:
    def test_https_defaults(self, prod_settings) -> None:
        prod = prod_settings(SITE_URL="https://contacts.example.com")

        assert prod.DEBUG is False
        assert prod.SECRET_KEY == "prod-secret"
        assert prod.SECURE_SSL_REDIRECT is True
        assert prod.SESSION_COOKIE_SECURE is True
        assert prod.CSRF_COOKIE_SECURE is True
        assert prod.SECURE_HSTS_SECONDS == 31536000
        assert prod.CSRF_TRUSTED_ORIGINS == ["https://contacts.example.com"]
        assert prod.EMAIL_BACKEND == "anymail.backends.mailgun.EmailBackend"
        assert not hasattr(prod, "SECURE_BROWSER_XSS_FILTER")

    def test_ssl_can_be_disabled(self, prod_settings) -> None:
        prod = prod_settings(SECURE_SSL_REDIRECT="false")

        assert prod.SECURE_SSL_REDIRECT is False
        assert prod.SESSION_COOKIE_SECURE is False
        assert prod.SECURE_HSTS_SECONDS == 0

    def test_explicit_trusted_origins(self, prod_settings) -> None:
        prod = prod_settings(CSRF_TRUSTED_ORIGINS="https://a.example.com,https://b.example.com")

        assert prod.CSRF_TRUSTED_ORIGINS == ["https://a.example.com", "https://b.example.com"]
