import pytest
from pydantic import ValidationError

import price_catalog
from price_catalog import config
from price_catalog.config import PAGE_SIZE_OPTIONS, Settings


def test_get_settings_defaults(monkeypatch):
    for name in ("PRICE_STORE_URL", "PRICE_STORE_TIMEOUT", "DEFAULT_PAGE_SIZE", "CURRENCY_SYMBOL"):
        monkeypatch.delenv(name, raising=False)
    config.get_settings.cache_clear()
    try:
        settings = config.get_settings()
        assert settings.store_url == "http://localhost:5000/api"
        assert settings.store_timeout_seconds == 30.0
        assert settings.default_page_size in PAGE_SIZE_OPTIONS
        assert settings.currency_symbol == "₹"
        assert settings.store_retry_attempts > 0
        assert settings.bulk_delete_concurrency > 0
    finally:
        config.get_settings.cache_clear()


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("PRICE_STORE_URL", "http://prices.internal/api")
    monkeypatch.setenv("MUTATION_TIMEOUT", "2.5")
    settings = Settings()
    assert settings.store_url == "http://prices.internal/api"
    assert settings.mutation_timeout_seconds == 2.5


def test_settings_reject_unknown_page_size():
    with pytest.raises(ValidationError):
        Settings(default_page_size=7)


def test_settings_reject_zero_concurrency():
    with pytest.raises(ValidationError):
        Settings(bulk_delete_concurrency=0)


def test_package_exports_public_api():
    for name in ("CatalogSession", "HttpPriceStore", "PriceRecord", "aggregate", "to_csv"):
        assert hasattr(price_catalog, name)
    assert isinstance(price_catalog.__version__, str)
