import pytest

from attraviso.config import DEFAULT_OVERPASS_URLS, Config, get_config, reset_config


def test_defaults(monkeypatch):
    for key in ("OVERPASS_URLS", "ENRICH_CONCURRENCY", "IMAGE_PROXY_MAX_REDIRECTS", "CORS_ORIGINS", "DEBUG"):
        monkeypatch.delenv(key, raising=False)
    config = Config()
    assert config.overpass_config.urls == DEFAULT_OVERPASS_URLS
    assert config.enrichment_config.concurrency == 6
    assert config.enrichment_config.cache_ttl == 86400
    assert config.proxy_config.max_redirects == 3
    assert config.cors_origins == ["*"]
    assert config.timeout_config.overpass == 25.0
    assert config.debug is False


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("OVERPASS_URLS", " https://one.test/api , ,https://two.test/api")
    monkeypatch.setenv("IMAGE_PROXY_ALLOWED_HOSTS", "upload.wikimedia.org,commons.wikimedia.org")
    monkeypatch.setenv("ENRICH_TIMEOUT", "3.5")
    monkeypatch.setenv("DEBUG", "yes")
    config = Config()
    assert config.overpass_config.urls == ["https://one.test/api", "https://two.test/api"]
    assert config.proxy_config.allowed_hosts == ["upload.wikimedia.org", "commons.wikimedia.org"]
    assert config.timeout_config.enrichment_total == 3.5
    assert config.debug is True


@pytest.mark.parametrize("key,value", [
    ("ENRICH_CONCURRENCY", "0"),
    ("ENRICH_CONCURRENCY", "many"),
    ("OVERPASS_TIMEOUT", "-1"),
    ("IMAGE_PROXY_MAX_BYTES", "0"),
])
def test_invalid_values_are_rejected(monkeypatch, key, value):
    monkeypatch.setenv(key, value)
    with pytest.raises(ValueError):
        Config()


def test_get_config_is_cached():
    reset_config()
    try:
        assert get_config() is get_config()
    finally:
        reset_config()
