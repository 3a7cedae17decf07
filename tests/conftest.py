"""
Pytest configuration for Attraviso tests.

This file is automatically loaded by pytest and sets up the test environment.
"""
import os

import pytest

from attraviso.config import Config, reset_config
from attraviso.providers.caching import EnrichmentCache
from tests.fakes import FakeSession


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Keep tests away from real endpoints and any developer .env overrides."""
    os.environ["OVERPASS_URLS"] = "https://overpass.test/a,https://overpass.test/b"
    os.environ["LOG_LEVEL"] = "WARNING"
    reset_config()
    yield
    reset_config()


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return EnrichmentCache(ttl_seconds=60, clock=clock)


@pytest.fixture
def session():
    return FakeSession()


@pytest.fixture
def config(monkeypatch):
    """A Config built from a controlled environment."""
    monkeypatch.setenv("OVERPASS_URLS", "https://overpass.test/a,https://overpass.test/b")
    monkeypatch.setenv("ENRICH_CONCURRENCY", "2")
    monkeypatch.setenv("ENRICH_MAX_ITEMS", "10")
    monkeypatch.setenv("ENRICH_TIMEOUT", "2")
    monkeypatch.delenv("IMAGE_PROXY_ALLOWED_HOSTS", raising=False)
    return Config()
