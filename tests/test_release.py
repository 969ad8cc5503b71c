import pytest
import requests

from o2extract.config import release as release_mod
from o2extract.config.release import LAST_KNOWN_RELEASE, fetch_latest_release, resolve_release
from o2extract.config.settings import Config, ConfigurationError, OvertureConfig


class _Page:
    def __init__(self, text, status_code=200):
        self.text = text
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def _overture(release):
    return OvertureConfig(base_url="s3://bucket/release", release=release, s3_region="us-west-2")


def test_fetch_latest_parses_marker(monkeypatch):
    page = _Page("<h1>Release 2025-09-24.0</h1><p>Previous: 2025-08-20.1</p>")
    monkeypatch.setattr(release_mod.requests, "get", lambda url, timeout: page)
    assert fetch_latest_release("https://example.invalid/latest/") == "2025-09-24.0"


def test_fetch_latest_falls_back_on_network_error(monkeypatch):
    def boom(url, timeout):
        raise requests.ConnectionError("offline")

    monkeypatch.setattr(release_mod.requests, "get", boom)
    assert fetch_latest_release("https://example.invalid/latest/") == LAST_KNOWN_RELEASE


def test_fetch_latest_falls_back_on_http_error(monkeypatch):
    monkeypatch.setattr(release_mod.requests, "get", lambda url, timeout: _Page("", 500))
    assert fetch_latest_release("https://example.invalid/latest/", fallback="2024-01-01.0") == "2024-01-01.0"


def test_fetch_latest_falls_back_without_marker(monkeypatch):
    monkeypatch.setattr(release_mod.requests, "get", lambda url, timeout: _Page("no releases here"))
    assert fetch_latest_release("https://example.invalid/latest/") == LAST_KNOWN_RELEASE


def test_pinned_release_skips_fetch(monkeypatch):
    def fail(url, timeout):
        raise AssertionError("release page must not be fetched")

    monkeypatch.setattr(release_mod.requests, "get", fail)
    assert resolve_release(_overture("2025-07-23.0")) == "2025-07-23.0"


def test_latest_release_is_fetched(monkeypatch):
    monkeypatch.setattr(release_mod.requests, "get", lambda url, timeout: _Page("2025-10-22.0"))
    assert resolve_release(_overture("LATEST")) == "2025-10-22.0"


@pytest.fixture
def clean_env(monkeypatch):
    for name in ("OVERTURE_RELEASE", "OVERTURE_VERSION", "DUCKDB_THREADS", "DIVISION_SEARCH_SCALE",
                 "GEOCODER_TIMEOUT", "DUCKDB_EXTENSIONS"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_config_defaults_to_latest(clean_env):
    config = Config()
    assert config.overture.release == "latest"
    assert config.overture.wants_latest
    assert config.overture.base_url == "s3://overturemaps-us-west-2/release"
    assert config.processing.extensions == ("httpfs", "spatial")
    assert config.geocoder.search_scale == 2.0


def test_config_release_precedence(clean_env):
    clean_env.setenv("OVERTURE_VERSION", "2024-12-18.0")
    assert Config().overture.release == "2024-12-18.0"

    clean_env.setenv("OVERTURE_RELEASE", "2025-01-22.0")
    assert Config().overture.release == "2025-01-22.0"

    assert Config(release="2025-07-23.0").overture.release == "2025-07-23.0"


def test_config_reads_overrides(clean_env):
    clean_env.setenv("DIVISION_SEARCH_SCALE", "3")
    clean_env.setenv("DUCKDB_EXTENSIONS", "spatial")
    config = Config()
    assert config.geocoder.search_scale == 3.0
    assert config.processing.extensions == ("spatial",)


@pytest.mark.parametrize("name, value", [
    ("DUCKDB_THREADS", "0"),
    ("DUCKDB_THREADS", "many"),
    ("DIVISION_SEARCH_SCALE", "-1"),
    ("GEOCODER_TIMEOUT", "0"),
])
def test_config_rejects_bad_values(clean_env, name, value):
    clean_env.setenv(name, value)
    with pytest.raises(ConfigurationError):
        Config()
