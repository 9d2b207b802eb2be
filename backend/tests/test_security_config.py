import importlib
import sys

import pytest

from conftest import TEST_AUTH_KEY


@pytest.fixture(autouse=True)
def restore_config_module():
    original = sys.modules.get("app.config")
    yield
    reloaded = sys.modules.get("app.config")
    if reloaded is not original:
        reloaded.get_settings.cache_clear()
        sys.modules["app.config"] = original


def reload_config_module():
    config_module = sys.modules.get("app.config")
    if config_module:
        sys.modules.pop("app.config", None)
    return importlib.import_module("app.config")


def test_missing_auth_key_fails_closed(monkeypatch):
    monkeypatch.setenv("AUTH_JWT_KEY", "")

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()

    with pytest.raises(Exception, match="AUTH_JWT_KEY"):
        config_module.get_settings()


def test_weak_hmac_key_fails_closed(monkeypatch):
    monkeypatch.setenv("AUTH_ALGORITHM", "HS256")
    monkeypatch.setenv("AUTH_JWT_KEY", "changeme-in-production")

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()

    with pytest.raises(Exception, match="AUTH_JWT_KEY"):
        config_module.get_settings()


def test_low_entropy_hmac_key_fails_closed(monkeypatch):
    monkeypatch.setenv("AUTH_ALGORITHM", "hs256")
    monkeypatch.setenv("AUTH_JWT_KEY", "a" * 64)

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()

    with pytest.raises(Exception, match="entropy"):
        config_module.get_settings()


def test_strong_hmac_key_passes(monkeypatch):
    monkeypatch.setenv("AUTH_ALGORITHM", "HS256")
    monkeypatch.setenv("AUTH_JWT_KEY", TEST_AUTH_KEY)

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()
    settings = config_module.get_settings()

    assert settings.auth_jwt_key == TEST_AUTH_KEY


def test_public_key_algorithms_skip_hmac_checks(monkeypatch):
    monkeypatch.setenv("AUTH_ALGORITHM", "rs256")
    monkeypatch.setenv("AUTH_JWT_KEY", "-----BEGIN PUBLIC KEY-----\nMIIB\n-----END PUBLIC KEY-----")

    config_module = reload_config_module()
    config_module.get_settings.cache_clear()
    settings = config_module.get_settings()

    assert settings.auth_algorithm == "RS256"
