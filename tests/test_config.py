import pytest
from pydantic import ValidationError

from thunderbird_bridge.config import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("THUNDERBIRD_BRIDGE_BACKEND_URL", raising=False)
    settings = Settings()

    assert settings.backend_url == "http://localhost:8766/"
    assert settings.request_timeout == 30.0
    assert settings.protocol_version == "2024-11-05"


def test_env_override(monkeypatch):
    monkeypatch.setenv("THUNDERBIRD_BRIDGE_BACKEND_URL", "http://127.0.0.1:9000/")
    monkeypatch.setenv("THUNDERBIRD_BRIDGE_LOG_LEVEL", "debug")

    settings = Settings()

    assert settings.backend_url == "http://127.0.0.1:9000/"
    assert settings.log_level == "DEBUG"


def test_rejects_non_http_url():
    with pytest.raises(ValidationError):
        Settings(backend_url="ftp://localhost/")


def test_rejects_bad_timeout_and_level():
    with pytest.raises(ValidationError):
        Settings(request_timeout=0)
    with pytest.raises(ValidationError):
        Settings(log_level="LOUD")
