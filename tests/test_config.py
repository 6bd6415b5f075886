import pytest
from pydantic import ValidationError

from passkey_auth.config import Settings


def test_origins_default_to_rp_id():
    settings = Settings(secret_key="s", rp_id="auth.example.org")
    assert settings.origins == ["https://auth.example.org"]


def test_explicit_origins_kept():
    origins = ["https://example.com", "android:apk-key-hash:abc"]
    settings = Settings(secret_key="s", rp_id="example.com", origins=origins)
    assert settings.origins == origins


def test_empty_rp_id_rejected():
    with pytest.raises(ValidationError):
        Settings(secret_key="s", rp_id="")


def test_read_from_environment(monkeypatch):
    monkeypatch.setenv("PASSKEY_SECRET_KEY", "from-env")
    monkeypatch.setenv("PASSKEY_RP_ID", "env.example")
    monkeypatch.setenv("PASSKEY_ORIGINS", '["https://env.example", "https://app.env.example"]')
    monkeypatch.setenv("PASSKEY_RATE_LIMIT_REGISTER_MAX", "10")

    settings = Settings()

    assert settings.secret_key == "from-env"
    assert settings.rp_id == "env.example"
    assert settings.origins == ["https://env.example", "https://app.env.example"]
    assert settings.rate_limit_register_max == 10
    assert settings.cleanup_inactive_days == 30
