import pytest

from splitlink.config import Settings

ENV_VARS = (
    "ENVIRONMENT", "DATABASE_URL", "SECRET_KEY", "PUBLIC_BASE_URL", "CALLBACK_URL",
    "ADMIN_TWITTER_LOGIN", "SHORT_CODE_LENGTH", "SHORT_CODE_MAX_ATTEMPTS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.setattr("splitlink.config.load_dotenv", lambda *a, **kw: False)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_dev_defaults():
    settings = Settings.from_env()
    assert settings.environment == "dev"
    assert settings.database_url.startswith("sqlite:///")
    assert len(settings.secret_key) == 64
    assert settings.callback_url == "http://localhost:8000/oauth_callback"
    assert settings.short_code_length == 6
    assert settings.short_code_max_attempts == 10
    assert not settings.is_https


def test_values_from_environment(monkeypatch):
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://sho.rt/")
    monkeypatch.setenv("ADMIN_TWITTER_LOGIN", " boss ")
    monkeypatch.setenv("SHORT_CODE_LENGTH", "8")
    settings = Settings.from_env()
    assert settings.public_base_url == "https://sho.rt"
    assert settings.callback_url == "https://sho.rt/oauth_callback"
    assert settings.admin_twitter_login == "boss"
    assert settings.short_code_length == 8
    assert settings.is_https


@pytest.mark.parametrize("missing", ["DATABASE_URL", "SECRET_KEY"])
def test_prod_requires_database_and_secret(monkeypatch, missing):
    monkeypatch.setenv("ENVIRONMENT", "prod")
    monkeypatch.setenv("DATABASE_URL", "postgresql://db/splitlink")
    monkeypatch.setenv("SECRET_KEY", "s3cret")
    monkeypatch.delenv(missing)
    with pytest.raises(RuntimeError):
        Settings.from_env()


@pytest.mark.parametrize("name, value", [
    ("SHORT_CODE_LENGTH", "1"),
    ("SHORT_CODE_LENGTH", "33"),
    ("SHORT_CODE_MAX_ATTEMPTS", "0"),
])
def test_short_code_settings_range_checked(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(RuntimeError):
        Settings.from_env()


def test_direct_settings_get_random_secret():
    first, second = Settings(), Settings()
    assert len(first.secret_key) == 64
    assert first.secret_key != second.secret_key
    with pytest.raises(RuntimeError):
        Settings(short_code_length=40)
