"""Tests for environment-driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from beanbot.config.settings import (
    AppSettings,
    BeancountSettings,
    GitSettings,
    HookSettings,
    TelegramSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    # No stray .env file or proxy settings from the developer's machine.
    monkeypatch.chdir(tmp_path)
    for name in (
        "HTTPS_PROXY", "https_proxy", "TELEGRAM_PROXY_URL", "TELEGRAM_TOKEN",
        "TELEGRAM_SECRET", "BEANCOUNT_ROOT", "BEANCOUNT_DEFAULT_CURRENCY",
        "BEANCOUNT_LEDGER_FILE", "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_telegram_from_environment(monkeypatch):
    monkeypatch.setenv("TELEGRAM_TOKEN", "123:abc")
    monkeypatch.setenv("TELEGRAM_SECRET", "s3cr3t")
    monkeypatch.setenv("TELEGRAM_MAX_AUTH_FAILURES", "2")

    settings = TelegramSettings()
    assert settings.token == "123:abc"
    assert settings.state_file == Path("state.json")
    assert settings.max_message_age_seconds == 180
    assert settings.max_auth_failures == 2
    assert settings.effective_proxy_url is None


def test_proxy_falls_back_to_https_proxy(monkeypatch):
    monkeypatch.setenv("HTTPS_PROXY", "http://proxy:3128")
    settings = TelegramSettings(token="t", secret="s")
    assert settings.effective_proxy_url == "http://proxy:3128"
    assert TelegramSettings(token="t", secret="s", proxy_url="socks5://p:1").effective_proxy_url == "socks5://p:1"


def test_empty_secret_rejected():
    with pytest.raises(ValidationError):
        TelegramSettings(token="t", secret="")


def test_beancount_from_env_file(tmp_path):
    (tmp_path / ".env").write_text(
        "BEANCOUNT_ROOT=/srv/ledger\nBEANCOUNT_DEFAULT_CURRENCY=EUR\n", encoding="utf-8"
    )
    settings = BeancountSettings()
    assert settings.root == Path("/srv/ledger")
    assert settings.default_currency == "EUR"
    assert settings.accounts_file == "accounts.bean"
    assert settings.transactions_dir == "txs"


def test_lowercase_currency_rejected():
    with pytest.raises(ValidationError):
        BeancountSettings(root="/srv/ledger", default_currency="usd")


def test_git_defaults():
    settings = GitSettings()
    assert settings.executable == "git"
    assert settings.commit_message == "Add a transaction"
    assert settings.push_attempts == 3


def test_log_level_normalized():
    assert AppSettings(log_level="debug").log_level == "DEBUG"
    with pytest.raises(ValidationError):
        AppSettings(log_level="chatty")


def test_hook_defaults_to_staged_files():
    settings = HookSettings()
    assert settings.ledger_file is None
    assert settings.accounts_file == "accounts.bean"


def test_hook_ledger_from_environment(monkeypatch):
    monkeypatch.setenv("BEANCOUNT_LEDGER_FILE", "ledger.beancount")
    assert HookSettings().ledger_file == "ledger.beancount"


def test_validate_all_settings_reports_missing_groups(monkeypatch):
    monkeypatch.setenv("BEANCOUNT_ROOT", "/srv/ledger")
    monkeypatch.setenv("BEANCOUNT_DEFAULT_CURRENCY", "USD")

    status = validate_all_settings()
    assert status["telegram"] is False
    assert "token" in status["telegram_error"]
    assert status["beancount"] is True
    assert status["git"] is True
    assert status["app"] is True
    assert "beancount_error" not in status


def test_main_exits_on_incomplete_settings(monkeypatch):
    from beanbot.bot import application

    built = []
    monkeypatch.setattr(application, "configure_logging", lambda level: None)
    monkeypatch.setattr(application, "build_application", built.append)

    with pytest.raises(SystemExit) as exc_info:
        application.main()
    assert exc_info.value.code == 1
    assert built == []
