"""Tests for configuration loading"""
import pytest

from contest_tracker.config import Config

ENV_VARS = (
    "DATABASE_PATH", "CLIST_USERNAME", "CLIST_API_KEY", "EMAIL_HOST", "EMAIL_PORT",
    "EMAIL_USER", "EMAIL_PASS", "EMAIL_FROM", "CONTEST_FETCH_INTERVAL",
    "NOTIFICATION_CHECK_INTERVAL", "FETCH_TIMEOUT", "CONTEST_LOOKBACK_DAYS",
    "CONTEST_LOOKAHEAD_DAYS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    config = Config()

    assert config.database_path == "data/contests.db"
    assert config.email_host == "smtp.gmail.com"
    assert config.email_port == 587
    assert config.contest_fetch_interval == 60
    assert config.notification_check_interval == 5
    assert config.fetch_timeout == 30
    assert config.contest_lookback_days == 7
    assert config.contest_lookahead_days == 30
    assert not config.email_configured
    assert not config.clist_configured


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("CLIST_USERNAME", "user")
    monkeypatch.setenv("CLIST_API_KEY", "key")
    monkeypatch.setenv("EMAIL_USER", "bot@example.com")
    monkeypatch.setenv("EMAIL_PASS", "secret")
    monkeypatch.setenv("EMAIL_PORT", "465")
    monkeypatch.setenv("NOTIFICATION_CHECK_INTERVAL", "10")

    config = Config()

    assert config.clist_configured
    assert config.email_configured
    assert config.email_port == 465
    assert config.notification_check_interval == 10


@pytest.mark.parametrize("name, value", [
    ("NOTIFICATION_CHECK_INTERVAL", "15"),
    ("NOTIFICATION_CHECK_INTERVAL", "0"),
    ("CONTEST_FETCH_INTERVAL", "0"),
    ("FETCH_TIMEOUT", "abc"),
    ("EMAIL_PORT", "70000"),
    ("CONTEST_LOOKBACK_DAYS", "-1"),
])
def test_invalid_values(monkeypatch, name, value):
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError):
        Config()
