from __future__ import annotations

from datetime import timedelta

import pytest

from timeoffsync.config import (
    ConfigurationError,
    MissingConfigurationError,
    SyncConfig,
    get_env_count,
    get_env_flag,
    get_env_list,
    get_google_calendar_config,
    get_sync_config,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("45", 45), ("-30", 30), ("29.6", 30), ("0", 7), ("", 7), ("many", 7)],
)
def test_get_env_count(monkeypatch: pytest.MonkeyPatch, raw: str, expected: int) -> None:
    monkeypatch.setenv("TIMEOFFSYNC_TEST_COUNT", raw)

    assert get_env_count("TIMEOFFSYNC_TEST_COUNT", 7) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [(None, True), ("", True), ("yes", True), ("false", False), ("OFF", False), ("0", False)],
)
def test_get_env_flag(monkeypatch: pytest.MonkeyPatch, raw: str | None, expected: bool) -> None:
    if raw is None:
        monkeypatch.delenv("TIMEOFFSYNC_TEST_FLAG", raising=False)
    else:
        monkeypatch.setenv("TIMEOFFSYNC_TEST_FLAG", raw)

    assert get_env_flag("TIMEOFFSYNC_TEST_FLAG") is expected


def test_get_env_list_trims_and_drops_blanks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TIMEOFFSYNC_TEST_LIST", " Sick , ,Vacation,")

    assert get_env_list("TIMEOFFSYNC_TEST_LIST") == ("Sick", "Vacation")
    assert get_env_list("TIMEOFFSYNC_TEST_LIST", lower=True) == ("sick", "vacation")


def test_get_sync_config_reads_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TIMEOFFSYNC_ALLOWED_DOMAINS", "example.com,example.org")
    monkeypatch.setenv("TIMEOFFSYNC_LOOKAHEAD_DAYS", "90")
    monkeypatch.setenv("TIMEOFFSYNC_MAX_RUNTIME_SECONDS", "120")
    monkeypatch.setenv("TIMEOFFSYNC_PREFER_BULK_REQUESTS", "false")
    monkeypatch.delenv("TIMEOFFSYNC_LOOKBACK_DAYS", raising=False)
    monkeypatch.delenv("TIMEOFFSYNC_FOREIGN_SYNC_MARKERS", raising=False)

    config = get_sync_config()

    assert config.allowed_domains == ("example.com", "example.org")
    assert config.lookback_days == 30
    assert config.lookahead_days == 90
    assert config.max_runtime == timedelta(seconds=120)
    assert not config.prefer_bulk_requests
    assert config.foreign_sync_markers == ("cronofy.com",)


def test_get_sync_config_requires_domains(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("TIMEOFFSYNC_ALLOWED_DOMAINS", raising=False)

    with pytest.raises(MissingConfigurationError, match="TIMEOFFSYNC_ALLOWED_DOMAINS"):
        get_sync_config()


def test_sync_config_rejects_empty_domains() -> None:
    with pytest.raises(ConfigurationError):
        SyncConfig(allowed_domains=())


def test_email_allowed_by_domain_and_allow_list() -> None:
    open_config = SyncConfig(allowed_domains=("example.com",))
    listed = SyncConfig(allowed_domains=("example.com",), email_allow_list=("jane@example.com",))

    assert open_config.is_email_allowed("john@example.com")
    assert not open_config.is_email_allowed("john@example.com.evil.org")
    assert listed.is_email_allowed("jane@example.com")
    assert not listed.is_email_allowed("john@example.com")


def test_google_config_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("GOOGLE_SERVICE_ACCOUNT_JSON", raising=False)
    monkeypatch.delenv("GOOGLE_SERVICE_ACCOUNT_FILE", raising=False)

    with pytest.raises(MissingConfigurationError):
        get_google_calendar_config()


def test_google_config_rejects_incomplete_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GOOGLE_SERVICE_ACCOUNT_JSON", '{"client_email": "svc@example.com"}')

    with pytest.raises(ConfigurationError, match="private_key"):
        get_google_calendar_config()


def test_lock_lease_outlives_max_runtime() -> None:
    config = SyncConfig(allowed_domains=("example.com",), max_runtime=timedelta(minutes=20))

    assert config.lock_lease > timedelta(minutes=20)
    assert SyncConfig(allowed_domains=("example.com",)).lock_lease == timedelta(minutes=6)
