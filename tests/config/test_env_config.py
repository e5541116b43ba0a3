from __future__ import annotations

import pytest

from timeoffsync.config import (
    MissingConfigurationError,
    get_personio_config,
    require_env_var,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    result = require_env_vars(["EXAMPLE_VAR"])

    assert result["EXAMPLE_VAR"] == "value"


def test_require_env_vars_names_every_missing_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_A", raising=False)
    monkeypatch.delenv("MISSING_B", raising=False)

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_B", "MISSING_A"])

    assert "MISSING_A, MISSING_B" in str(exc.value)


def test_require_env_var_handles_blank_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "   ")

    with pytest.raises(MissingConfigurationError):
        require_env_var("EXAMPLE_VAR")


def test_personio_config_reads_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PERSONIO_CLIENT_ID", "id")
    monkeypatch.setenv("PERSONIO_CLIENT_SECRET", "secret")
    monkeypatch.setenv("PERSONIO_WEB_URL", "https://acme.personio.de")

    config = get_personio_config()

    assert (config.client_id, config.client_secret) == ("id", "secret")
    assert config.web_url == "https://acme.personio.de"
    assert config.resilience.base_url == "https://api.personio.de/v1"
    assert "secret" not in repr(config)


def test_personio_config_requires_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PERSONIO_CLIENT_ID", "id")
    monkeypatch.delenv("PERSONIO_CLIENT_SECRET", raising=False)

    with pytest.raises(MissingConfigurationError, match="PERSONIO_CLIENT_SECRET"):
        get_personio_config()
