from __future__ import annotations

import pytest

from pysynclist.allocator import MIN_PRIORITY_DIFF
from pysynclist.config import SyncListConfig
from pysynclist.exceptions import SyncListConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "SYNCLIST_DATABASE_URL",
        "SYNCLIST_AUTH_TOKEN",
        "SYNCLIST_MIN_PRIORITY_DIFF",
        "SYNCLIST_REQUEST_TIMEOUT",
        "SYNCLIST_BACKFILL_PRIORITIES",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = SyncListConfig()

    assert config.database_url is None
    assert config.min_priority_diff == MIN_PRIORITY_DIFF
    assert config.backfill_priorities is True


def test_from_env_reads_all_variables(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNCLIST_DATABASE_URL", "https://demo.firebaseio.com")
    monkeypatch.setenv("SYNCLIST_AUTH_TOKEN", "tok")
    monkeypatch.setenv("SYNCLIST_MIN_PRIORITY_DIFF", "1e-6")
    monkeypatch.setenv("SYNCLIST_REQUEST_TIMEOUT", "5")
    monkeypatch.setenv("SYNCLIST_BACKFILL_PRIORITIES", "off")

    config = SyncListConfig.from_env()

    assert config.database_url == "https://demo.firebaseio.com"
    assert config.auth_token == "tok"
    assert config.min_priority_diff == 1e-6
    assert config.request_timeout == 5.0
    assert config.backfill_priorities is False


def test_overrides_win_over_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNCLIST_REQUEST_TIMEOUT", "not-a-number")
    monkeypatch.setenv("SYNCLIST_AUTH_TOKEN", "from-env")

    config = SyncListConfig.from_env(request_timeout=2.0, auth_token="explicit")

    assert config.request_timeout == 2.0
    assert config.auth_token == "explicit"


def test_unparseable_number_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNCLIST_MIN_PRIORITY_DIFF", "tiny")

    with pytest.raises(SyncListConfigError, match="SYNCLIST_MIN_PRIORITY_DIFF"):
        SyncListConfig.from_env()


def test_unknown_boolean_falls_back_to_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SYNCLIST_BACKFILL_PRIORITIES", "maybe")

    assert SyncListConfig.from_env().backfill_priorities is True


@pytest.mark.parametrize("field", ["min_priority_diff", "request_timeout"])
def test_non_positive_values_rejected(field: str) -> None:
    with pytest.raises(SyncListConfigError):
        SyncListConfig(**{field: 0})
