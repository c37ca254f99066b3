"""Configuration for pysynclist."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pysynclist.allocator import MIN_PRIORITY_DIFF
from pysynclist.exceptions import SyncListConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(name: str, value: str) -> float:
    try:
        return float(value)
    except ValueError as exc:
        raise SyncListConfigError(f"{name} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class SyncListConfig:
    """List and store configuration.

    Parameters
    ----------
    database_url : str or None
        Base URL of the remote database (e.g.
        ``"https://my-app.firebaseio.com"``).  Only the REST store needs it.
    auth_token : str or None
        Credential sent as the ``auth`` query parameter on every REST
        request and on the event stream.
    min_priority_diff : float
        Smallest neighbour priority gap that may still be split by a
        midpoint.  Below it, positional inserts and moves renumber the whole
        collection to integer positions.
    backfill_priorities : bool
        On attach, assign sequential priorities to a collection whose
        records do not all carry one, before subscribing.
    request_timeout : float
        Total timeout in seconds for a single REST request.  The event
        stream itself has no timeout.
    """

    database_url: str | None = None
    auth_token: str | None = None
    min_priority_diff: float = MIN_PRIORITY_DIFF
    backfill_priorities: bool = True
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        if self.min_priority_diff <= 0:
            raise SyncListConfigError("min_priority_diff must be positive")
        if self.request_timeout <= 0:
            raise SyncListConfigError("request_timeout must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> SyncListConfig:
        """Create configuration from ``SYNCLIST_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_STRING_MAP = {
            "SYNCLIST_DATABASE_URL": "database_url",
            "SYNCLIST_AUTH_TOKEN": "auth_token",
        }
        for env_key, field_name in _ENV_STRING_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        diff_env = env.get("SYNCLIST_MIN_PRIORITY_DIFF")
        if diff_env is not None and "min_priority_diff" not in overrides:
            config_kwargs["min_priority_diff"] = _env_float("SYNCLIST_MIN_PRIORITY_DIFF", diff_env)

        timeout_env = env.get("SYNCLIST_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            config_kwargs["request_timeout"] = _env_float("SYNCLIST_REQUEST_TIMEOUT", timeout_env)

        if "backfill_priorities" not in overrides:
            config_kwargs["backfill_priorities"] = _env_bool(env.get("SYNCLIST_BACKFILL_PRIORITIES"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
