"""Firebase Realtime Database REST adapter.

Writes are plain REST calls in export format (``format=export`` reads,
``".priority"``/``".value"`` in bodies).  Change notifications come from the
database's Server-Sent-Events stream: ``put``/``patch`` messages are applied
to an :class:`~pysynclist.store.tree.OrderedChildren` mirror, which turns
them into ordered child events for the subscribers.

The stream is opened with the first subscription and closed with the last
one.  A stream that ends or fails is logged and not reopened.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from pysynclist._redact import redact_for_log, redact_url
from pysynclist._wire import PRIORITY_KEY, Priority, export_value
from pysynclist.config import SyncListConfig
from pysynclist.events import ChildEventKind
from pysynclist.exceptions import (
    SyncListConfigError,
    SyncListError,
    SyncListPermissionError,
    SyncListStoreError,
    SyncListStreamError,
)
from pysynclist.store.base import ChildCallback, EventHub
from pysynclist.store.push_ids import generate_push_id
from pysynclist.store.tree import ChildSnapshot, OrderedChildren, split_path

_logger = logging.getLogger(__name__)

_NO_BODY = object()


class SseParser:
    """Incremental Server-Sent-Events line parser."""

    def __init__(self) -> None:
        self._event: str | None = None
        self._data: list[str] = []

    def feed(self, line: str) -> tuple[str, str] | None:
        """Consume one line; return ``(event, data)`` when a message completes."""
        line = line.rstrip("\r\n")
        if not line:
            if self._event is None and not self._data:
                return None
            message = (self._event or "message", "\n".join(self._data))
            self._event = None
            self._data = []
            return message
        if line.startswith(":"):
            return None
        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            self._event = value
        elif field == "data":
            self._data.append(value)
        return None


def _error_message(text: str) -> str:
    try:
        body = json.loads(text)
    except json.JSONDecodeError:
        return text[:200]
    if isinstance(body, dict) and isinstance(body.get("error"), str):
        return body["error"]
    return text[:200]


class RestStore:
    """Ordered collection at *path* of a Realtime Database, over REST.

    Usage::

        async with RestStore(config, "lists/groceries") as store:
            items = await SyncedList.attach(store)
    """

    def __init__(
        self,
        config: SyncListConfig,
        path: str = "",
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        if not config.database_url:
            raise SyncListConfigError("RestStore requires config.database_url")
        self._config = config
        self._base_url = config.database_url.rstrip("/")
        self._path = "/".join(split_path(path))
        self._external_session = session is not None
        self._http = session
        self._tree = OrderedChildren()
        self._hub = EventHub()
        self._stream_task: asyncio.Task[None] | None = None
        self._stopping: set[asyncio.Task[None]] = set()
        self._loaded = False

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> RestStore:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Stop the event stream, wait for it to finish and release the session."""
        self._stop_stream()
        for task in list(self._stopping):
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    @property
    def is_streaming(self) -> bool:
        return self._stream_task is not None and not self._stream_task.done()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise SyncListError("Store not opened. Use 'async with RestStore(...) as store:'")
        return self._http

    def _url(self, relative: str = "") -> str:
        location = "/".join(segment for segment in (self._path, relative) if segment)
        return f"{self._base_url}/{location}.json"

    def _params(self, **extra: str) -> dict[str, str]:
        params = dict(extra)
        if self._config.auth_token:
            params["auth"] = self._config.auth_token
        return params

    async def _request(
        self,
        method: str,
        relative: str = "",
        *,
        body: Any = _NO_BODY,
        params: Mapping[str, str] | None = None,
    ) -> Any:
        http = self._require_session()
        url = self._url(relative)
        location = relative or "/"
        kwargs: dict[str, Any] = {
            "params": self._params(**(params or {})),
            "timeout": aiohttp.ClientTimeout(total=self._config.request_timeout),
        }
        if body is not _NO_BODY:
            kwargs["data"] = json.dumps(body, separators=(",", ":"))
            kwargs["headers"] = {"content-type": "application/json; charset=UTF-8"}
            _logger.debug("%s %s %s", method, redact_url(url), redact_for_log(body))
        else:
            _logger.debug("%s %s", method, redact_url(url))

        try:
            async with http.request(method, url, **kwargs) as resp:
                status = resp.status
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise SyncListStoreError(f"{method} {location} failed: {exc}", path=location) from exc
        except TimeoutError as exc:
            raise SyncListStoreError(f"{method} {location} timed out", path=location) from exc

        if status in (401, 403):
            raise SyncListPermissionError(
                f"{method} {location} rejected: HTTP {status} {_error_message(text)}",
                status_code=status,
                path=location,
            )
        if status >= 300:
            raise SyncListStoreError(
                f"HTTP {status} from {method} {location}: {_error_message(text)}",
                status_code=status,
                path=location,
            )
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise SyncListStoreError(f"Invalid JSON from {method} {location}: {text[:200]}", path=location) from exc

    # ------------------------------------------------------------------
    # Writes and reads
    # ------------------------------------------------------------------

    def generate_key(self) -> str:
        return generate_push_id()

    async def set(self, key: str, value: Any, priority: Priority) -> None:
        await self._request("PUT", key, body=export_value(value, priority), params={"print": "silent"})

    async def update(self, key: str, fields: Mapping[str, Any]) -> None:
        await self._request("PATCH", key, body=dict(fields), params={"print": "silent"})

    async def update_many(self, updates: Mapping[str, Any]) -> None:
        await self._request("PATCH", "", body=dict(updates), params={"print": "silent"})

    async def remove(self, key: str) -> None:
        await self._request("DELETE", key, params={"print": "silent"})

    async def set_priority(self, key: str, priority: Priority) -> None:
        await self._request("PUT", f"{key}/{PRIORITY_KEY}", body=priority, params={"print": "silent"})

    async def snapshot(self) -> list[ChildSnapshot]:
        data = await self._request("GET", "", params={"format": "export"})
        if not isinstance(data, dict):
            return []
        return OrderedChildren(data).ordered()

    # ------------------------------------------------------------------
    # Subscriptions and the event stream
    # ------------------------------------------------------------------

    def subscribe(self, kind: ChildEventKind, callback: ChildCallback) -> int:
        token = self._hub.subscribe(kind, callback)
        if kind == ChildEventKind.ADDED and self._loaded:
            for event in self._tree.replay():
                self._hub.deliver(callback, event)
        if self._stream_task is None:
            self._stream_task = asyncio.get_running_loop().create_task(self._stream())
        return token

    def unsubscribe(self, token: int) -> None:
        self._hub.unsubscribe(token)
        if not len(self._hub):
            self._stop_stream()

    def _stop_stream(self) -> None:
        # Cancelled streams are awaited by close().
        task, self._stream_task = self._stream_task, None
        if task is None:
            return
        task.cancel()
        self._stopping.add(task)
        task.add_done_callback(self._stopping.discard)

    def _handle_message(self, event: str, data: str) -> None:
        if event == "keep-alive":
            return
        if event == "cancel":
            raise SyncListStreamError(f"Event stream cancelled by server: {data}", path=self._path or "/")
        if event == "auth_revoked":
            raise SyncListPermissionError("Event stream credentials revoked", path=self._path or "/")
        if event not in ("put", "patch"):
            _logger.debug("Ignoring stream event %s", event)
            return

        try:
            payload = json.loads(data)
        except json.JSONDecodeError as exc:
            raise SyncListStreamError(f"Invalid JSON in {event} event: {data[:200]}", path=self._path or "/") from exc
        if not isinstance(payload, dict):
            raise SyncListStreamError(f"Malformed {event} event: {data[:200]}", path=self._path or "/")

        path = str(payload.get("path") or "/")
        body = payload.get("data")
        if event == "put":
            events = self._tree.apply_put(path, body)
        else:
            if not isinstance(body, dict):
                raise SyncListStreamError(f"Malformed patch event at {path}", path=self._path or "/")
            events = self._tree.apply_patch(path, body)
        self._loaded = True
        _logger.debug("Stream %s at %s produced %d child event(s)", event, path, len(events))
        self._hub.dispatch(events)

    async def _stream(self) -> None:
        http = self._require_session()
        url = self._url()
        location = self._path or "/"
        _logger.debug("Opening event stream %s", redact_url(url))
        try:
            async with http.get(
                url,
                params=self._params(format="export"),
                headers={"accept": "text/event-stream"},
                timeout=aiohttp.ClientTimeout(total=None, sock_read=None),
            ) as resp:
                if resp.status in (401, 403):
                    raise SyncListPermissionError(
                        f"Event stream rejected: HTTP {resp.status}",
                        status_code=resp.status,
                        path=location,
                    )
                if resp.status != 200:
                    raise SyncListStreamError(
                        f"Event stream failed: HTTP {resp.status}",
                        status_code=resp.status,
                        path=location,
                    )
                parser = SseParser()
                async for raw_line in resp.content:
                    message = parser.feed(raw_line.decode("utf-8"))
                    if message is not None:
                        self._handle_message(*message)
            _logger.warning("Event stream for %s closed by server", location)
        except SyncListStoreError:
            _logger.warning("Event stream for %s stopped", location, exc_info=True)
        except aiohttp.ClientError:
            _logger.warning("Event stream for %s failed", location, exc_info=True)
