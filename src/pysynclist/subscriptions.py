"""Track store subscriptions for clean teardown."""

from __future__ import annotations

import logging

from pysynclist.events import ChildEventKind
from pysynclist.store.base import ChildCallback, OrderedStore

_logger = logging.getLogger(__name__)


class SubscriptionManager:
    """Registers callbacks with a store and removes them all on dispose."""

    def __init__(self, store: OrderedStore) -> None:
        self._store = store
        self._tokens: list[tuple[ChildEventKind, int]] = []

    def __len__(self) -> int:
        return len(self._tokens)

    @property
    def active(self) -> bool:
        return bool(self._tokens)

    def watch(self, kind: ChildEventKind, handler: ChildCallback) -> int:
        token = self._store.subscribe(kind, handler)
        self._tokens.append((kind, token))
        return token

    def dispose(self) -> None:
        """Unsubscribe every registered callback.  Safe to call repeatedly."""
        tokens, self._tokens = self._tokens, []
        for _kind, token in tokens:
            self._store.unsubscribe(token)
        if tokens:
            _logger.debug("Disposed %d subscription(s)", len(tokens))
