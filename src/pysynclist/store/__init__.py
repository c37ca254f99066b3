"""Remote ordered store adapters.

This package holds the store contract and its implementations.  The list
layer only depends on :class:`~pysynclist.store.base.OrderedStore`.
"""

from pysynclist.store.base import EventHub, OrderedStore
from pysynclist.store.memory import MemoryStore
from pysynclist.store.rest import RestStore
from pysynclist.store.tree import ChildSnapshot, OrderedChildren

__all__ = [
    "ChildSnapshot",
    "EventHub",
    "MemoryStore",
    "OrderedChildren",
    "OrderedStore",
    "RestStore",
]
