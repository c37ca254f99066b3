"""pysynclist - ordered lists synchronized with a remote priority-sorted store."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pysynclist")
except PackageNotFoundError:
    __version__ = "0+local"
from pysynclist.allocator import MIN_PRIORITY_DIFF, Placement, place_insert, place_move
from pysynclist.cache import OrderedCache, Record
from pysynclist.config import SyncListConfig
from pysynclist.events import ChildEvent, ChildEventKind, ListEventKind
from pysynclist.exceptions import (
    SyncListConfigError,
    SyncListError,
    SyncListPermissionError,
    SyncListStoreError,
    SyncListStreamError,
    SyncListUsageError,
)
from pysynclist.store import ChildSnapshot, MemoryStore, OrderedStore, RestStore
from pysynclist.synced_list import SyncedList, WriteHandle, get_as_list
from pysynclist.values import Keyed, Scalar, Value

__all__ = [
    "__version__",
    "MIN_PRIORITY_DIFF",
    "ChildEvent",
    "ChildEventKind",
    "ChildSnapshot",
    "Keyed",
    "ListEventKind",
    "MemoryStore",
    "OrderedCache",
    "OrderedStore",
    "Placement",
    "Record",
    "RestStore",
    "Scalar",
    "SyncListConfig",
    "SyncListConfigError",
    "SyncListError",
    "SyncListPermissionError",
    "SyncListStoreError",
    "SyncListStreamError",
    "SyncListUsageError",
    "SyncedList",
    "Value",
    "WriteHandle",
    "get_as_list",
    "place_insert",
    "place_move",
]
