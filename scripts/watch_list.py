#!/usr/bin/env python3
"""Follow a remote ordered collection and print its list events.

Configuration comes from the environment (see ``SyncListConfig.from_env``):
- SYNCLIST_DATABASE_URL (required)
- SYNCLIST_AUTH_TOKEN (optional)

Examples::

    python scripts/watch_list.py lists/groceries
    python scripts/watch_list.py lists/groceries --add '{"title": "milk"}'
    python scripts/watch_list.py lists/groceries --insert 0 '"first"' --once
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pysynclist import (  # noqa: E402
    ListEventKind,
    RestStore,
    SyncedList,
    SyncListConfig,
    SyncListError,
)
from pysynclist.values import to_wire  # noqa: E402


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("path", help="Collection path inside the database, e.g. lists/groceries")
    parser.add_argument("--add", metavar="JSON", action="append", default=[], help="Append a JSON value")
    parser.add_argument(
        "--insert",
        metavar=("INDEX", "JSON"),
        nargs=2,
        action="append",
        default=[],
        help="Insert a JSON value at a position",
    )
    parser.add_argument("--once", action="store_true", help="Print the list after the writes and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args(argv)


def _print_event(kind: ListEventKind, key: str | None, value: Any) -> None:
    if kind == ListEventKind.ERROR:
        print(f"{kind:<14} {key}: {value}", file=sys.stderr)
        return
    payload = to_wire(value.value) if value is not None else None
    print(f"{kind:<14} {key} {json.dumps(payload, ensure_ascii=False)}")


async def _run(args: argparse.Namespace) -> int:
    config = SyncListConfig.from_env()
    async with RestStore(config, args.path) as store:
        async with await SyncedList.attach(store, on_event=_print_event, config=config) as items:
            writes = [items.add(json.loads(raw)) for raw in args.add]
            writes += [items.insert(int(index), json.loads(raw)) for index, raw in args.insert]
            for handle in writes:
                await handle

            if args.once:
                # Give the stream a moment to echo our own writes back.
                await asyncio.sleep(1.0)
                for position, record in enumerate(items):
                    print(f"{position:>4} {record.key} {json.dumps(to_wire(record.value), ensure_ascii=False)}")
                return 0

            await asyncio.Event().wait()
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130
    except SyncListError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
