"""
Record Store Protocol.

The onboarding core never touches the Supabase query builder directly. It
sees the backend as a remote key-scoped store with two operations:

- select(collection, filters): equality filters, a None value means IS NULL
- upsert(collection, record, on_conflict): insert-or-update on a key column

SupabaseRecordStore is the production implementation. MemoryRecordStore is
a faithful in-process fake used by tests and offline CLI runs.
"""

import asyncio
import copy
import json
import logging
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from cocoa_connect.errors import NetworkFailure, StoreError

logger = logging.getLogger(__name__)


@runtime_checkable
class RecordStore(Protocol):
    """Async read / upsert access to named record collections."""

    async def select(self, collection: str, filters: dict[str, Any] | None = None) -> list[dict]:
        """Return every record of `collection` matching all equality filters."""
        ...

    async def upsert(self, collection: str, record: dict, on_conflict: str) -> dict:
        """Insert `record`, or overwrite the row sharing its `on_conflict` value."""
        ...


class SupabaseRecordStore:
    """
    RecordStore backed by a Supabase (PostgREST) client.

    supabase-py's sync client blocks, so each request runs in a worker
    thread to keep the event loop free.
    """

    def __init__(self, client: Client):
        self._client = client

    async def select(self, collection: str, filters: dict[str, Any] | None = None) -> list[dict]:
        def run() -> list[dict]:
            query = self._client.table(collection).select("*")
            for column, value in (filters or {}).items():
                if value is None:
                    query = query.is_(column, "null")
                else:
                    query = query.eq(column, value)
            return query.execute().data or []

        return await self._call(run, f"select {collection}")

    async def upsert(self, collection: str, record: dict, on_conflict: str) -> dict:
        def run() -> dict:
            response = (
                self._client.table(collection)
                .upsert(record, on_conflict=on_conflict)
                .execute()
            )
            if not response.data:
                raise StoreError(
                    f"Upsert into {collection} returned no rows",
                    {"collection": collection},
                )
            return response.data[0]

        return await self._call(run, f"upsert {collection}")

    async def _call(self, fn, label: str):
        try:
            return await asyncio.to_thread(fn)
        except APIError as e:
            logger.error(f"Supabase rejected {label}: {e.message}")
            raise StoreError(
                f"Backend rejected {label}",
                {"code": e.code, "reason": e.message},
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"Network failure during {label}: {e}")
            raise NetworkFailure(f"Network failure during {label}", {"reason": str(e)}) from e


class MemoryRecordStore:
    """
    In-memory RecordStore.

    Records are deep-copied in and out so callers can never mutate stored
    state by accident. `calls` records every operation for assertions.
    """

    def __init__(self, collections: dict[str, list[dict]] | None = None):
        self._collections: dict[str, list[dict]] = {
            name: [dict(r) for r in rows] for name, rows in (collections or {}).items()
        }
        self.calls: list[tuple[str, str]] = []

    @classmethod
    def from_json(cls, path: Path) -> "MemoryRecordStore":
        """Load a seed file shaped like {"collection": [record, ...]}."""
        return cls(json.loads(Path(path).read_text(encoding="utf-8")))

    async def select(self, collection: str, filters: dict[str, Any] | None = None) -> list[dict]:
        self.calls.append(("select", collection))
        rows = self._collections.get(collection, [])
        return [
            copy.deepcopy(row)
            for row in rows
            if all(_matches(row.get(col), value) for col, value in (filters or {}).items())
        ]

    async def upsert(self, collection: str, record: dict, on_conflict: str) -> dict:
        self.calls.append(("upsert", collection))
        if record.get(on_conflict) is None:
            raise StoreError(
                f"Upsert into {collection} is missing conflict key {on_conflict}",
                {"collection": collection, "on_conflict": on_conflict},
            )

        rows = self._collections.setdefault(collection, [])
        for i, row in enumerate(rows):
            if row.get(on_conflict) == record[on_conflict]:
                rows[i] = {**row, **copy.deepcopy(record)}
                return copy.deepcopy(rows[i])

        rows.append(copy.deepcopy(record))
        return copy.deepcopy(record)

    def rows(self, collection: str) -> list[dict]:
        """Snapshot of a collection (test helper)."""
        return copy.deepcopy(self._collections.get(collection, []))


def _matches(stored: Any, wanted: Any) -> bool:
    # PostgREST compares filter values as text, so 7 == "7"
    if wanted is None or stored is None:
        return stored is None and wanted is None
    return str(stored) == str(wanted)
