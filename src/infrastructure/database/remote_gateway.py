"""Path-addressed gateway over the remote palette store.

Paths follow the hierarchical layout ``<collection>`` or ``<collection>/<key>``
(``palettes/{id}``, ``users/{uid}``). Records use the camelCase keys of the store
schema; in Supabase each collection is a table keyed by ``id`` with snake_case
columns.

When SUPABASE_DISABLED=1 or no client is configured, records live in memory and
every write pushes the new snapshot to the attached listeners.
"""
from __future__ import annotations

import asyncio
import copy
import logging
import os
import re
import uuid
from collections.abc import AsyncIterator, Callable
from typing import Any

from supabase import AsyncClient

from src.domain.errors import RemoteFailure

logger = logging.getLogger(__name__)

COLLECTION_PALETTES = "palettes"
COLLECTION_USERS = "users"

Record = dict[str, Any]
Snapshot = dict[str, Record]

_CLOSED = object()


def split_path(path: str) -> tuple[str, str | None]:
    parts = [p for p in path.strip("/").split("/") if p]
    if not parts or len(parts) > 2:
        raise ValueError(f"Unsupported store path: {path!r}")
    return parts[0], (parts[1] if len(parts) == 2 else None)


def _to_column(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def _to_field(column: str) -> str:
    head, *rest = column.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _row_to_record(row: dict[str, Any]) -> Record:
    return {_to_field(k): v for k, v in row.items() if k != "id"}


def _record_to_row(key: str, record: Record) -> dict[str, Any]:
    row = {_to_column(k): v for k, v in record.items()}
    row["id"] = key
    return row


class SnapshotFeed:
    """Lazy, restartable stream of full snapshots of one collection.

    Every ``async for`` over the feed attaches its own listener, yields the
    current snapshot first and then one complete snapshot per remote change.
    ``close()`` ends all running iterations; iterating again re-attaches.
    """

    def __init__(self, gateway: RemoteDataGateway, path: str) -> None:
        self._gateway = gateway
        self.path = path
        self._queues: set[asyncio.Queue] = set()

    def __aiter__(self) -> AsyncIterator[Snapshot]:
        return self._stream()

    async def _stream(self) -> AsyncIterator[Snapshot]:
        queue: asyncio.Queue = asyncio.Queue()
        self._queues.add(queue)
        try:
            await self._gateway._attach(self.path, queue)
            while True:
                item = await queue.get()
                if item is _CLOSED:
                    return
                yield item
        finally:
            self._queues.discard(queue)
            await self._gateway._detach(self.path, queue)

    @property
    def active(self) -> bool:
        return bool(self._queues)

    async def close(self) -> None:
        for queue in list(self._queues):
            queue.put_nowait(_CLOSED)


class Subscription:
    """Delivers every snapshot of a feed to a callback until cancelled."""

    def __init__(self, feed: SnapshotFeed, on_snapshot: Callable[[Snapshot], None]) -> None:
        self.feed = feed
        self._on_snapshot = on_snapshot
        self._task = asyncio.get_running_loop().create_task(self._pump())

    async def _pump(self) -> None:
        try:
            async for snapshot in self.feed:
                try:
                    self._on_snapshot(snapshot)
                except Exception:
                    logger.exception("Snapshot listener for %s failed", self.feed.path)
        except Exception:
            # feed is gone; active turns False
            logger.exception("Snapshot feed for %s stopped", self.feed.path)

    @property
    def active(self) -> bool:
        return not self._task.done()

    async def cancel(self) -> None:
        if self._task.done():
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass


class RemoteDataGateway:
    def __init__(self, client: AsyncClient | None) -> None:
        self.client = client
        self.disabled = os.getenv("SUPABASE_DISABLED", "0") == "1"
        # in-memory tables for disabled mode: collection -> key -> record
        self._mem: dict[str, Snapshot] = {}
        self._watchers: dict[str, set[asyncio.Queue]] = {}
        self._channels: dict[str, Any] = {}
        self._refreshes: set[asyncio.Task] = set()

    @property
    def local(self) -> bool:
        return self.disabled or self.client is None

    def new_key(self) -> str:
        return uuid.uuid4().hex

    async def create(self, collection: str, record: Record) -> str:
        key = self.new_key()
        await self.overwrite(f"{collection}/{key}", record)
        return key

    async def overwrite(self, path: str, record: Record) -> None:
        collection, key = self._record_path(path)
        # In-memory mode
        if self.local:
            self._mem.setdefault(collection, {})[key] = copy.deepcopy(record)
            await self._publish(collection)
            return
        # Supabase mode
        try:  # pragma: no cover - network
            row = _record_to_row(key, record)
            await self.client.table(collection).upsert(row, on_conflict="id").execute()
        except Exception as exc:  # pragma: no cover - network
            raise RemoteFailure(f"Remote write to {path} failed: {exc}") from exc

    async def delete(self, path: str) -> None:
        collection, key = self._record_path(path)
        # In-memory mode
        if self.local:
            if self._mem.get(collection, {}).pop(key, None) is not None:
                await self._publish(collection)
            return
        # Supabase mode
        try:  # pragma: no cover - network
            await self.client.table(collection).delete().eq("id", key).execute()
        except Exception as exc:  # pragma: no cover - network
            raise RemoteFailure(f"Remote delete of {path} failed: {exc}") from exc

    async def fetch_once(self, path: str) -> Record | Snapshot | None:
        collection, key = split_path(path)
        if key is None:
            snapshot = await self._snapshot(collection)
            return snapshot or None
        # In-memory mode
        if self.local:
            record = self._mem.get(collection, {}).get(key)
            return copy.deepcopy(record) if record is not None else None
        # Supabase mode
        try:  # pragma: no cover - network
            res = await self.client.table(collection).select("*").eq("id", key).limit(1).execute()
            rows = res.data or []
        except Exception as exc:  # pragma: no cover - network
            raise RemoteFailure(f"Remote read of {path} failed: {exc}") from exc
        return _row_to_record(rows[0]) if rows else None

    def watch(self, path: str) -> SnapshotFeed:
        collection, key = split_path(path)
        if key is not None:
            raise ValueError(f"Only collections can be watched, got {path!r}")
        return SnapshotFeed(self, collection)

    def subscribe(self, path: str, on_snapshot: Callable[[Snapshot], None]) -> Subscription:
        return Subscription(self.watch(path), on_snapshot)

    def watcher_count(self, collection: str) -> int:
        return len(self._watchers.get(collection, ()))

    def _record_path(self, path: str) -> tuple[str, str]:
        collection, key = split_path(path)
        if key is None:
            raise ValueError(f"Expected a record path, got {path!r}")
        return collection, key

    async def _snapshot(self, collection: str) -> Snapshot:
        if self.local:
            return copy.deepcopy(self._mem.get(collection, {}))
        try:  # pragma: no cover - network
            res = await self.client.table(collection).select("*").execute()
            rows = res.data or []
        except Exception as exc:  # pragma: no cover - network
            raise RemoteFailure(f"Remote read of {collection} failed: {exc}") from exc
        return {row["id"]: _row_to_record(row) for row in rows}

    async def _attach(self, collection: str, queue: asyncio.Queue) -> None:
        watchers = self._watchers.setdefault(collection, set())
        watchers.add(queue)
        if not self.local and collection not in self._channels:  # pragma: no cover - network
            await self._open_channel(collection)
        queue.put_nowait(await self._snapshot(collection))

    async def _detach(self, collection: str, queue: asyncio.Queue) -> None:
        watchers = self._watchers.get(collection)
        if watchers is None:
            return
        watchers.discard(queue)
        if watchers:
            return
        del self._watchers[collection]
        channel = self._channels.pop(collection, None)
        if channel is not None:  # pragma: no cover - network
            await self.client.remove_channel(channel)

    async def _publish(self, collection: str) -> None:
        watchers = self._watchers.get(collection)
        if not watchers:
            return
        snapshot = await self._snapshot(collection)
        for queue in list(watchers):
            queue.put_nowait(copy.deepcopy(snapshot))

    async def _refresh(self, collection: str) -> None:  # pragma: no cover - network
        try:
            await self._publish(collection)
        except RemoteFailure:
            logger.exception("Could not refresh snapshot of %s after a change", collection)

    async def _open_channel(self, collection: str) -> None:  # pragma: no cover - network
        loop = asyncio.get_running_loop()

        def on_change(payload: Any) -> None:
            task = loop.create_task(self._refresh(collection))
            self._refreshes.add(task)
            task.add_done_callback(self._refreshes.discard)

        channel = self.client.channel(f"{collection}-changes")
        channel.on_postgres_changes("*", schema="public", table=collection, callback=on_change)
        try:
            await channel.subscribe()
        except Exception as exc:
            raise RemoteFailure(f"Realtime subscription to {collection} failed: {exc}") from exc
        self._channels[collection] = channel
        logger.info("Realtime channel opened for %s", collection)
