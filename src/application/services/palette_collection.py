from __future__ import annotations

import dataclasses
import logging
import os
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import numpy as np

from src.domain.entities.identity import IdentityEntity
from src.domain.entities.palette import PaletteEntity
from src.domain.errors import Unauthenticated, Unauthorized, ValidationError
from src.domain.services.ownership_guard import can_mutate
from src.infrastructure.database.remote_gateway import (
    COLLECTION_PALETTES,
    RemoteDataGateway,
    Snapshot,
    Subscription,
)

logger = logging.getLogger(__name__)


def default_random_source() -> np.random.Generator:
    """Shuffle source, seeded from PALETTE_SHUFFLE_SEED when set."""
    seed = os.getenv("PALETTE_SHUFFLE_SEED")
    return np.random.default_rng(int(seed) if seed else None)


class PaletteCollectionStore:
    """Local cache of the shared palette collection, kept current by a live feed.

    The cache is only ever replaced by a full snapshot push or adjusted after a
    remote mutation succeeded. The next push always wins over local edits.
    """

    def __init__(
        self,
        gateway: RemoteDataGateway,
        identity: Callable[[], IdentityEntity | None],
        random_source: np.random.Generator | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.gateway = gateway
        self._identity = identity
        self._rng = random_source if random_source is not None else default_random_source()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._cache: dict[str, PaletteEntity] = {}
        self._subscription: Subscription | None = None
        self._snapshots = 0

    @property
    def loaded(self) -> bool:
        return self._snapshots > 0

    @property
    def palettes(self) -> list[PaletteEntity]:
        return list(self._cache.values())

    async def load(self) -> None:
        """Start following the collection; repeated calls reuse the live feed."""
        if self._subscription is not None and self._subscription.active:
            return
        self._subscription = self.gateway.subscribe(COLLECTION_PALETTES, self._apply_snapshot)
        logger.info("Subscribed to %s", COLLECTION_PALETTES)

    async def close(self) -> None:
        if self._subscription is None:
            return
        await self._subscription.cancel()
        self._subscription = None
        logger.info("Unsubscribed from %s", COLLECTION_PALETTES)

    async def add(self, colors: Sequence[str]) -> str:
        identity = self._require_identity("Sign in to create palettes")
        palette = PaletteEntity.new(colors, created_by=identity.uid, now=self._clock())
        # no local insert, the next snapshot carries the new palette
        key = await self.gateway.create(COLLECTION_PALETTES, palette.to_record())
        logger.info("User %s created palette %s", identity.uid, key)
        return key

    async def remove(self, palette_id: str) -> None:
        identity = self._require_identity("Sign in to delete palettes")
        if not can_mutate(self._cache.get(palette_id), identity):
            raise Unauthorized("You can only delete your own palettes")
        await self.gateway.delete(f"{COLLECTION_PALETTES}/{palette_id}")
        self._cache.pop(palette_id, None)
        logger.info("User %s deleted palette %s", identity.uid, palette_id)

    async def replace(self, palette: PaletteEntity) -> PaletteEntity:
        identity = self._require_identity("Sign in to edit palettes")
        if not palette.id:
            raise ValidationError("Only saved palettes can be replaced")
        cached = self._cache.get(palette.id)
        if not can_mutate(palette, identity) or (
            cached is not None and not can_mutate(cached, identity)
        ):
            raise Unauthorized("You can only edit your own palettes")
        palette = palette.validated()
        if cached is not None:
            palette = dataclasses.replace(
                palette, created_by=cached.created_by, created_at=cached.created_at
            )
        await self.gateway.overwrite(f"{COLLECTION_PALETTES}/{palette.id}", palette.to_record())
        self._cache[palette.id] = palette
        return palette

    async def reorder(self, palette_id: str, colors: Sequence[str]) -> PaletteEntity:
        """Store a new color order for a palette as a full replace."""
        identity = self._require_identity("Sign in to edit palettes")
        current = self._cache.get(palette_id)
        if current is None or not can_mutate(current, identity):
            raise Unauthorized("You can only edit your own palettes")
        return await self.replace(current.with_colors(colors))

    def by_id(self, palette_id: str) -> PaletteEntity | None:
        return self._cache.get(palette_id)

    def displayed(self, only_mine: bool = False, shuffled: bool = False) -> list[PaletteEntity]:
        items = list(self._cache.values())
        if only_mine:
            identity = self._identity()
            if identity is None:
                return []
            items = [p for p in items if p.created_by == identity.uid]
        if shuffled:
            return [items[i] for i in self._rng.permutation(len(items))]
        # stable: equal timestamps keep snapshot order
        return sorted(items, key=lambda p: p.created_at_dt, reverse=True)

    def _require_identity(self, message: str) -> IdentityEntity:
        identity = self._identity()
        if identity is None:
            raise Unauthenticated(message)
        return identity

    def _apply_snapshot(self, snapshot: Snapshot) -> None:
        self._cache = {
            key: PaletteEntity.from_record(key, record) for key, record in (snapshot or {}).items()
        }
        self._snapshots += 1
        logger.debug("Palette snapshot %d with %d records", self._snapshots, len(self._cache))
