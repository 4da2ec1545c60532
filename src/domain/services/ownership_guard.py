from __future__ import annotations

from src.domain.entities.identity import IdentityEntity
from src.domain.entities.palette import PaletteEntity


def can_mutate(record: PaletteEntity | None, identity: IdentityEntity | None) -> bool:
    """Only the creator of a palette may change or delete it."""
    if record is None or identity is None:
        return False
    return bool(record.created_by) and identity.uid == record.created_by
