from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any

from src.domain.errors import ValidationError

_EPOCH = datetime.min.replace(tzinfo=UTC)


def _clean_colors(colors: Any) -> tuple[str, ...]:
    if isinstance(colors, (str, bytes)) or not isinstance(colors, (list, tuple)):
        raise ValidationError("Palette colors must be a sequence of color strings")
    out: list[str] = []
    for color in colors:
        if not isinstance(color, str) or not color.strip():
            raise ValidationError(f"Invalid color value: {color!r}")
        out.append(color.strip())
    if not out:
        raise ValidationError("A palette needs at least one color")
    return tuple(out)


@dataclass(frozen=True)
class PaletteEntity:
    id: str | None  # store key, None until first persist
    colors: tuple[str, ...]  # order-significant
    created_by: str  # creator uid, never changed after creation
    created_at: str  # ISO-8601, set once at creation

    @classmethod
    def new(cls, colors: Any, created_by: str, now: datetime | None = None) -> PaletteEntity:
        """Build an unsaved palette from user input, raising ValidationError on bad colors."""
        stamp = (now or datetime.now(UTC)).isoformat()
        return cls(id=None, colors=_clean_colors(colors), created_by=created_by, created_at=stamp)

    @classmethod
    def from_record(cls, key: str, record: Any) -> PaletteEntity:
        """Convert a raw store record; malformed colors yield a zero-color palette."""
        data = record if isinstance(record, dict) else {}
        try:
            colors = _clean_colors(data.get("colors") or [])
        except ValidationError:
            colors = ()
        return cls(
            id=key,
            colors=colors,
            created_by=str(data.get("createdBy") or ""),
            created_at=str(data.get("createdAt") or ""),
        )

    def to_record(self) -> dict[str, Any]:
        return {
            "colors": list(self.colors),
            "createdBy": self.created_by,
            "createdAt": self.created_at,
        }

    def is_valid(self) -> bool:
        try:
            _clean_colors(list(self.colors))
        except ValidationError:
            return False
        return True

    def validated(self) -> PaletteEntity:
        """Return a copy with normalized colors or raise ValidationError."""
        return replace(self, colors=_clean_colors(list(self.colors)))

    def with_colors(self, colors: Any) -> PaletteEntity:
        return replace(self, colors=_clean_colors(colors))

    @property
    def created_at_dt(self) -> datetime:
        """Parsed creation time; unparseable values sort as the oldest possible."""
        try:
            parsed = datetime.fromisoformat(self.created_at)
        except (TypeError, ValueError):
            return _EPOCH
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed
