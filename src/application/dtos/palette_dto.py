from __future__ import annotations

from pydantic import BaseModel, Field

from src.domain.entities.palette import PaletteEntity


class PaletteItem(BaseModel):
    """A palette as shown to the UI."""
    id: str = Field(..., description="Store key of the palette", example="3f2b9c0e5d7a4c1e9b8f6a2d4c0e1b7f")
    colors: list[str] = Field(..., description="Ordered color codes", example=["#AABBCC", "#112233"])
    created_by: str = Field(..., description="uid of the palette creator")
    created_at: str = Field(..., description="ISO timestamp when the palette was created")

    @classmethod
    def from_entity(cls, palette: PaletteEntity) -> PaletteItem:
        return cls(
            id=palette.id or "",
            colors=list(palette.colors),
            created_by=palette.created_by,
            created_at=palette.created_at,
        )


class ListPalettesResponse(BaseModel):
    """Response model for the displayed palette list."""
    palettes: list[PaletteItem] = Field(..., description="Palettes in display order")


class CreatePaletteBody(BaseModel):
    """Request model for creating a palette."""
    colors: list[str] = Field(..., description="Ordered color codes", example=["#AABBCC"])


class CreatePaletteResponse(BaseModel):
    id: str = Field(..., description="Store key assigned to the new palette")


class ReplacePaletteBody(BaseModel):
    """Full palette record; creator and creation time must match the stored palette."""
    colors: list[str] = Field(..., description="Ordered color codes")
    created_by: str = Field(..., description="uid of the palette creator")
    created_at: str = Field(..., description="ISO timestamp when the palette was created")


class ReorderColorsBody(BaseModel):
    colors: list[str] = Field(..., description="Colors of the palette in their new order")


class DeletePaletteResponse(BaseModel):
    ok: bool = Field(True, description="Indicates whether the deletion was successful")
