from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.application.dtos.palette_dto import (
    CreatePaletteBody,
    CreatePaletteResponse,
    DeletePaletteResponse,
    ListPalettesResponse,
    PaletteItem,
    ReorderColorsBody,
    ReplacePaletteBody,
)
from src.application.services.palette_collection import PaletteCollectionStore
from src.domain.entities.palette import PaletteEntity
from src.infrastructure.api.dependencies import get_palette_store

router = APIRouter(
    prefix="/palettes",
    tags=["Palettes"],
    responses={
        401: {"description": "Unauthorized - Not signed in"},
        403: {"description": "Forbidden - Palette belongs to another user"},
        422: {"description": "Validation Error - Invalid palette or request format"},
        502: {"description": "Bad Gateway - The remote store rejected the call"},
    },
)


@router.get(
    "",
    response_model=ListPalettesResponse,
    summary="List Palettes",
    description="""
    Palettes from the live cache in display order.

    - `only_mine`: keep only palettes created by the signed-in user (empty when
      signed out)
    - `shuffled`: random order, different on every call; otherwise newest first
    """,
)
async def list_palettes(
    only_mine: bool = Query(False, description="Only palettes created by the current user"),
    shuffled: bool = Query(False, description="Return palettes in random order"),
    palettes: PaletteCollectionStore = Depends(get_palette_store),
):
    """List palettes in display order."""
    items = palettes.displayed(only_mine=only_mine, shuffled=shuffled)
    return ListPalettesResponse(palettes=[PaletteItem.from_entity(p) for p in items])


@router.get(
    "/{palette_id}",
    response_model=PaletteItem,
    summary="Get Palette",
    responses={404: {"description": "Not Found - Palette is not in the collection"}},
)
async def get_palette(
    palette_id: str,
    palettes: PaletteCollectionStore = Depends(get_palette_store),
):
    """Look up one palette in the cache."""
    palette = palettes.by_id(palette_id)
    if palette is None:
        raise HTTPException(status_code=404, detail="Palette not found")
    return PaletteItem.from_entity(palette)


@router.post(
    "",
    response_model=CreatePaletteResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Palette",
    description="""
    Save a new palette owned by the signed-in user. The palette shows up in the
    list once the remote store pushes the next snapshot.
    """,
)
async def create_palette(
    body: CreatePaletteBody,
    palettes: PaletteCollectionStore = Depends(get_palette_store),
):
    """Create a palette."""
    palette_id = await palettes.add(body.colors)
    return {"id": palette_id}


@router.put(
    "/{palette_id}",
    response_model=PaletteItem,
    summary="Replace Palette",
    description="Overwrite a palette you own with a complete record.",
)
async def replace_palette(
    palette_id: str,
    body: ReplacePaletteBody,
    palettes: PaletteCollectionStore = Depends(get_palette_store),
):
    """Replace a whole palette."""
    palette = PaletteEntity(
        id=palette_id,
        colors=tuple(body.colors),
        created_by=body.created_by,
        created_at=body.created_at,
    )
    saved = await palettes.replace(palette)
    return PaletteItem.from_entity(saved)


@router.put(
    "/{palette_id}/colors",
    response_model=PaletteItem,
    summary="Reorder Palette Colors",
    description="Store a new color order, e.g. after a drag and drop.",
)
async def reorder_palette(
    palette_id: str,
    body: ReorderColorsBody,
    palettes: PaletteCollectionStore = Depends(get_palette_store),
):
    """Reorder the colors of a palette you own."""
    saved = await palettes.reorder(palette_id, body.colors)
    return PaletteItem.from_entity(saved)


@router.delete(
    "/{palette_id}",
    response_model=DeletePaletteResponse,
    summary="Delete Palette",
)
async def delete_palette(
    palette_id: str,
    palettes: PaletteCollectionStore = Depends(get_palette_store),
):
    """Delete a palette you own."""
    await palettes.remove(palette_id)
    return {"ok": True}
