from __future__ import annotations

from fastapi import Depends, HTTPException, Request, status

from src.application.services.identity_session import IdentitySessionManager
from src.application.services.palette_collection import PaletteCollectionStore
from src.domain.entities.identity import IdentityEntity


def get_session(request: Request) -> IdentitySessionManager:
    return request.app.state.session


def get_palette_store(request: Request) -> PaletteCollectionStore:
    return request.app.state.palettes


def get_current_identity(
    session: IdentitySessionManager = Depends(get_session),
) -> IdentityEntity:
    identity = session.current_identity()
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not signed in")
    return identity
