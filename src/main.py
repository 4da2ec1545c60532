from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from src.application.dtos.common_dto import HealthResponse, RootResponse
from src.application.services.identity_session import IdentitySessionManager
from src.application.services.palette_collection import PaletteCollectionStore
from src.infrastructure.api.middlewares import add_default_middlewares, add_error_handlers
from src.infrastructure.api.routes.auth_routes import router as auth_router
from src.infrastructure.api.routes.palette_routes import router as palette_router
from src.infrastructure.database.remote_gateway import RemoteDataGateway
from src.infrastructure.database.repositories.profile_repository import ProfileRepository
from src.infrastructure.database.supabase_client import SupabaseAuthAdapter, get_supabase_client

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    client = await get_supabase_client()
    gateway = RemoteDataGateway(client)
    session = IdentitySessionManager(SupabaseAuthAdapter(client), ProfileRepository(gateway))
    palettes = PaletteCollectionStore(gateway, session.current_identity)
    await session.listen()
    await palettes.load()
    app.state.session = session
    app.state.palettes = palettes
    logger.info("Palette service started (%s store)", "local" if gateway.local else "supabase")
    try:
        yield
    finally:
        await palettes.close()
        await session.close()


def create_app() -> FastAPI:
    app = FastAPI(
        title="ChromaKit Palettes",
        version="0.1.0",
        description="""
        ## ChromaKit Palettes API

        Local companion service for the palette UI: keeps the signed-in session and a
        live copy of the shared palette collection stored in Supabase.

        ### Features
        - **Authentication**: Google, email/password sign-in and signup through Supabase Auth
        - **Profiles**: Stored profile fields merged into the signed-in identity
        - **Palettes**: Create, list, reorder and delete shared color palettes
        - **Live updates**: The palette list follows every change in the remote store

        ### Error Responses
        - **401 Unauthorized**: Not signed in or credentials rejected
        - **403 Forbidden**: The palette belongs to another user
        - **404 Not Found**: Palette does not exist
        - **422 Unprocessable Entity**: Invalid palette or request body
        - **502 Bad Gateway**: The remote store rejected the call
        """,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )
    add_default_middlewares(app)
    add_error_handlers(app)

    @app.get(
        "/",
        response_model=RootResponse,
        summary="API Root",
        description="Get basic information about the palette service",
        response_description="Service information including status and version",
    )
    def root():
        """Get API root information."""
        return {"status": "ok", "service": "chromakit-palettes", "version": app.version}

    @app.get(
        "/health",
        response_model=HealthResponse,
        summary="Health Check",
        description="Check if the service is running and the palette feed delivered data",
    )
    def health(request: Request):
        """Check API health status."""
        palettes = getattr(request.app.state, "palettes", None)
        return {"status": "healthy", "palettes_loaded": bool(palettes and palettes.loaded)}

    app.include_router(auth_router)
    app.include_router(palette_router)
    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn (HOST/PORT from the environment)."""
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(message)s")
    uvicorn.run(
        app,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        log_level="info",
    )
