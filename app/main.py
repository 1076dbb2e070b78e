import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.client import CoordinationClient
from app.config import settings
from app.deps import get_store
from app.errors import ApiError, ConflictError, InvalidInput, NotFound
from app.routers import equipment, projects, requests
from app.store import FleetStore

logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def create_app(client: Optional[CoordinationClient] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if client is not None:
            # the caller owns an injected client
            logger.info("Coordination dashboard API talking to %s", client.base_url)
            yield
            return
        default = CoordinationClient()
        app.state.store = FleetStore(default)
        logger.info("Coordination dashboard API talking to %s", default.base_url)
        try:
            yield
        finally:
            default.close()

    app = FastAPI(title="Site Coordination Dashboard API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if client is not None:
        app.state.store = FleetStore(client)

    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError):
        return JSONResponse(
            status_code=502,
            content={"detail": exc.message, "upstreamStatus": exc.status_code},
        )

    @app.exception_handler(InvalidInput)
    async def _invalid_input(request: Request, exc: InvalidInput):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(ConflictError)
    async def _conflict(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409,
            content={"detail": exc.message, "conflicts": exc.conflicts},
        )

    @app.exception_handler(NotFound)
    async def _not_found(request: Request, exc: NotFound):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    # Routers
    app.include_router(equipment.router)
    app.include_router(requests.router)
    app.include_router(projects.router)

    @app.get("/health")
    def health_check(store: FleetStore = Depends(get_store)):
        return {"status": "ok", "api": store.client.base_url}

    return app


app = create_app()
