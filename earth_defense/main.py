# earth_defense/main.py
"""Earth Defense Command HTTP server."""

import logging
import random
import time
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from earth_defense.api.routes import GameAPI, LevelAPI, NeoAPI
from earth_defense.models.errors import EarthDefenseError
from earth_defense.config.settings import Settings, get_settings
from earth_defense.services.game_service import GameService
from earth_defense.services.level_catalog import LevelRepository
from earth_defense.services.level_service import LevelService
from earth_defense.services.neo_service import NeoClient
from earth_defense.services.session_store import SessionStore

logger = logging.getLogger(__name__)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg", ""))
    return "; ".join(parts) or "Invalid request"


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves the API as {"error": message}."""

    @app.exception_handler(EarthDefenseError)
    async def domain_error_handler(request: Request, exc: EarthDefenseError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"error": str(exc)})


def create_app(
    settings: Optional[Settings] = None,
    repository: Optional[LevelRepository] = None,
    neo_client=None,
    clock: Callable[[], float] = time.time,
    rng: Optional[random.Random] = None,
) -> FastAPI:
    """Build the application. Tests pass a fake clock, seeded rng and NEO source."""
    settings = settings or get_settings()
    rng = rng or random.Random()
    neo_client = neo_client or NeoClient(settings)

    level_service = LevelService(
        repository=repository or LevelRepository(),
        store=SessionStore(),
        clock=clock,
        rng=rng,
    )
    game_service = GameService(neo_source=neo_client, rng=rng, clock=clock)

    app = FastAPI(title="Earth Defense Command")

    # Enable CORS for client communication
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(LevelAPI(level_service).router)
    app.include_router(GameAPI(game_service).router)
    app.include_router(NeoAPI(neo_client, level_service).router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {"message": "Earth Defense Command Server Running"}

    app.state.level_service = level_service
    app.state.game_service = game_service
    logger.info("Earth Defense server ready with %d levels", level_service.repository.count)
    return app


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


configure_logging(get_settings())
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
