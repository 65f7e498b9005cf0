# earth_defense/api/routes.py
"""API routes for the Earth Defense server."""

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Query

from earth_defense.models.entities import LevelResults, LevelState, PlayerProgression
from earth_defense.models.errors import InvalidRequestError
from earth_defense.models.schemas import (
    BurnupRequest,
    GameActionRequest,
    LevelActionRequest,
    ProgressionUpdateRequest,
    SessionRequest,
    UpgradeRequest,
)
from earth_defense.services.game_service import GameService
from earth_defense.services.level_service import LevelService
from earth_defense.services.neo_service import NeoClient, classify_neo_risk
from earth_defense.config.settings import NEO_FEED_DAYS, get_game_config

logger = logging.getLogger(__name__)


def serialize_level_state(state: LevelState) -> dict:
    """Client view of a session. Wave definitions are never part of it."""
    return asdict(state)


class LevelAPI:
    """Campaign level endpoints under /api/levels."""

    def __init__(self, level_service: LevelService):
        self.level_service = level_service
        self.router = APIRouter(prefix="/api/levels", tags=["levels"])
        self._setup_routes()

    def get_service(self) -> LevelService:
        """Dependency that hands routes the shared level service."""
        return self.level_service

    def _setup_routes(self):
        """Set up all level routes."""

        @self.router.get("")
        async def list_levels(service: LevelService = Depends(self.get_service)):
            """Level summaries without objectives or waves."""
            return service.list_levels()

        @self.router.get("/session/state")
        async def get_level_state(
            sessionId: str = Query(None),
            service: LevelService = Depends(self.get_service),
        ):
            """Catch the session up to now and return it."""
            session_id = SessionRequest(sessionId=sessionId).require_session()
            return serialize_level_state(service.get_state(session_id))

        @self.router.post("/session/action")
        async def process_level_action(
            body: LevelActionRequest,
            service: LevelService = Depends(self.get_service),
        ):
            """Apply one player action; refusals come back with success false."""
            session_id = body.require_session()
            action = body.require_action()
            result, state = service.perform_action(session_id, action)
            return {**asdict(result), "levelState": serialize_level_state(state)}

        @self.router.post("/session/burnup")
        async def handle_burnup(
            body: BurnupRequest,
            service: LevelService = Depends(self.get_service),
        ):
            """Let a small asteroid burn up in the atmosphere."""
            state = service.handle_burnup(body.require_session(), body.require_asteroid())
            return {"success": True, "levelState": serialize_level_state(state)}

        @self.router.post("/session/complete")
        async def complete_level(
            body: SessionRequest,
            service: LevelService = Depends(self.get_service),
        ):
            """Final results; the session is gone afterwards."""
            return asdict(service.complete_level(body.require_session()))

        @self.router.post("/progression/update")
        async def update_progression(
            body: ProgressionUpdateRequest,
            service: LevelService = Depends(self.get_service),
        ):
            """Merge level results into the client's stored progression."""
            if not body.level_results:
                raise InvalidRequestError("Level results required")
            try:
                progression = PlayerProgression.from_dict(body.player_progression)
                results = LevelResults.from_dict(body.level_results)
            except (KeyError, TypeError, ValueError) as exc:
                raise InvalidRequestError(f"Invalid progression payload: {exc}") from exc
            return asdict(service.update_progression(progression, results))

        @self.router.get("/{level_id}")
        async def get_level(level_id: str, service: LevelService = Depends(self.get_service)):
            """Full level definition, including objectives and waves."""
            return asdict(service.get_level(level_id))

        @self.router.post("/{level_id}/start")
        async def start_level(level_id: str, service: LevelService = Depends(self.get_service)):
            """Open a new session for a level."""
            session = service.start_level(level_id)
            return {
                "sessionId": session.sessionId,
                "levelState": serialize_level_state(session.state),
            }


class GameAPI:
    """Endless-mode endpoints under /api/game."""

    def __init__(self, game_service: GameService):
        self.game_service = game_service
        self.router = APIRouter(prefix="/api/game", tags=["game"])
        self._setup_routes()

    def _setup_routes(self):
        """Set up all endless-mode routes."""

        @self.router.get("/config")
        async def get_game_config_endpoint():
            """Costs, caps and timings the client displays."""
            return get_game_config()

        @self.router.get("/state")
        async def get_game_state():
            """Current endless-mode state."""
            return {"success": True, "gameState": asdict(self.game_service.get_state())}

        @self.router.post("/events")
        async def generate_events():
            """Pull today's asteroids into the threat list."""
            events = await self.game_service.generate_events()
            return {
                "success": True,
                "events": [asdict(event) for event in events],
                "gameState": asdict(self.game_service.get_state()),
            }

        @self.router.post("/action")
        async def process_action(body: GameActionRequest):
            """Apply one player action to the endless game."""
            result = self.game_service.process_action(body.require_action())
            return {
                "success": True,
                "result": asdict(result),
                "gameState": asdict(self.game_service.get_state()),
            }

        @self.router.post("/upgrade")
        async def purchase_upgrade(body: UpgradeRequest):
            """Buy a one-off upgrade."""
            result = self.game_service.purchase_upgrade(body.require_upgrade())
            return {
                "success": True,
                "result": asdict(result),
                "gameState": asdict(self.game_service.get_state()),
            }

        @self.router.post("/advance-day")
        async def advance_day():
            """Settle today's threats and start the next day."""
            state = await self.game_service.advance_day()
            return {"success": True, "gameState": asdict(state)}

        @self.router.post("/reset")
        async def reset_game():
            """Start a fresh endless game."""
            state = await self.game_service.reset()
            return {"success": True, "gameState": asdict(state)}


class NeoAPI:
    """Near-Earth object feed and service health."""

    def __init__(self, neo_client: NeoClient, level_service: LevelService):
        self.neo_client = neo_client
        self.level_service = level_service
        self.router = APIRouter(prefix="/api", tags=["neo"])
        self._setup_routes()

    def _setup_routes(self):
        """Set up the NEO and health routes."""

        @self.router.get("/neo/asteroids")
        async def get_near_earth_objects(days: int = Query(NEO_FEED_DAYS, ge=1, le=NEO_FEED_DAYS)):
            """Recent close approaches with a risk level each."""
            records = await self.neo_client.get_near_earth_objects(days)
            asteroids = [
                {**asdict(record), "riskLevel": classify_neo_risk(record)} for record in records
            ]
            return {"success": True, "asteroids": asteroids, "count": len(asteroids)}

        @self.router.get("/health")
        async def health():
            """Liveness plus level and session counts."""
            return {
                "status": "ok",
                "levels": self.level_service.repository.count,
                "activeSessions": len(self.level_service.store),
            }
