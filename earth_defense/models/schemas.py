# earth_defense/models/schemas.py
"""Request bodies accepted by the HTTP API."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from earth_defense.models.entities import Action, ActionType
from earth_defense.models.errors import InvalidActionError, InvalidRequestError


class ApiModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class ActionPayload(ApiModel):
    type: str
    target_id: Optional[str] = Field(None, alias="targetId")
    resource: Optional[str] = None

    def to_action(self) -> Action:
        """Parse the wire tag into a closed action type."""
        try:
            action_type = ActionType(self.type)
        except ValueError:
            raise InvalidActionError(f"Unknown action type: {self.type}") from None
        if action_type.needs_target and not self.target_id:
            raise InvalidActionError(f"{action_type.value} requires a targetId")
        return Action(type=action_type, targetId=self.target_id)


class SessionRequest(ApiModel):
    session_id: Optional[str] = Field(None, alias="sessionId")

    def require_session(self) -> str:
        if not self.session_id:
            raise InvalidRequestError("Session ID required")
        return self.session_id


class LevelActionRequest(SessionRequest):
    action: Optional[ActionPayload] = None

    def require_action(self) -> Action:
        if self.action is None:
            raise InvalidRequestError("Action is required")
        return self.action.to_action()


class BurnupRequest(SessionRequest):
    asteroid_id: Optional[str] = Field(None, alias="asteroidId")

    def require_asteroid(self) -> str:
        if not self.asteroid_id:
            raise InvalidRequestError("Asteroid ID required")
        return self.asteroid_id


class ProgressionUpdateRequest(ApiModel):
    player_progression: Optional[Dict[str, Any]] = Field(None, alias="playerProgression")
    level_results: Optional[Dict[str, Any]] = Field(None, alias="levelResults")


class GameActionRequest(ApiModel):
    action: Optional[ActionPayload] = None

    def require_action(self) -> Action:
        if self.action is None:
            raise InvalidRequestError("Action is required")
        return self.action.to_action()


class UpgradeRequest(ApiModel):
    upgrade_type: Optional[str] = Field(None, alias="upgradeType")

    def require_upgrade(self) -> str:
        if not self.upgrade_type:
            raise InvalidRequestError("Upgrade type is required")
        return self.upgrade_type
