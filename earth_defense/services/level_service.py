# earth_defense/services/level_service.py
"""Campaign level sessions: start, poll, act, burn up and complete."""

import logging
import math
import random
import time
from typing import Callable, List, Optional, Tuple

from earth_defense.models.entities import (
    Action,
    ActionResult,
    ActionType,
    LevelDefinition,
    LevelResults,
    LevelSession,
    LevelState,
    PerformanceLog,
    PlayerProgression,
    Probe,
    Satellite,
)
from earth_defense.models.errors import InvalidActionError
from earth_defense.config.settings import (
    BURNUP_MAX_DIAMETER,
    PROBES_PER_ORBIT_LAYER,
    SATELLITE_POWER_DRAIN,
    SCORE_BURNUP,
)
from earth_defense.services.actions import apply_action
from earth_defense.services.level_catalog import LevelRepository
from earth_defense.services.objectives import evaluate_objectives, settle
from earth_defense.services.scoring import generate_results, update_progression
from earth_defense.services.session_store import SessionStore
from earth_defense.services.wave_scheduler import catch_up, regenerate_power, start_waves

logger = logging.getLogger(__name__)


def build_level_state(level: LevelDefinition, now: float) -> LevelState:
    """Fresh session state from a level's starting loadout."""
    resources = level.startingResources
    return LevelState(
        currentLevel=level.id,
        levelName=level.name,
        levelType=level.type,
        levelDifficulty=level.difficulty,
        levelStartTime=now,
        lastRegenTime=now,
        funds=resources.funds,
        power=resources.power,
        availableProbes=resources.availableProbes,
        satellites=[
            Satellite(
                id=f"sat-level-{level.id}-{idx}",
                level=sat.level,
                detectionRadius=sat.detectionRadius,
                orbitPosition=sat.orbitPosition,
                powerDrain=SATELLITE_POWER_DRAIN,
            )
            for idx, sat in enumerate(resources.satellites)
        ],
        probes=[
            Probe(
                id=f"probe-level-{level.id}-{idx}",
                level=probe.level,
                laserPower=probe.laserPower,
                orbitPosition=probe.orbitPosition,
                orbitLayer=idx // PROBES_PER_ORBIT_LAYER,
            )
            for idx, probe in enumerate(resources.probes)
        ],
        levelObjectives=[objective.copy() for objective in level.objectives],
        levelPerformance=PerformanceLog(),
        restrictions=level.restrictions,
    )


def track_performance(
    before: LevelState, after: LevelState, action: Action, result: ActionResult
) -> None:
    """Fold one resolved action into the session's performance log."""
    performance = after.levelPerformance

    spent = before.funds - after.funds
    if spent > 0:
        performance.fundsSpent += spent
    performance.damageTaken += result.damage

    if result.success:
        if action.type is ActionType.DEFLECT_ASTEROID:
            target = next(t for t in before.threats if t.id == action.targetId)
            performance.hitDiameters.append(target.diameter)
            # A fragmenting hit still takes the original rock out of play
            performance.asteroidsDestroyed += 1
            if result.fragmented:
                performance.asteroidsFragmented += 1
        elif action.type is ActionType.DEPLOY_SATELLITE:
            performance.satellitesDeployed += 1
        elif action.type is ActionType.LAUNCH_PROBE:
            performance.probesLaunched += 1
        elif action.type is ActionType.ASTEROID_IMPACT:
            performance.asteroidsMissed += 1

    hits = len(performance.hitDiameters)
    attempts = hits + performance.asteroidsMissed
    if attempts > 0:
        performance.accuracy = hits / attempts


class LevelService:
    """Drives level sessions. Time only moves when a request arrives."""

    def __init__(
        self,
        repository: Optional[LevelRepository] = None,
        store: Optional[SessionStore] = None,
        clock: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ):
        self.repository = repository or LevelRepository()
        self.store = store if store is not None else SessionStore()
        self.clock = clock
        self.rng = rng or random.Random()

    def list_levels(self) -> List[dict]:
        return self.repository.summaries()

    def get_level(self, level_id) -> LevelDefinition:
        return self.repository.get(level_id)

    def start_level(self, level_id) -> LevelSession:
        level = self.repository.get(level_id)
        now = self.clock()
        state = build_level_state(level, now)
        start_waves(state, level, now)
        session = self.store.create(level, state, now)
        logger.info("Level %d (%s) started as %s", level.id, level.name, session.sessionId)
        return session

    def _advance(self, session: LevelSession, now: float) -> LevelState:
        """Catch the session up to now and re-run the objective checks."""
        state = session.state
        if state.finished:
            return state

        catch_up(state, session.level, now)
        regenerate_power(state, now)
        elapsed = math.floor(now - state.levelStartTime)
        state.levelTimeElapsed = elapsed
        state.levelPerformance.timeElapsed = elapsed

        evaluate_objectives(state, now)
        settle(state)
        return state

    def get_state(self, session_id: str) -> LevelState:
        session = self.store.get(session_id)
        return self._advance(session, self.clock())

    def perform_action(self, session_id: str, action: Action) -> Tuple[ActionResult, LevelState]:
        session = self.store.get(session_id)
        now = self.clock()
        state = self._advance(session, now)

        if state.finished:
            return ActionResult(success=False, message="Level is already over"), state

        new_state, result = apply_action(state, action, self.rng)
        if new_state is state:
            return result, state

        track_performance(state, new_state, action, result)
        session.state = new_state
        evaluate_objectives(new_state, now)
        settle(new_state)
        return result, new_state

    def handle_burnup(self, session_id: str, asteroid_id: str) -> LevelState:
        """Small asteroid left alone burns up in the atmosphere."""
        session = self.store.get(session_id)
        now = self.clock()
        state = self._advance(session, now)

        if state.finished:
            raise InvalidActionError("Level is already over")

        threat = next((t for t in state.threats if t.id == asteroid_id), None)
        if threat is None:
            raise InvalidActionError("Threat not found")
        if threat.diameter > BURNUP_MAX_DIAMETER:
            raise InvalidActionError(
                f"{threat.name} is too large to burn up ({threat.diameter:g}m)"
            )

        state.threats.remove(threat)
        state.levelPerformance.asteroidsBurnedUp += 1
        state.score += SCORE_BURNUP

        evaluate_objectives(state, now)
        settle(state)
        return state

    def complete_level(self, session_id: str) -> LevelResults:
        session = self.store.get(session_id)
        now = self.clock()
        state = self._advance(session, now)

        results = generate_results(state, session.level, now, self.repository.count)
        self.store.remove(session_id)
        logger.info(
            "Level %d completed: victory=%s stars=%d score=%d",
            session.levelId,
            results.victory,
            results.stars,
            state.score,
        )
        return results

    def update_progression(
        self, progression: Optional[PlayerProgression], results: LevelResults
    ) -> PlayerProgression:
        return update_progression(progression, results)
