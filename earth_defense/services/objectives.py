# earth_defense/services/objectives.py
"""Objective progress, victory and failure evaluation for level sessions."""

import logging
from typing import Callable, Dict, List, Optional, Tuple

from earth_defense.models.entities import LevelState, Objective
from earth_defense.config.settings import FRAGMENTATION_DIAMETER

logger = logging.getLogger(__name__)

# Objectives that can still be lost after they have been met.
FAILABLE_OBJECTIVES = frozenset({"perfect_clear", "resource_limit"})

# Objectives whose current value follows a live metric even once completed.
LIVE_OBJECTIVES = FAILABLE_OBJECTIVES | {"maintain_health", "accuracy"}


def _fail(objective: Objective) -> None:
    objective.failed = True
    objective.completed = False


def _reach_target(objective: Objective, value: float) -> None:
    objective.current = value
    if objective.target is not None and value >= objective.target:
        objective.completed = True


def _destroy_asteroids(objective, state, now):
    """Rocks taken out by deflection, fragmenting hits included."""
    _reach_target(objective, state.levelPerformance.asteroidsDestroyed)


def _destroy_large(objective, state, now):
    """Hits on rocks bigger than the objective's minimum size."""
    min_size = FRAGMENTATION_DIAMETER if objective.minSize is None else objective.minSize
    hits = [d for d in state.levelPerformance.hitDiameters if d > min_size]
    _reach_target(objective, len(hits))


def _fragment_asteroids(objective, state, now):
    """Hits that broke a rock apart."""
    _reach_target(objective, state.levelPerformance.asteroidsFragmented)


def _atmospheric_burnup(objective, state, now):
    """Small rocks left to burn up."""
    _reach_target(objective, state.levelPerformance.asteroidsBurnedUp)


def _deploy_satellite(objective, state, now):
    """Satellites deployed during the level."""
    _reach_target(objective, state.levelPerformance.satellitesDeployed)


def _survive_waves(objective, state, now):
    """Waves spawned so far."""
    _reach_target(objective, state.currentWave)


def _survive_time(objective, state, now):
    """Whole seconds since the level started."""
    _reach_target(objective, int(now - state.levelStartTime))


def _maintain_health(objective, state, now):
    """Earth health at or above the threshold."""
    objective.current = state.earthHealth
    if state.earthHealth >= (objective.threshold or 0):
        objective.completed = True


def _accuracy(objective, state, now):
    """Hit ratio at or above the threshold."""
    objective.current = state.levelPerformance.accuracy
    if state.levelPerformance.accuracy >= (objective.threshold or 0):
        objective.completed = True


def _perfect_clear(objective, state, now):
    """No more misses than allowed. Lost for good once exceeded."""
    missed = state.levelPerformance.asteroidsMissed
    objective.current = missed
    if missed > (objective.allowedMisses or 0):
        _fail(objective)
    elif missed == 0:
        objective.completed = True


def _resource_limit(objective, state, now):
    """Spending kept under the cap. Lost for good once exceeded."""
    spent = state.levelPerformance.fundsSpent
    objective.current = spent
    if spent > _max_spent(objective, state):
        _fail(objective)
    else:
        objective.completed = True


def _max_spent(objective: Objective, state: LevelState) -> float:
    if objective.maxSpent is not None:
        return objective.maxSpent
    if state.restrictions.maxFundsSpent is not None:
        return state.restrictions.maxFundsSpent
    return float("inf")


_EVALUATORS: Dict[str, Callable[[Objective, LevelState, float], None]] = {
    "destroy_asteroids": _destroy_asteroids,
    "destroy_large": _destroy_large,
    "fragment_asteroids": _fragment_asteroids,
    "atmospheric_burnup": _atmospheric_burnup,
    "deploy_satellite": _deploy_satellite,
    "survive_waves": _survive_waves,
    "survive_time": _survive_time,
    "maintain_health": _maintain_health,
    "accuracy": _accuracy,
    "perfect_clear": _perfect_clear,
    "resource_limit": _resource_limit,
}


def evaluate_objectives(state: LevelState, now: float) -> List[Objective]:
    """Recompute progress of every open objective. Safe to call repeatedly."""
    for objective in state.levelObjectives:
        if objective.failed:
            continue
        if objective.completed and objective.type not in LIVE_OBJECTIVES:
            continue
        evaluator = _EVALUATORS.get(objective.type)
        if evaluator is None:
            logger.warning("Unknown objective type %r on %s", objective.type, objective.id)
            continue
        evaluator(objective, state, now)
    return state.levelObjectives


def _objective_satisfied(objective: Objective, state: LevelState) -> bool:
    performance = state.levelPerformance
    if objective.type == "maintain_health":
        return state.earthHealth >= (objective.threshold or 0)
    if objective.type == "perfect_clear":
        return performance.asteroidsMissed <= (objective.allowedMisses or 0)
    if objective.type == "resource_limit":
        return performance.fundsSpent <= _max_spent(objective, state)
    return objective.completed


def check_victory(state: LevelState) -> bool:
    """All waves out, sky clear, every objective met."""
    if state.currentWave < state.totalWaves:
        return False
    if state.threats:
        return False
    return all(_objective_satisfied(obj, state) for obj in state.levelObjectives)


def check_failure(state: LevelState) -> Tuple[bool, Optional[str]]:
    if state.earthHealth <= 0:
        return True, "Earth health depleted"
    for objective in state.levelObjectives:
        if objective.failed:
            return True, f"Objective failed: {objective.description}"
    return False, None


def settle(state: LevelState) -> None:
    """Apply victory/failure flags. Failure wins ties; both flags are terminal."""
    if state.finished:
        return

    failed, reason = check_failure(state)
    if failed:
        state.levelFailed = True
        state.failureReason = reason
        logger.info("Level %s failed: %s", state.currentLevel, reason)
    elif check_victory(state):
        state.levelComplete = True
        logger.info("Level %s complete", state.currentLevel)
