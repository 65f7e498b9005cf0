# earth_defense/services/scoring.py
"""Star ratings, rewards, results and progression merging."""

import copy
import logging
import math
import uuid
from typing import List, Optional

from earth_defense.models.entities import (
    LevelDefinition,
    LevelResults,
    LevelState,
    PlayerProgression,
    RewardSummary,
    StarThreshold,
)
from earth_defense.config.settings import DEFAULT_GEMS, GEM_MULTIPLIERS

logger = logging.getLogger(__name__)

# Unlock token suffix -> unlockedAssets key
_ASSET_SUFFIXES = {
    "_satellite": "satellites",
    "_probe": "probes",
    "_ability": "abilities",
}


def check_star_threshold(state: LevelState, threshold: Optional[StarThreshold]) -> bool:
    """Every condition the threshold sets must hold; unset ones are ignored."""
    if threshold is None:
        return False

    performance = state.levelPerformance

    if threshold.objectivesCompleted is not None:
        completed = sum(1 for obj in state.levelObjectives if obj.completed and not obj.failed)
        if completed < threshold.objectivesCompleted:
            return False

    if threshold.healthRemaining is not None:
        if state.earthHealth < threshold.healthRemaining:
            return False

    if threshold.asteroidsHit is not None:
        # Ceiling on asteroids that got through
        if performance.asteroidsMissed > threshold.asteroidsHit:
            return False

    if threshold.timeUnder is not None:
        if performance.timeElapsed > threshold.timeUnder:
            return False

    if threshold.fundsSpent is not None:
        if performance.fundsSpent > threshold.fundsSpent:
            return False

    return True


def calculate_stars(state: LevelState, level: LevelDefinition) -> int:
    """Highest tier whose own threshold and every lower one are met."""
    thresholds = level.rewards.starsThreshold
    stars = 0
    for tier in (1, 2, 3):
        if not check_star_threshold(state, thresholds.get(tier)):
            break
        stars = tier
    return stars


def calculate_gems(stars: int, level: LevelDefinition) -> int:
    base = level.rewards.gems or DEFAULT_GEMS
    return math.floor(base * GEM_MULTIPLIERS.get(stars, 1.0))


def collect_unlocks(level: LevelDefinition, level_count: int) -> List[str]:
    """Level unlock tokens plus the next level, when there is one."""
    unlocks = list(level.rewards.unlocks)
    next_level = f"level_{level.id + 1}"
    if next_level not in unlocks and level.id + 1 <= level_count:
        unlocks.append(next_level)
    return unlocks


def generate_results(
    state: LevelState, level: LevelDefinition, now: float, level_count: int
) -> LevelResults:
    """Assemble the end-of-level report. Only a victory earns stars and rewards."""
    elapsed = math.floor(now - state.levelStartTime)
    state.levelPerformance.timeElapsed = elapsed
    state.levelTimeElapsed = elapsed

    victory = state.levelComplete and not state.levelFailed
    stars = calculate_stars(state, level) if victory else 0
    objectives = [obj.copy() for obj in state.levelObjectives]

    return LevelResults(
        resultsId=uuid.uuid4().hex,
        levelId=level.id,
        levelName=level.name,
        victory=victory,
        stars=stars,
        objectives=objectives,
        objectivesCompleted=sum(1 for obj in objectives if obj.completed and not obj.failed),
        totalObjectives=len(objectives),
        performance=copy.deepcopy(state.levelPerformance),
        rewards=RewardSummary(
            score=state.score,
            gems=calculate_gems(stars, level) if victory else 0,
            unlocks=collect_unlocks(level, level_count) if victory else [],
        ),
        statistics={
            "finalEarthHealth": state.earthHealth,
            "finalFunds": state.funds,
            "finalReputation": state.reputation,
        },
    )


def _apply_unlock(progression: PlayerProgression, token: str) -> None:
    if token.startswith("level_"):
        try:
            level_id = int(token.split("_", 1)[1])
        except ValueError:
            logger.warning("Ignoring malformed unlock token %r", token)
            return
        if level_id not in progression.unlockedLevels:
            progression.unlockedLevels.append(level_id)
        return

    for suffix, key in _ASSET_SUFFIXES.items():
        if token.endswith(suffix):
            name = token[: -len(suffix)]
            assets = progression.unlockedAssets.setdefault(key, [])
            if name not in assets:
                assets.append(name)
            return

    logger.warning("Ignoring unknown unlock token %r", token)


def update_progression(
    progression: Optional[PlayerProgression], results: LevelResults
) -> PlayerProgression:
    """Merge level results into a player's progression.

    Best stars and best time only ever improve. Gems and unlocks accumulate.
    Results that carry a ``resultsId`` are applied at most once; a second
    submission of the same id returns the progression unchanged. Results
    without an id cannot be recognised, so their gems are credited on every
    submission.
    """
    merged = copy.deepcopy(progression) if progression else PlayerProgression()

    if results.resultsId is not None:
        if results.resultsId in merged.appliedResults:
            logger.info("Results %s already applied; skipping", results.resultsId)
            return merged
        merged.appliedResults.append(results.resultsId)

    level_id = results.levelId

    previous_stars = merged.levelStars.get(level_id, 0)
    if results.stars > previous_stars:
        merged.levelStars[level_id] = results.stars
        merged.totalStars += results.stars - previous_stars

    if results.victory:
        previous_time = merged.levelBestTimes.get(level_id, math.inf)
        if results.performance.timeElapsed < previous_time:
            merged.levelBestTimes[level_id] = results.performance.timeElapsed

    merged.gems += results.rewards.gems

    for token in results.rewards.unlocks:
        _apply_unlock(merged, token)
    merged.unlockedLevels.sort()

    return merged
