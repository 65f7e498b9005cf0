# earth_defense/services/actions.py
"""Player actions against a defense state.

``apply_action`` never mutates its input. It works on a copy and returns the
copy together with the result. An action refused up front (not enough funds,
unknown target, level cap) hands back the original state object untouched.
"""

import copy
import logging
import math
import random
import uuid
from typing import Callable, Dict, List, Tuple, TypeVar

from earth_defense.models.entities import (
    Action,
    ActionResult,
    ActionType,
    DefenseState,
    Probe,
    Satellite,
    Threat,
)
from earth_defense.config.settings import *
from earth_defense.services.wave_scheduler import classify_threat
from earth_defense.utils.helpers import average, clamp, format_funds, time_to_impact

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=DefenseState)


class ActionRefused(Exception):
    """Raised by a handler before it touches state."""


def deflection_chance(threat: Threat, state: DefenseState) -> float:
    """Probability that a deflection mission against threat succeeds."""
    chance = BASE_DEFLECTION_CHANCE

    # Larger asteroids are harder to move
    if threat.diameter > 1000:
        chance -= 0.3
    elif threat.diameter > 500:
        chance -= 0.2
    elif threat.diameter > 100:
        chance -= 0.1

    # Faster asteroids are harder to hit
    if threat.velocity > 20:
        chance -= 0.2
    elif threat.velocity > 15:
        chance -= 0.1

    if state.upgrades.aiTracking:
        chance += UPGRADE_DEFLECTION_BONUS
    if state.upgrades.improvedRadar:
        chance += UPGRADE_DEFLECTION_BONUS

    probe_level = average((probe.level for probe in state.probes), default=1)
    chance += PROBE_LEVEL_DEFLECTION_BONUS * (probe_level - 1)

    return clamp(chance, MIN_DEFLECTION_CHANCE, MAX_DEFLECTION_CHANCE)


def average_laser_power(state: DefenseState) -> float:
    return average((probe.laserPower for probe in state.probes), default=PROBE_LASER_POWER)


def should_fragment(threat: Threat, state: DefenseState) -> bool:
    """Large asteroids hit without enough power break apart instead of vanishing."""
    if threat.diameter <= FRAGMENTATION_DIAMETER:
        return False
    power_ratio = average_laser_power(state) / threat.diameter
    return power_ratio < FRAGMENTATION_POWER_RATIO


def make_fragments(threat: Threat, count: int) -> List[Threat]:
    """Split threat into smaller, slower, more distant pieces."""
    fragments = []
    for i in range(count):
        offset = (i - (count - 1) / 2) * 0.15
        diameter = round(threat.diameter * FRAGMENT_SIZE_FACTOR, 1)
        velocity = round(threat.velocity * FRAGMENT_VELOCITY_FACTOR, 2)
        distance = threat.distance * FRAGMENT_DISTANCE_FACTOR
        fragments.append(
            Threat(
                id=f"{threat.id}-frag-{i}",
                name=f"{threat.name}-{chr(65 + i)}",
                severity=classify_threat(diameter, velocity, distance),
                waveNumber=threat.waveNumber,
                diameter=diameter,
                velocity=velocity,
                distance=distance,
                approachAngle=threat.approachAngle + offset,
                polarAngle=threat.polarAngle - offset,
                timeToImpact=time_to_impact(distance, velocity),
                impactProbability=threat.impactProbability,
                isHazardous=diameter > FRAGMENTATION_DIAMETER,
                detectedAt=threat.detectedAt,
                isFragment=True,
                parentId=threat.id,
            )
        )
    return fragments


def _find(items, target_id, what: str):
    for item in items:
        if item.id == target_id:
            return item
    raise ActionRefused(f"{what} not found")


def _require_funds(state: DefenseState, cost: float) -> None:
    if state.funds < cost:
        raise ActionRefused(f"Insufficient funds ({format_funds(cost)} required)")


def _deploy_satellite(state: DefenseState, action: Action, rng) -> ActionResult:
    _require_funds(state, SATELLITE_COST)
    if state.power < SATELLITE_POWER_COST:
        raise ActionRefused(f"Insufficient power ({SATELLITE_POWER_COST}% required)")

    index = len(state.satellites)
    state.satellites.append(
        Satellite(
            id=f"sat-{uuid.uuid4().hex[:8]}",
            level=1,
            detectionRadius=SATELLITE_DETECTION_RADIUS,
            orbitPosition=(index * math.pi * 0.75) % (2 * math.pi),
            powerDrain=SATELLITE_POWER_DRAIN,
        )
    )
    state.funds -= SATELLITE_COST
    state.power -= SATELLITE_POWER_COST
    return ActionResult(
        success=True,
        message="New satellite deployed to orbit",
        scoreChange=SCORE_DEPLOY_SATELLITE,
    )


def _launch_probe(state: DefenseState, action: Action, rng) -> ActionResult:
    _require_funds(state, PROBE_COST)

    index = len(state.probes)
    state.probes.append(
        Probe(
            id=f"probe-{uuid.uuid4().hex[:8]}",
            level=1,
            laserPower=PROBE_LASER_POWER,
            orbitPosition=(index * math.pi * 0.75) % (2 * math.pi),
            orbitLayer=index // PROBES_PER_ORBIT_LAYER,
        )
    )
    state.availableProbes += 1
    state.funds -= PROBE_COST
    return ActionResult(
        success=True,
        message="New probe launched to orbit",
        scoreChange=SCORE_LAUNCH_PROBE,
    )


def _research(state: DefenseState, action: Action, rng) -> ActionResult:
    if state.researchTeams <= 0:
        raise ActionRefused("No research teams available")
    _require_funds(state, RESEARCH_COST)

    state.funds -= RESEARCH_COST
    state.researchCompleted += 1
    return ActionResult(success=True, message="Research initiated", scoreChange=SCORE_RESEARCH)


def _deflect_asteroid(state: DefenseState, action: Action, rng) -> ActionResult:
    threat = _find(state.threats, action.targetId, "Threat")
    if state.availableProbes <= 0:
        raise ActionRefused("No probes available for deflection mission")

    # The mission is spent whether or not it succeeds; the probe stays in orbit.
    state.availableProbes -= 1
    chance = deflection_chance(threat, state)

    if rng.random() >= chance:
        state.earthHealth -= FAILED_DEFLECTION_DAMAGE
        state.reputation -= FAILED_DEFLECTION_REPUTATION
        logger.info("Deflection of %s failed (chance %.2f)", threat.name, chance)
        return ActionResult(
            success=False,
            message=f"Failed to deflect {threat.name}",
            scoreChange=SCORE_FAILED_DEFLECTION,
            damage=FAILED_DEFLECTION_DAMAGE,
            successChance=chance,
        )

    state.reputation += DEFLECTION_REPUTATION_GAIN
    position = state.threats.index(threat)

    if should_fragment(threat, state):
        fragments = make_fragments(threat, rng.randint(2, 3))
        state.threats[position:position + 1] = fragments
        logger.info("%s fragmented into %d pieces", threat.name, len(fragments))
        return ActionResult(
            success=True,
            message=f"{threat.name} fragmented into {len(fragments)} pieces",
            scoreChange=SCORE_FRAGMENT,
            fragmented=True,
            fragments=[fragment.id for fragment in fragments],
            successChance=chance,
        )

    del state.threats[position]
    return ActionResult(
        success=True,
        message=f"Successfully deflected {threat.name}",
        scoreChange=SCORE_DESTROY,
        successChance=chance,
    )


def _upgrade_satellite(state: DefenseState, action: Action, rng) -> ActionResult:
    satellite = _find(state.satellites, action.targetId, "Satellite")
    if satellite.level >= MAX_ASSET_LEVEL:
        raise ActionRefused("Satellite already at max level")
    cost = satellite.level * SATELLITE_UPGRADE_COST
    _require_funds(state, cost)

    state.funds -= cost
    satellite.level += 1
    satellite.detectionRadius += SATELLITE_RADIUS_PER_LEVEL
    return ActionResult(
        success=True,
        message=f"Satellite upgraded to level {satellite.level}",
        scoreChange=SCORE_UPGRADE,
    )


def _upgrade_probe(state: DefenseState, action: Action, rng) -> ActionResult:
    probe = _find(state.probes, action.targetId, "Probe")
    if probe.level >= MAX_ASSET_LEVEL:
        raise ActionRefused("Probe already at max level")
    cost = probe.level * PROBE_UPGRADE_COST
    _require_funds(state, cost)

    state.funds -= cost
    probe.level += 1
    probe.laserPower += PROBE_POWER_PER_LEVEL
    return ActionResult(
        success=True,
        message=f"Probe upgraded to level {probe.level}",
        scoreChange=SCORE_UPGRADE,
    )


def _asteroid_impact(state: DefenseState, action: Action, rng) -> ActionResult:
    threat = _find(state.threats, action.targetId, "Threat")
    damage = IMPACT_DAMAGE.get(threat.severity, IMPACT_DAMAGE["moderate"])

    state.threats.remove(threat)
    state.earthHealth -= damage
    state.reputation -= FAILED_DEFLECTION_REPUTATION
    return ActionResult(
        success=True,
        message=f"{threat.name} impacted Earth! -{damage}% health",
        scoreChange=SCORE_IMPACT,
        damage=damage,
    )


_HANDLERS: Dict[ActionType, Callable[[DefenseState, Action, random.Random], ActionResult]] = {
    ActionType.DEPLOY_SATELLITE: _deploy_satellite,
    ActionType.LAUNCH_PROBE: _launch_probe,
    ActionType.RESEARCH: _research,
    ActionType.DEFLECT_ASTEROID: _deflect_asteroid,
    ActionType.UPGRADE_SATELLITE: _upgrade_satellite,
    ActionType.UPGRADE_PROBE: _upgrade_probe,
    ActionType.ASTEROID_IMPACT: _asteroid_impact,
}


def apply_action(state: S, action: Action, rng=None) -> Tuple[S, ActionResult]:
    """Resolve action against state, returning the new state and the result."""
    if rng is None:
        rng = random
    handler = _HANDLERS[action.type]

    new_state = copy.deepcopy(state)
    try:
        result = handler(new_state, action, rng)
    except ActionRefused as exc:
        return state, ActionResult(success=False, message=str(exc))

    new_state.score += result.scoreChange
    new_state.earthHealth = clamp(new_state.earthHealth, 0, MAX_EARTH_HEALTH)
    new_state.power = clamp(new_state.power, 0, MAX_POWER)
    new_state.reputation = clamp(new_state.reputation, 0, MAX_REPUTATION)
    result.gameOver = new_state.earthHealth <= 0
    return new_state, result
