# earth_defense/services/wave_scheduler.py
"""Wave spawning and other wall-clock catch-up for level sessions.

Nothing ticks in the background. Every poll calls ``catch_up`` with the
current time, and the scheduler spawns whatever waves have come due since
the last call. Overdue waves are scheduled from the previous wave's due time,
so the number of spawned asteroids depends only on the clock.
"""

import logging
import math
from typing import List

from earth_defense.models.entities import LevelDefinition, LevelState, Threat, Wave
from earth_defense.config.settings import (
    CRITICAL_RISK_SCORE,
    DEFAULT_IMPACT_PROBABILITY,
    FRAGMENTATION_DIAMETER,
    MAX_POWER,
    MODERATE_RISK_SCORE,
    POWER_REGEN_AMOUNT,
    POWER_REGEN_INTERVAL,
)
from earth_defense.utils.helpers import clamp, seconds_until, time_to_impact

logger = logging.getLogger(__name__)


def threat_risk_score(diameter: float, velocity: float, distance: float) -> int:
    """Weighted risk score over size, speed and approach distance."""
    score = 0

    # Size factor
    if diameter > 500:
        score += 40
    elif diameter > 200:
        score += 30
    elif diameter > 100:
        score += 20
    elif diameter > 50:
        score += 10
    else:
        score += 5

    # Velocity factor
    if velocity > 25:
        score += 30
    elif velocity > 20:
        score += 20
    elif velocity > 15:
        score += 10
    else:
        score += 5

    # Distance factor (closer is more dangerous)
    if distance < 1000000:
        score += 30
    elif distance < 2000000:
        score += 15
    else:
        score += 5

    return score


def classify_threat(diameter: float, velocity: float, distance: float) -> str:
    score = threat_risk_score(diameter, velocity, distance)
    if score >= CRITICAL_RISK_SCORE:
        return "critical"
    if score >= MODERATE_RISK_SCORE:
        return "moderate"
    return "low"


def asteroid_designation(wave_number: int, index: int) -> str:
    """Provisional-style designation, stable for a given wave and slot."""
    serial = wave_number * 100 + index
    year = 2000 + serial % 25
    first = chr(65 + serial % 26)
    second = chr(65 + (serial // 26) % 26)
    return f"({year}) {first}{second}{serial:03d}"


def spawn_wave(wave: Wave, wave_number: int, spawned_at: float) -> List[Threat]:
    """Turn a wave's authored asteroids into live threats."""
    threats = []
    for index, rock in enumerate(wave.asteroids):
        threats.append(
            Threat(
                id=f"wave-{wave_number}-asteroid-{index}",
                name=asteroid_designation(wave_number, index),
                severity=classify_threat(rock.diameter, rock.velocity, rock.distance),
                waveNumber=wave_number,
                diameter=rock.diameter,
                velocity=rock.velocity,
                distance=rock.distance,
                approachAngle=rock.approachAngle,
                polarAngle=rock.polarAngle,
                timeToImpact=time_to_impact(rock.distance, rock.velocity),
                impactProbability=DEFAULT_IMPACT_PROBABILITY,
                isHazardous=rock.diameter > FRAGMENTATION_DIAMETER,
                detectedAt=spawned_at,
            )
        )
    return threats


def start_waves(state: LevelState, level: LevelDefinition, now: float) -> List[Threat]:
    """Schedule the first wave; a zero delay spawns it right away."""
    state.currentWave = 0
    state.totalWaves = len(level.waves)
    if not level.waves:
        state.nextWaveTime = None
        state.waveTimer = 0
        return []

    state.nextWaveTime = now + level.waves[0].delay
    return catch_up(state, level, now)


def catch_up(state: LevelState, level: LevelDefinition, now: float) -> List[Threat]:
    """Spawn every wave that has come due by ``now``."""
    spawned: List[Threat] = []

    while (
        state.nextWaveTime is not None
        and now >= state.nextWaveTime
        and state.currentWave < state.totalWaves
    ):
        wave_number = state.currentWave + 1
        threats = spawn_wave(level.waves[state.currentWave], wave_number, state.nextWaveTime)
        state.threats.extend(threats)
        spawned.extend(threats)
        state.currentWave = wave_number

        if state.currentWave < state.totalWaves:
            state.nextWaveTime += level.waves[state.currentWave].delay
        else:
            state.nextWaveTime = None

        logger.info(
            "Level %s: wave %d/%d spawned %d asteroids",
            level.id,
            wave_number,
            state.totalWaves,
            len(threats),
        )

    state.waveTimer = seconds_until(state.nextWaveTime, now)
    return spawned


def regenerate_power(state: LevelState, now: float) -> float:
    """Restore power for every whole regen interval since the last call."""
    intervals = math.floor((now - state.lastRegenTime) / POWER_REGEN_INTERVAL)
    if intervals <= 0:
        return 0
    state.lastRegenTime += intervals * POWER_REGEN_INTERVAL
    before = state.power
    state.power = clamp(state.power + intervals * POWER_REGEN_AMOUNT, 0, MAX_POWER)
    return state.power - before
