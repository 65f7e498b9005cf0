# earth_defense/services/game_service.py
"""Endless mode: one global defense state advanced one day at a time."""

import logging
import math
import random
import time
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from earth_defense.models.entities import (
    Action,
    ActionResult,
    EndlessState,
    GameEvent,
    NeoRecord,
    Probe,
    Satellite,
    Threat,
)
from earth_defense.models.errors import InvalidRequestError, NeoSourceError
from earth_defense.config.settings import *
from earth_defense.services.actions import apply_action
from earth_defense.services.neo_service import classify_neo_risk
from earth_defense.utils.helpers import clamp, time_to_impact

logger = logging.getLogger(__name__)

GAME_OVER_MESSAGE = "Earth has sustained too much damage. Mission failed."

# Non-asteroid events: type -> (title, description, requiresAction)
RANDOM_EVENTS = {
    "solar_flare": (
        "Solar Flare Detected",
        "A solar flare is disrupting satellite communications. Radar coverage reduced temporarily.",
        True,
    ),
    "satellite_malfunction": (
        "Satellite Malfunction",
        "One of our monitoring satellites has malfunctioned. Detection capabilities reduced.",
        True,
    ),
    "unknown_object": (
        "Unknown Object Detected",
        "An unidentified object has been detected in Earth's vicinity. Requires investigation.",
        True,
    ),
    "communication_blackout": (
        "Communication Blackout",
        "Solar interference is causing communication issues with deep space probes.",
        False,
    ),
}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class GameService:
    """Main endless-mode service that owns the game state."""

    def __init__(
        self,
        neo_source=None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.neo_source = neo_source
        self.rng = rng or random.Random()
        self.clock = clock
        self.state = self._initial_state()

    def _initial_state(self) -> EndlessState:
        """Starting funds and a small orbital fleet."""
        satellites = [
            Satellite(
                id=f"sat-endless-{idx}",
                level=1,
                detectionRadius=SATELLITE_DETECTION_RADIUS,
                orbitPosition=idx * 2 * math.pi / ENDLESS_START_SATELLITES,
                powerDrain=SATELLITE_POWER_DRAIN,
            )
            for idx in range(ENDLESS_START_SATELLITES)
        ]
        probes = [
            Probe(
                id=f"probe-endless-{idx}",
                level=1,
                laserPower=PROBE_LASER_POWER,
                orbitPosition=idx * 2 * math.pi / ENDLESS_START_PROBES,
            )
            for idx in range(ENDLESS_START_PROBES)
        ]
        return EndlessState(
            funds=ENDLESS_START_FUNDS,
            power=MAX_POWER,
            satellites=satellites,
            probes=probes,
            availableProbes=len(probes),
        )

    def get_state(self) -> EndlessState:
        return self.state

    def process_action(self, action: Action) -> ActionResult:
        if self.state.earthHealth <= 0:
            return ActionResult(success=False, message=GAME_OVER_MESSAGE, gameOver=True)

        self.state, result = apply_action(self.state, action, self.rng)
        if result.gameOver:
            result.message = GAME_OVER_MESSAGE
            logger.info("Endless game over on day %d (score %d)", self.state.day, self.state.score)
        return result

    def purchase_upgrade(self, upgrade_type: str) -> ActionResult:
        """Buy a one-off upgrade and apply its immediate effect."""
        cost = UPGRADE_COSTS.get(upgrade_type)
        if cost is None:
            raise InvalidRequestError("Invalid upgrade type")

        state = self.state
        if getattr(state.upgrades, upgrade_type):
            return ActionResult(success=False, message="Upgrade already purchased")
        if state.funds < cost:
            return ActionResult(success=False, message="Insufficient funds")

        state.funds -= cost
        setattr(state.upgrades, upgrade_type, True)

        if upgrade_type == "aiTracking":
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
        elif upgrade_type == "improvedRadar":
            state.power = clamp(state.power + 20, 0, MAX_POWER)
        elif upgrade_type == "quantumDrive":
            state.availableProbes += 2
        elif upgrade_type == "publicSupport":
            state.funds += 100000

        logger.info("Upgrade %s purchased for %d", upgrade_type, cost)
        return ActionResult(success=True, message=f"{upgrade_type} upgrade purchased successfully")

    def _threat_from_record(self, record: NeoRecord, severity: str) -> Threat:
        return Threat(
            id=f"neo-{record.id}",
            name=record.name,
            severity=severity,
            waveNumber=self.state.day,
            diameter=record.diameter,
            velocity=record.velocity,
            distance=record.missDistance,
            approachAngle=self.rng.uniform(0, 2 * math.pi),
            polarAngle=self.rng.uniform(-0.5, 0.5),
            timeToImpact=time_to_impact(record.missDistance, record.velocity),
            impactProbability=DEFAULT_IMPACT_PROBABILITY,
            isHazardous=record.isHazardous,
            detectedAt=self.clock(),
        )

    def _asteroid_event(self, threat: Threat, record: NeoRecord, simulated: bool) -> GameEvent:
        prefix = "Simulated asteroid" if simulated else f"Asteroid {record.name} is"
        return GameEvent(
            id=f"asteroid_{record.id}",
            type="asteroid_detected",
            severity=threat.severity,
            title=f"Asteroid {record.name} Detected",
            description=(
                f"{prefix} approaching Earth. Diameter: {round(record.diameter)}m, "
                f"Velocity: {round(record.velocity)} km/s, "
                f"Miss Distance: {round(record.missDistance / 1000)}k km"
            ),
            timestamp=_timestamp(),
            requiresAction=True,
            threatId=threat.id,
        )

    def _random_event(self) -> GameEvent:
        event_type = self.rng.choice(sorted(RANDOM_EVENTS))
        title, description, requires_action = RANDOM_EVENTS[event_type]
        return GameEvent(
            id=f"{event_type}_{uuid.uuid4().hex[:8]}",
            type=event_type,
            severity=self.rng.choice(["low", "moderate", "critical"]),
            title=title,
            description=description,
            timestamp=_timestamp(),
            requiresAction=requires_action,
        )

    def _simulated_records(self) -> List[NeoRecord]:
        """Stand-in asteroids for when the NEO feed is unreachable."""
        records = []
        for i in range(self.rng.randint(1, 3)):
            letters = chr(65 + self.rng.randrange(26)) + chr(65 + self.rng.randrange(26))
            records.append(
                NeoRecord(
                    id=f"SIM-{self.state.day}-{i}-{uuid.uuid4().hex[:6]}",
                    name=f"({2000 + self.rng.randrange(25)}) {letters}{self.rng.randrange(999)}",
                    diameter=self.rng.randint(50, 549),
                    velocity=self.rng.randint(5, 24),
                    missDistance=self.rng.randint(500000, 5499999),
                    isHazardous=self.rng.random() < SIMULATED_HAZARD_CHANCE,
                )
            )
        return records

    async def _fetch_records(self):
        """NEO records and whether they are simulated."""
        if self.neo_source is None:
            return self._simulated_records(), True
        try:
            return await self.neo_source.get_near_earth_objects(NEO_FEED_DAYS), False
        except NeoSourceError as exc:
            logger.warning("Using simulated asteroids: %s", exc)
            return self._simulated_records(), True

    async def generate_events(self) -> List[GameEvent]:
        """Replace the threat list with today's asteroids and log their events."""
        records, simulated = await self._fetch_records()

        events: List[GameEvent] = []
        threats: List[Threat] = []
        for record in records:
            severity = classify_neo_risk(record)
            if severity == "safe":
                continue
            threat = self._threat_from_record(record, severity)
            threats.append(threat)
            events.append(self._asteroid_event(threat, record, simulated))

        chance = SIMULATED_RANDOM_EVENT_CHANCE if simulated else LIVE_RANDOM_EVENT_CHANCE
        if self.rng.random() < chance:
            events.append(self._random_event())

        self.state.threats = threats
        self.state.events = (events + self.state.events)[:MAX_EVENT_LOG]
        logger.info(
            "Day %d: %d threats from %s data",
            self.state.day,
            len(threats),
            "simulated" if simulated else "NEO",
        )
        return events

    async def advance_day(self) -> EndlessState:
        """Charge for unhandled threats, restore resources, then bring in new threats."""
        state = self.state
        state.day += 1

        unhandled = 0
        for threat in state.threats:
            penalty = UNHANDLED_THREAT_PENALTIES.get(threat.severity)
            if penalty is None:
                continue
            unhandled += 1
            state.earthHealth -= penalty["damage"]
            state.reputation -= penalty["reputation"]
            state.score -= penalty["score"]
        state.threats = []

        state.power = clamp(state.power + DAILY_POWER_REGEN, 0, MAX_POWER)
        if state.availableProbes < len(state.probes):
            state.availableProbes += 1

        state.reputation = clamp(state.reputation, 0, MAX_REPUTATION)
        state.funds += DAILY_FUNDS + DAILY_FUNDS_PER_REPUTATION * state.reputation

        if unhandled == 0:
            state.earthHealth += DAILY_HEALING
        state.earthHealth = clamp(state.earthHealth, 0, MAX_EARTH_HEALTH)

        if unhandled:
            logger.info("Day %d: %d unhandled threats hit Earth", state.day, unhandled)

        await self.generate_events()
        return state

    async def reset(self) -> EndlessState:
        self.state = self._initial_state()
        await self.generate_events()
        logger.info("Endless game reset")
        return self.state
