"""Shared fixtures: a controllable clock, scripted randomness and state builders."""

from __future__ import annotations

import random
from pathlib import Path

import pytest
import yaml

from earth_defense.models.entities import DefenseState, Probe, Satellite, Threat
from earth_defense.services.level_catalog import LevelRepository
from earth_defense.services.level_service import LevelService
from earth_defense.services.session_store import SessionStore


class FakeClock:
    """Wall clock that only moves when a test says so."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FixedRandom(random.Random):
    """Random whose uniform draw and randint are pinned."""

    def __init__(self, value: float = 0.0, fragments: int = 2):
        super().__init__(0)
        self.value = value
        self.fragments = fragments

    def random(self) -> float:
        return self.value

    def randint(self, a: int, b: int) -> int:
        return self.fragments


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def always_hit() -> FixedRandom:
    """Every deflection succeeds; fragmenting makes two pieces."""
    return FixedRandom(0.0, fragments=2)


@pytest.fixture()
def always_miss() -> FixedRandom:
    return FixedRandom(0.999)


@pytest.fixture(scope="session")
def repository() -> LevelRepository:
    return LevelRepository()


@pytest.fixture()
def level_service(repository, clock, always_hit) -> LevelService:
    return LevelService(repository=repository, store=SessionStore(), clock=clock, rng=always_hit)


@pytest.fixture()
def make_threat():
    def _make(
        threat_id: str = "t-1",
        diameter: float = 50,
        velocity: float = 10,
        distance: float = 1_500_000,
        severity: str = "low",
    ) -> Threat:
        return Threat(
            id=threat_id,
            name=f"Rock {threat_id}",
            severity=severity,
            waveNumber=1,
            diameter=diameter,
            velocity=velocity,
            distance=distance,
            approachAngle=0.0,
            polarAngle=0.0,
            timeToImpact=distance / (velocity * 60),
            impactProbability=0.8,
            isHazardous=diameter > 100,
        )

    return _make


@pytest.fixture()
def make_state():
    """DefenseState with one level-1 satellite and probe unless overridden."""

    def _make(**overrides) -> DefenseState:
        fields = dict(
            funds=1_000_000,
            power=100,
            availableProbes=1,
            satellites=[Satellite(id="sat-0", level=1, detectionRadius=3.5, orbitPosition=0.0)],
            probes=[Probe(id="probe-0", level=1, laserPower=100, orbitPosition=0.0)],
        )
        fields.update(overrides)
        return DefenseState(**fields)

    return _make


@pytest.fixture()
def write_levels(tmp_path: Path):
    """Write a campaign file and return its path."""

    def _write(levels) -> Path:
        path = tmp_path / "levels.yaml"
        path.write_text(yaml.safe_dump({"levels": levels}), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def minimal_level():
    def _make(level_id: int = 1, **overrides) -> dict:
        level = {
            "id": level_id,
            "name": f"Level {level_id}",
            "description": "Test level",
            "type": "tutorial",
            "difficulty": "easy",
            "objectives": [
                {"id": "destroy", "type": "destroy_asteroids", "target": 1, "description": "Destroy 1"}
            ],
            "waves": [
                {
                    "id": 1,
                    "delay": 0,
                    "spawnPattern": "sequential",
                    "asteroids": [{"diameter": 40, "velocity": 8, "distance": 1_500_000}],
                }
            ],
            "startingResources": {
                "funds": 500_000,
                "power": 100,
                "satellites": [{"level": 1, "detectionRadius": 3.5, "orbitPosition": 0}],
                "probes": [{"level": 1, "laserPower": 100, "orbitPosition": 0}],
                "availableProbes": 1,
            },
            "rewards": {
                "starsThreshold": {1: {"objectivesCompleted": 1}},
                "unlocks": [],
                "gems": 40,
            },
        }
        level.update(overrides)
        return level

    return _make
