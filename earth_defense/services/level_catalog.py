# earth_defense/services/level_catalog.py
"""Campaign level definitions loaded from YAML."""

import logging
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from earth_defense.models.entities import (
    AsteroidSpec,
    LevelDefinition,
    Objective,
    PlayerProgression,
    ProbeLoadout,
    Restrictions,
    Rewards,
    SatelliteLoadout,
    StarThreshold,
    StartingResources,
    Wave,
)
from earth_defense.models.errors import LevelNotFoundError
from earth_defense.config.settings import DEFAULT_GEMS

logger = logging.getLogger(__name__)

DEFAULT_LEVELS_PATH = Path(__file__).resolve().parent.parent / "data" / "levels.yaml"

_REQUIRED_KEYS = ("id", "name", "objectives", "waves", "startingResources", "rewards")


class LevelRepository:
    """Read-only campaign, indexed by integer level id."""

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path else DEFAULT_LEVELS_PATH
        self._levels = self._load_levels()

    @property
    def count(self) -> int:
        return len(self._levels)

    def all(self) -> List[LevelDefinition]:
        return [self._levels[key] for key in sorted(self._levels)]

    def summaries(self) -> List[dict]:
        """Level list without objectives or waves, so nothing is spoiled."""
        return [
            {
                "id": level.id,
                "name": level.name,
                "description": level.description,
                "type": level.type,
                "difficulty": level.difficulty,
            }
            for level in self.all()
        ]

    def get(self, level_id) -> LevelDefinition:
        try:
            return self._levels[int(level_id)]
        except (KeyError, TypeError, ValueError):
            raise LevelNotFoundError(level_id) from None

    def is_unlocked(self, level_id: int, progression: Optional[PlayerProgression]) -> bool:
        if level_id == 1:
            return True
        unlocked = progression.unlockedLevels if progression else [1]
        return level_id in unlocked

    def _load_levels(self) -> Dict[int, LevelDefinition]:
        if not self._path.exists():
            raise FileNotFoundError(f"Level file not found: {self._path}")

        raw = yaml.safe_load(self._path.read_text(encoding="utf-8"))
        if not raw or not isinstance(raw.get("levels"), list):
            raise ValueError(f"{self._path.name}: expected a top-level 'levels' list")

        levels: Dict[int, LevelDefinition] = {}
        for entry in raw["levels"]:
            level = _parse_level(entry, self._path.name)
            if level.id in levels:
                raise ValueError(f"{self._path.name}: duplicate level id {level.id}")
            levels[level.id] = level

        expected = list(range(1, len(levels) + 1))
        if sorted(levels) != expected:
            raise ValueError(f"{self._path.name}: level ids must run 1..{len(levels)}")

        logger.info("Loaded %d campaign levels from %s", len(levels), self._path)
        return levels


def _parse_level(entry: dict, source: str) -> LevelDefinition:
    if not isinstance(entry, dict):
        raise ValueError(f"{source}: level entries must be mappings")
    missing = [key for key in _REQUIRED_KEYS if key not in entry]
    if missing:
        raise ValueError(
            f"{source}: level {entry.get('id', '?')} missing {', '.join(missing)}"
        )

    resources = entry["startingResources"]
    rewards = entry["rewards"]
    restrictions = entry.get("restrictions") or {}

    return LevelDefinition(
        id=int(entry["id"]),
        name=str(entry["name"]).strip(),
        description=str(entry.get("description", "")).strip(),
        type=entry.get("type", "tutorial"),
        difficulty=entry.get("difficulty", "easy"),
        objectives=[Objective(**obj) for obj in entry["objectives"]],
        waves=[
            Wave(
                id=int(wave["id"]),
                delay=float(wave.get("delay", 0)),
                spawnPattern=wave.get("spawnPattern", "sequential"),
                asteroids=[AsteroidSpec(**rock) for rock in wave.get("asteroids", [])],
            )
            for wave in entry["waves"]
        ],
        startingResources=StartingResources(
            funds=int(resources["funds"]),
            power=int(resources["power"]),
            satellites=[SatelliteLoadout(**sat) for sat in resources.get("satellites", [])],
            probes=[ProbeLoadout(**probe) for probe in resources.get("probes", [])],
            availableProbes=int(resources.get("availableProbes", 0)),
        ),
        restrictions=Restrictions(maxFundsSpent=restrictions.get("maxFundsSpent")),
        rewards=Rewards(
            starsThreshold={
                int(tier): StarThreshold(**(threshold or {}))
                for tier, threshold in rewards.get("starsThreshold", {}).items()
            },
            unlocks=list(rewards.get("unlocks", [])),
            gems=int(rewards.get("gems", DEFAULT_GEMS)),
        ),
    )
