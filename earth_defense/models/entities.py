# earth_defense/models/entities.py
"""Game entity models and data classes.

Field names follow the JSON keys the client uses, so ``asdict`` output can be
returned from the API unchanged.
"""

from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Dict, List, Optional


@dataclass(frozen=True)
class AsteroidSpec:
    """Authored asteroid inside a wave."""

    diameter: float  # meters
    velocity: float  # km/s
    distance: float  # km
    approachAngle: float = 0.0
    polarAngle: float = 0.0


@dataclass(frozen=True)
class Wave:
    """A batch of asteroids that spawn together after a delay."""

    id: int
    delay: float  # seconds
    spawnPattern: str
    asteroids: List[AsteroidSpec]


@dataclass
class Objective:
    """A scored goal condition. Definitions hold templates, sessions hold copies."""

    id: str
    type: str
    description: str = ""
    target: Optional[float] = None
    threshold: Optional[float] = None
    allowedMisses: Optional[int] = None
    maxSpent: Optional[float] = None
    minSize: Optional[float] = None
    current: float = 0
    completed: bool = False
    failed: bool = False

    def copy(self) -> "Objective":
        """Independent copy; every field is a scalar."""
        return replace(self)


@dataclass(frozen=True)
class StarThreshold:
    objectivesCompleted: Optional[int] = None
    healthRemaining: Optional[float] = None
    asteroidsHit: Optional[int] = None
    timeUnder: Optional[float] = None
    fundsSpent: Optional[float] = None


@dataclass(frozen=True)
class Rewards:
    starsThreshold: Dict[int, StarThreshold]
    unlocks: List[str]
    gems: int


@dataclass(frozen=True)
class SatelliteLoadout:
    level: int
    detectionRadius: float
    orbitPosition: float


@dataclass(frozen=True)
class ProbeLoadout:
    level: int
    laserPower: float
    orbitPosition: float


@dataclass(frozen=True)
class StartingResources:
    funds: int
    power: int
    satellites: List[SatelliteLoadout]
    probes: List[ProbeLoadout]
    availableProbes: int


@dataclass(frozen=True)
class Restrictions:
    maxFundsSpent: Optional[int] = None


@dataclass(frozen=True)
class LevelDefinition:
    """Static campaign level. Never mutated after loading."""

    id: int
    name: str
    description: str
    type: str
    difficulty: str
    objectives: List[Objective]
    waves: List[Wave]
    startingResources: StartingResources
    restrictions: Restrictions
    rewards: Rewards


@dataclass
class Satellite:
    """Detection satellite in orbit."""

    id: str
    level: int
    detectionRadius: float
    orbitPosition: float
    type: str = "standard"
    health: int = 100
    powerDrain: int = 5


@dataclass
class Probe:
    """Deflection probe in orbit."""

    id: str
    level: int
    laserPower: float
    orbitPosition: float
    type: str = "kinetic"
    health: int = 100
    orbitLayer: int = 0


@dataclass
class Threat:
    """A live asteroid tracked until it is deflected, burns up or hits."""

    id: str
    name: str
    severity: str
    waveNumber: int
    diameter: float
    velocity: float
    distance: float
    approachAngle: float
    polarAngle: float
    timeToImpact: float
    impactProbability: float
    isHazardous: bool
    detectedAt: float = 0.0
    isFragment: bool = False
    parentId: Optional[str] = None


@dataclass
class NeoRecord:
    """One close approach from the NASA NeoWs feed."""

    id: str
    name: str
    diameter: float  # meters, estimated max
    velocity: float  # km/s
    missDistance: float  # km
    isHazardous: bool
    approachDate: Optional[str] = None
    orbitingBody: Optional[str] = None


@dataclass
class GameEvent:
    """Entry in the event feed."""

    id: str
    type: str
    severity: str
    title: str
    description: str
    timestamp: str
    requiresAction: bool = False
    threatId: Optional[str] = None


@dataclass
class Upgrades:
    aiTracking: bool = False
    improvedRadar: bool = False
    quantumDrive: bool = False
    publicSupport: bool = False


@dataclass
class PerformanceLog:
    asteroidsDestroyed: int = 0
    asteroidsMissed: int = 0
    asteroidsFragmented: int = 0
    asteroidsBurnedUp: int = 0
    accuracy: float = 1.0
    timeElapsed: float = 0
    fundsSpent: float = 0
    damageTaken: float = 0
    satellitesDeployed: int = 0
    probesLaunched: int = 0
    hitDiameters: List[float] = field(default_factory=list)


@dataclass
class DefenseState:
    """Resources, assets and threats shared by level sessions and endless mode."""

    funds: float = 0
    power: float = 100
    availableProbes: int = 0
    researchTeams: int = 1
    researchCompleted: int = 0
    satellites: List[Satellite] = field(default_factory=list)
    probes: List[Probe] = field(default_factory=list)
    threats: List[Threat] = field(default_factory=list)
    upgrades: Upgrades = field(default_factory=Upgrades)
    events: List[GameEvent] = field(default_factory=list)
    earthHealth: float = 100
    reputation: float = 100
    score: int = 0


@dataclass
class LevelState(DefenseState):
    """Mutable per-session state of a campaign level."""

    currentLevel: int = 0
    levelName: str = ""
    levelType: str = ""
    levelDifficulty: str = ""
    levelStartTime: float = 0.0
    levelTimeElapsed: float = 0
    levelComplete: bool = False
    levelFailed: bool = False
    failureReason: Optional[str] = None
    levelObjectives: List[Objective] = field(default_factory=list)
    currentWave: int = 0
    totalWaves: int = 0
    nextWaveTime: Optional[float] = None
    waveTimer: float = 0
    levelPerformance: PerformanceLog = field(default_factory=PerformanceLog)
    restrictions: Restrictions = field(default_factory=Restrictions)
    lastRegenTime: float = 0.0

    @property
    def finished(self) -> bool:
        return self.levelComplete or self.levelFailed


@dataclass
class EndlessState(DefenseState):
    """Global endless-mode state, advanced one day at a time."""

    day: int = 1


@dataclass
class LevelSession:
    sessionId: str
    levelId: int
    level: LevelDefinition
    state: LevelState
    startedAt: float


class ActionType(str, Enum):
    """Every action a player can take against a defense state."""

    DEPLOY_SATELLITE = "deploy_satellite"
    LAUNCH_PROBE = "launch_probe"
    RESEARCH = "research"
    DEFLECT_ASTEROID = "deflect_asteroid"
    UPGRADE_SATELLITE = "upgrade_satellite"
    UPGRADE_PROBE = "upgrade_probe"
    ASTEROID_IMPACT = "asteroid_impact"

    @property
    def needs_target(self) -> bool:
        return self in TARGETED_ACTIONS


TARGETED_ACTIONS = frozenset(
    {
        ActionType.DEFLECT_ASTEROID,
        ActionType.UPGRADE_SATELLITE,
        ActionType.UPGRADE_PROBE,
        ActionType.ASTEROID_IMPACT,
    }
)


@dataclass(frozen=True)
class Action:
    type: ActionType
    targetId: Optional[str] = None


@dataclass
class ActionResult:
    success: bool = False
    message: str = ""
    scoreChange: int = 0
    fragmented: bool = False
    fragments: List[str] = field(default_factory=list)
    damage: float = 0
    successChance: Optional[float] = None
    gameOver: bool = False


@dataclass
class RewardSummary:
    score: int = 0
    gems: int = 0
    unlocks: List[str] = field(default_factory=list)


@dataclass
class LevelResults:
    resultsId: Optional[str]
    levelId: int
    levelName: str
    victory: bool
    stars: int
    objectives: List[Objective]
    objectivesCompleted: int
    totalObjectives: int
    performance: PerformanceLog
    rewards: RewardSummary
    statistics: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict) -> "LevelResults":
        """Rebuild results echoed back by the client."""
        performance = data.get("performance") or {}
        rewards = data.get("rewards") or {}
        return cls(
            resultsId=data.get("resultsId"),
            levelId=int(data["levelId"]),
            levelName=data.get("levelName", ""),
            victory=bool(data.get("victory", False)),
            stars=int(data.get("stars", 0)),
            objectives=[
                Objective(**_known(Objective, obj))
                for obj in data.get("objectives", [])
            ],
            objectivesCompleted=int(data.get("objectivesCompleted", 0)),
            totalObjectives=int(data.get("totalObjectives", 0)),
            performance=PerformanceLog(**_known(PerformanceLog, performance)),
            rewards=RewardSummary(
                score=int(rewards.get("score", 0)),
                gems=int(rewards.get("gems", 0)),
                unlocks=list(rewards.get("unlocks", [])),
            ),
            statistics=dict(data.get("statistics") or {}),
        )


def _default_assets() -> Dict[str, List[str]]:
    return {"satellites": ["standard"], "probes": ["kinetic"], "abilities": []}


@dataclass
class PlayerProgression:
    """Cross-session record of stars, gems and unlocks, stored by the client."""

    unlockedLevels: List[int] = field(default_factory=lambda: [1])
    levelStars: Dict[int, int] = field(default_factory=dict)
    levelBestTimes: Dict[int, float] = field(default_factory=dict)
    totalStars: int = 0
    gems: int = 0
    unlockedAssets: Dict[str, List[str]] = field(default_factory=_default_assets)
    appliedResults: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "PlayerProgression":
        """Parse client progression; JSON object keys arrive as strings."""
        if not data:
            return cls()
        assets = _default_assets()
        for key, values in (data.get("unlockedAssets") or {}).items():
            assets[key] = list(values)
        return cls(
            unlockedLevels=[int(level) for level in data.get("unlockedLevels", [1])],
            levelStars={
                int(k): int(v) for k, v in (data.get("levelStars") or {}).items()
            },
            levelBestTimes={
                int(k): float(v) for k, v in (data.get("levelBestTimes") or {}).items()
            },
            totalStars=int(data.get("totalStars", 0)),
            gems=int(data.get("gems", 0)),
            unlockedAssets=assets,
            appliedResults=list(data.get("appliedResults", [])),
        )


def _known(cls, data: dict) -> dict:
    """Drop keys the dataclass does not declare."""
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}
