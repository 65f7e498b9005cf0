# earth_defense/config/settings.py
"""Game configuration constants and settings."""

import os
from functools import lru_cache

# Earth and reputation settings
MAX_EARTH_HEALTH = 100
MAX_POWER = 100
MAX_REPUTATION = 100

# Satellite settings
SATELLITE_COST = 150000
SATELLITE_POWER_COST = 10
SATELLITE_DETECTION_RADIUS = 3.5
SATELLITE_UPGRADE_COST = 100000  # multiplied by current level
SATELLITE_RADIUS_PER_LEVEL = 1.0
SATELLITE_POWER_DRAIN = 5

# Probe settings
PROBE_COST = 200000
PROBE_LASER_POWER = 100
PROBE_UPGRADE_COST = 150000  # multiplied by current level
PROBE_POWER_PER_LEVEL = 50
PROBES_PER_ORBIT_LAYER = 6

MAX_ASSET_LEVEL = 3

# Research settings
RESEARCH_COST = 50000

# Deflection settings
BASE_DEFLECTION_CHANCE = 0.7
MIN_DEFLECTION_CHANCE = 0.1
MAX_DEFLECTION_CHANCE = 0.95
UPGRADE_DEFLECTION_BONUS = 0.1
PROBE_LEVEL_DEFLECTION_BONUS = 0.05
FRAGMENTATION_DIAMETER = 100
FRAGMENTATION_POWER_RATIO = 5
FRAGMENT_SIZE_FACTOR = 0.4
FRAGMENT_VELOCITY_FACTOR = 0.7
FRAGMENT_DISTANCE_FACTOR = 1.3
FAILED_DEFLECTION_DAMAGE = 5
FAILED_DEFLECTION_REPUTATION = 5
DEFLECTION_REPUTATION_GAIN = 10

# Impact and burnup settings
IMPACT_DAMAGE = {"low": 5, "moderate": 10, "critical": 20}
BURNUP_MAX_DIAMETER = 25
DEFAULT_IMPACT_PROBABILITY = 0.8

# Score deltas
SCORE_DEPLOY_SATELLITE = 50
SCORE_LAUNCH_PROBE = 100
SCORE_RESEARCH = 25
SCORE_DESTROY = 300
SCORE_FRAGMENT = 150
SCORE_FAILED_DEFLECTION = -100
SCORE_UPGRADE = 75
SCORE_IMPACT = -200
SCORE_BURNUP = 50

# Threat classification
CRITICAL_RISK_SCORE = 70
MODERATE_RISK_SCORE = 40

# Power regeneration during a level
POWER_REGEN_INTERVAL = 5  # seconds
POWER_REGEN_AMOUNT = 1

# Rewards
DEFAULT_GEMS = 50
GEM_MULTIPLIERS = {3: 1.5, 2: 1.2}

# Endless mode settings
ENDLESS_START_FUNDS = 1000000
ENDLESS_START_SATELLITES = 2
ENDLESS_START_PROBES = 2
NEO_FEED_DAYS = 7
LIVE_RANDOM_EVENT_CHANCE = 0.3
SIMULATED_RANDOM_EVENT_CHANCE = 0.5
SIMULATED_HAZARD_CHANCE = 0.3
UPGRADE_COSTS = {
    "aiTracking": 500000,
    "improvedRadar": 300000,
    "quantumDrive": 400000,
    "publicSupport": 200000,
}
DAILY_FUNDS = 50000
DAILY_FUNDS_PER_REPUTATION = 500
DAILY_POWER_REGEN = 20
DAILY_HEALING = 2
UNHANDLED_THREAT_PENALTIES = {
    "critical": {"damage": 15, "reputation": 10, "score": 200},
    "moderate": {"damage": 8, "reputation": 5, "score": 100},
}
MAX_EVENT_LOG = 50


class Settings:
    """Environment-driven settings for the HTTP service."""

    def __init__(self):
        self.nasa_api_key = os.getenv("NASA_API_KEY", "DEMO_KEY")
        self.neo_api_base = os.getenv(
            "NEO_API_BASE", "https://api.nasa.gov/neo/rest/v1"
        )
        self.neo_cache_ttl = int(os.getenv("NEO_CACHE_TTL", "600"))  # seconds
        self.neo_timeout = float(os.getenv("NEO_TIMEOUT", "30"))
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        self.cors_origins = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]


@lru_cache()
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()


def get_game_config():
    """Get the complete game configuration as a dictionary."""
    return {
        "satelliteCost": SATELLITE_COST,
        "satellitePowerCost": SATELLITE_POWER_COST,
        "satelliteUpgradeCost": SATELLITE_UPGRADE_COST,
        "probeCost": PROBE_COST,
        "probeUpgradeCost": PROBE_UPGRADE_COST,
        "researchCost": RESEARCH_COST,
        "maxAssetLevel": MAX_ASSET_LEVEL,
        "fragmentationDiameter": FRAGMENTATION_DIAMETER,
        "burnupMaxDiameter": BURNUP_MAX_DIAMETER,
        "upgradeCosts": dict(UPGRADE_COSTS),
        "powerRegenInterval": POWER_REGEN_INTERVAL,
        "powerRegenAmount": POWER_REGEN_AMOUNT,
    }
