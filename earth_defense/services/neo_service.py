# earth_defense/services/neo_service.py
"""Client for NASA's Near Earth Object Web Service (NeoWs)."""

import logging
import time
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple

import httpx

from earth_defense.models.entities import NeoRecord
from earth_defense.models.errors import NeoSourceError
from earth_defense.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)

# The feed endpoint rejects ranges longer than a week
MAX_FEED_DAYS = 7


def classify_neo_risk(record: NeoRecord) -> str:
    """safe / low / moderate / critical from size, speed, miss distance and hazard flag."""
    score = 0

    # Size factor
    if record.diameter > 1000:
        score += 3
    elif record.diameter > 500:
        score += 2
    elif record.diameter > 100:
        score += 1

    # Velocity factor
    if record.velocity > 20:
        score += 3
    elif record.velocity > 15:
        score += 2
    elif record.velocity > 10:
        score += 1

    # Miss distance factor
    if record.missDistance < 1000000:
        score += 3
    elif record.missDistance < 5000000:
        score += 2
    elif record.missDistance < 10000000:
        score += 1

    if record.isHazardous:
        score += 2

    if score >= 7:
        return "critical"
    if score >= 4:
        return "moderate"
    if score >= 2:
        return "low"
    return "safe"


def parse_feed(feed: dict) -> List[NeoRecord]:
    """Flatten the per-day feed into one record per asteroid."""
    records = []
    for day_objects in (feed.get("near_earth_objects") or {}).values():
        for neo in day_objects:
            approach = (neo.get("close_approach_data") or [{}])[0]
            diameter = (
                neo.get("estimated_diameter", {})
                .get("meters", {})
                .get("estimated_diameter_max", 0)
            )
            records.append(
                NeoRecord(
                    id=str(neo.get("id")),
                    name=neo.get("name", ""),
                    diameter=float(diameter or 0),
                    velocity=float(
                        approach.get("relative_velocity", {}).get("kilometers_per_second", 0)
                    ),
                    missDistance=float(approach.get("miss_distance", {}).get("kilometers", 0)),
                    isHazardous=bool(neo.get("is_potentially_hazardous_asteroid", False)),
                    approachDate=approach.get("close_approach_date"),
                    orbitingBody=approach.get("orbiting_body"),
                )
            )
    return records


class NeoClient:
    """NeoWs feed reader with an in-process TTL cache."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport
        self._cache: Dict[Tuple[str, str], Tuple[float, Any]] = {}

    def _cached(self, key: Tuple[str, str]) -> Optional[Any]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        stored_at, data = entry
        if time.monotonic() - stored_at >= self.settings.neo_cache_ttl:
            del self._cache[key]
            return None
        return data

    async def _get_feed(self, start: date, end: date) -> dict:
        key = (start.isoformat(), end.isoformat())
        cached = self._cached(key)
        if cached is not None:
            logger.debug("NEO feed cache hit for %s..%s", *key)
            return cached

        params = {
            "start_date": key[0],
            "end_date": key[1],
            "api_key": self.settings.nasa_api_key,
        }
        async with httpx.AsyncClient(
            base_url=self.settings.neo_api_base,
            timeout=self.settings.neo_timeout,
            transport=self._transport,
        ) as client:
            try:
                response = await client.get("/feed", params=params)
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status == 429:
                    logger.warning("NASA NeoWs rate limit reached")
                else:
                    logger.error("NASA NeoWs error: %s", status)
                raise NeoSourceError(f"NEO feed unavailable (HTTP {status})") from exc
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("NASA NeoWs request failed: %s", exc)
                raise NeoSourceError("NEO feed unavailable") from exc

        self._store(key, data)
        return data

    def _store(self, key: Tuple[str, str], data: Any) -> None:
        """Cache data under key and drop every entry that has expired."""
        now = time.monotonic()
        ttl = self.settings.neo_cache_ttl
        for stale in [k for k, (stored_at, _) in self._cache.items() if now - stored_at >= ttl]:
            del self._cache[stale]
        self._cache[key] = (now, data)

    async def get_near_earth_objects(self, days: int = MAX_FEED_DAYS) -> List[NeoRecord]:
        """Asteroids with close approaches over the last ``days`` days."""
        days = max(1, min(int(days), MAX_FEED_DAYS))
        end = date.today()
        start = end - timedelta(days=days)
        feed = await self._get_feed(start, end)
        records = parse_feed(feed)
        logger.info("Fetched %d near-Earth objects for %s..%s", len(records), start, end)
        return records
