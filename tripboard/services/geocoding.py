"""Geocoding enrichment of activities that have an address but no usable coordinates."""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from tripboard.adapters.geocoding import geocode_google, geocode_nominatim
from tripboard.db.tree import TreeStore
from tripboard.errors import ExternalProviderError, TripboardError
from tripboard.models.tool_results import GeocodeResult
from tripboard.utils.metrics import metrics

logger = logging.getLogger(__name__)

DAYS_PATH = "trip/days"

Geocoder = Callable[[str], Awaitable[GeocodeResult]]


@dataclass(frozen=True)
class GeocodeCandidate:
    """Activity selected for geocoding."""

    day_key: str
    activity_id: str
    name: str
    address: str
    legacy_format: bool


@dataclass
class EnrichmentReport:
    """Aggregate outcome of one enrichment pass."""

    candidates: int = 0
    updated: int = 0
    errors: int = 0

    @property
    def has_updates(self) -> bool:
        return self.updated > 0


def needs_geocoding(activity: Mapping[str, Any]) -> tuple[bool, bool]:
    """Decide whether an activity must be geocoded.

    Returns:
        (needed, legacy_format): needed when it has an address and either
        coordinate is missing or stored as a string; legacy_format when both
        are present but at least one is a string
    """
    address = activity.get("address")
    if not isinstance(address, str) or not address.strip():
        return (False, False)

    lat, lon = activity.get("lat"), activity.get("lon")
    if lat is None or lon is None:
        return (True, False)

    legacy = isinstance(lat, str) or isinstance(lon, str)
    return (legacy, legacy)


def find_candidates(days: Any) -> list[GeocodeCandidate]:
    """Scan the raw ``trip/days`` snapshot for activities needing coordinates."""
    if not isinstance(days, Mapping):
        if days:
            logger.warning("Days snapshot is not a mapping; skipping geocoding scan")
        return []

    candidates = []
    for day_key, day in days.items():
        activities = day.get("activitiesById") if isinstance(day, Mapping) else None
        if not isinstance(activities, Mapping):
            continue
        for activity_id, activity in activities.items():
            if not isinstance(activity, Mapping):
                continue
            needed, legacy = needs_geocoding(activity)
            if needed:
                candidates.append(
                    GeocodeCandidate(
                        day_key=day_key,
                        activity_id=activity_id,
                        name=str(activity.get("name", "")),
                        address=activity["address"].strip(),
                        legacy_format=legacy,
                    )
                )
    return candidates


class GeocodingEnricher:
    """Resolves activity addresses to coordinates in rate-limited batches.

    Every pass re-scans all activities, so addresses that failed before are
    retried while already geocoded ones are skipped.
    """

    def __init__(
        self,
        store: TreeStore,
        primary: Geocoder,
        fallback: Geocoder,
        batch_size: int = 5,
        batch_delay_s: float = 0.5,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._store = store
        self._primary = primary
        self._fallback = fallback
        self._batch_size = batch_size
        self._batch_delay_s = batch_delay_s
        self._lock = asyncio.Lock()

    @classmethod
    def from_client(
        cls,
        store: TreeStore,
        client: httpx.AsyncClient,
        google_api_key: str,
        nominatim_user_agent: str,
        batch_size: int = 5,
        batch_delay_s: float = 0.5,
    ) -> "GeocodingEnricher":
        """Build an enricher wired to Google (primary) and Nominatim (fallback)."""

        async def primary(address: str) -> GeocodeResult:
            return await geocode_google(address, google_api_key, client=client)

        async def fallback(address: str) -> GeocodeResult:
            return await geocode_nominatim(address, nominatim_user_agent, client=client)

        return cls(store, primary, fallback, batch_size=batch_size, batch_delay_s=batch_delay_s)

    async def geocode(self, address: str) -> GeocodeResult:
        """Primary provider, then fallback.

        Raises:
            ExternalProviderError: If both providers fail
        """
        try:
            return await self._primary(address)
        except ExternalProviderError as e:
            logger.info(
                "Primary geocoder failed, falling back",
                extra={"structured": {"address": address, "reason": e.message}},
            )
        return await self._fallback(address)

    async def run(self) -> EnrichmentReport:
        """Run one enrichment pass over every activity of the trip.

        Passes do not overlap; a second caller waits for the running pass.
        """
        async with self._lock:
            candidates = find_candidates(await self._store.get(DAYS_PATH))
            report = EnrichmentReport(candidates=len(candidates))

            if not candidates:
                logger.info("No activities need coordinate updates")
                return report

            for start in range(0, len(candidates), self._batch_size):
                batch = candidates[start : start + self._batch_size]
                results = await asyncio.gather(*(self._enrich_one(c) for c in batch))
                report.updated += sum(1 for ok in results if ok)
                report.errors += sum(1 for ok in results if not ok)

                if start + self._batch_size < len(candidates):
                    await asyncio.sleep(self._batch_delay_s)

            logger.info(
                "Finished updating activity coordinates",
                extra={
                    "structured": {
                        "candidates": report.candidates,
                        "updated": report.updated,
                        "errors": report.errors,
                    }
                },
            )
            return report

    async def _enrich_one(self, candidate: GeocodeCandidate) -> bool:
        """Geocode one activity and write numeric coordinates; never raises."""
        try:
            result = await self.geocode(candidate.address)
            await self._store.update(
                f"{DAYS_PATH}/{candidate.day_key}/activitiesById/{candidate.activity_id}",
                {"lat": result.lat, "lon": result.lon},
            )
        except TripboardError as e:
            logger.warning(
                "Geocoding failed for activity",
                extra={
                    "structured": {
                        "activity": candidate.name,
                        "address": candidate.address,
                        "reason": e.message,
                    }
                },
            )
            metrics.inc_geocode("error")
            return False
        except Exception:
            # One bad activity must not abort the rest of the pass
            logger.exception(
                "Unexpected error while geocoding activity",
                extra={"structured": {"activity": candidate.name, "address": candidate.address}},
            )
            metrics.inc_geocode("error")
            return False

        metrics.inc_geocode("success")
        logger.debug(
            "Updated activity coordinates",
            extra={"structured": {"activity": candidate.name, "provider": result.provider}},
        )
        return True
