"""Tests for the geocoding enricher."""

import httpx
import pytest

from tripboard.db.inmemory import InMemoryTreeStore
from tripboard.errors import ExternalProviderError
from tripboard.models.tool_results import GeocodeResult
from tripboard.services.geocoding import GeocodingEnricher, find_candidates, needs_geocoding

COORDS = {
    "Bonifacio": (41.3874, 9.1597),
    "Calvi": (42.5672, 8.7575),
    "Corte": (42.3064, 9.1500),
}


class FakeGeocoder:
    """Resolves known addresses; records every call."""

    def __init__(self, name: str, known: dict[str, tuple[float, float]]) -> None:
        self.name = name
        self.known = known
        self.calls: list[str] = []

    async def __call__(self, address: str) -> GeocodeResult:
        self.calls.append(address)
        if address not in self.known:
            raise ExternalProviderError(self.name, "no results")
        lat, lon = self.known[address]
        return GeocodeResult(lat=lat, lon=lon, provider=self.name)


def _store(activities: dict[str, dict]) -> InMemoryTreeStore:
    return InMemoryTreeStore({"trip": {"days": {"jour1": {"id": "jour1", "activitiesById": activities}}}})


class TestNeedsGeocoding:
    @pytest.mark.parametrize(
        ("activity", "expected"),
        [
            ({"address": "Calvi"}, (True, False)),
            ({"address": "Calvi", "lat": 42.5}, (True, False)),
            ({"address": "Calvi", "lat": "42.5", "lon": "8.7"}, (True, True)),
            ({"address": "Calvi", "lat": 42.5, "lon": "8.7"}, (True, True)),
            ({"address": "Calvi", "lat": 42.5, "lon": 8.7}, (False, False)),
            ({"address": "   "}, (False, False)),
            ({"name": "Sans adresse"}, (False, False)),
        ],
    )
    def test_needs_geocoding(self, activity: dict, expected: tuple[bool, bool]) -> None:
        assert needs_geocoding(activity) == expected

    def test_find_candidates_skips_geocoded(self) -> None:
        days = {
            "jour1": {
                "activitiesById": {
                    "a": {"name": "Port", "address": "Bonifacio"},
                    "b": {"name": "Citadelle", "address": "Calvi", "lat": 42.5, "lon": 8.7},
                }
            },
            "jour2": {"activitiesById": {"c": {"name": "Gorges", "address": " Corte "}}},
        }

        candidates = find_candidates(days)

        assert [(c.day_key, c.activity_id, c.address) for c in candidates] == [
            ("jour1", "a", "Bonifacio"),
            ("jour2", "c", "Corte"),
        ]


class TestEnricherRun:
    @pytest.mark.asyncio
    async def test_primary_success_writes_numeric_coordinates(self) -> None:
        store = _store({"a": {"name": "Port", "address": "Bonifacio"}})
        primary = FakeGeocoder("google", COORDS)
        fallback = FakeGeocoder("nominatim", COORDS)

        report = await GeocodingEnricher(store, primary, fallback, batch_delay_s=0).run()

        activity = await store.get("trip/days/jour1/activitiesById/a")
        assert (activity["lat"], activity["lon"]) == COORDS["Bonifacio"]
        assert (report.candidates, report.updated, report.errors) == (1, 1, 0)
        assert fallback.calls == []

    @pytest.mark.asyncio
    async def test_fallback_used_when_primary_fails(self) -> None:
        store = _store({"a": {"name": "Citadelle", "address": "Calvi"}})
        primary = FakeGeocoder("google", {})
        fallback = FakeGeocoder("nominatim", COORDS)

        report = await GeocodingEnricher(store, primary, fallback, batch_delay_s=0).run()

        assert primary.calls == ["Calvi"]
        assert fallback.calls == ["Calvi"]
        assert report.updated == 1
        assert (await store.get("trip/days/jour1/activitiesById/a/lat")) == COORDS["Calvi"][0]

    @pytest.mark.asyncio
    async def test_both_failing_leaves_activity_untouched(self) -> None:
        store = _store({"a": {"name": "Inconnu", "address": "Atlantis"}})

        report = await GeocodingEnricher(
            store, FakeGeocoder("google", {}), FakeGeocoder("nominatim", {}), batch_delay_s=0
        ).run()

        assert await store.get("trip/days/jour1/activitiesById/a") == {"name": "Inconnu", "address": "Atlantis"}
        assert (report.updated, report.errors) == (0, 1)
        assert not report.has_updates

    @pytest.mark.asyncio
    async def test_legacy_string_coordinates_are_replaced(self) -> None:
        store = _store({"a": {"name": "Gorges", "address": "Corte", "lat": "42.3", "lon": "9.1"}})

        await GeocodingEnricher(store, FakeGeocoder("google", COORDS), FakeGeocoder("n", {}), batch_delay_s=0).run()

        activity = await store.get("trip/days/jour1/activitiesById/a")
        assert isinstance(activity["lat"], float)
        assert (activity["lat"], activity["lon"]) == COORDS["Corte"]

    @pytest.mark.asyncio
    async def test_nothing_to_do(self) -> None:
        store = _store({"a": {"name": "Plage", "address": "Calvi", "lat": 1.0, "lon": 2.0}})
        primary = FakeGeocoder("google", COORDS)

        report = await GeocodingEnricher(store, primary, FakeGeocoder("n", {}), batch_delay_s=0).run()

        assert report.candidates == 0
        assert primary.calls == []

    @pytest.mark.asyncio
    async def test_pauses_between_batches_only(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test that five candidates in batches of two pause twice, not after the last batch."""
        pauses: list[float] = []

        async def fake_sleep(delay: float) -> None:
            pauses.append(delay)

        monkeypatch.setattr("tripboard.services.geocoding.asyncio.sleep", fake_sleep)
        store = _store({f"a{i}": {"name": f"Lieu {i}", "address": "Bonifacio"} for i in range(5)})

        report = await GeocodingEnricher(
            store, FakeGeocoder("google", COORDS), FakeGeocoder("n", {}), batch_size=2, batch_delay_s=0.5
        ).run()

        assert pauses == [0.5, 0.5]
        assert report.updated == 5

    @pytest.mark.asyncio
    async def test_second_pass_retries_failures_only(self) -> None:
        store = _store(
            {
                "a": {"name": "Port", "address": "Bonifacio"},
                "b": {"name": "Citadelle", "address": "Calvi"},
            }
        )
        known = {"Bonifacio": COORDS["Bonifacio"]}
        primary = FakeGeocoder("google", known)
        enricher = GeocodingEnricher(store, primary, FakeGeocoder("n", {}), batch_delay_s=0)

        first = await enricher.run()
        known["Calvi"] = COORDS["Calvi"]
        second = await enricher.run()

        assert (first.updated, first.errors) == (1, 1)
        assert (second.candidates, second.updated) == (1, 1)
        assert primary.calls.count("Bonifacio") == 1

    def test_batch_size_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            GeocodingEnricher(InMemoryTreeStore(), FakeGeocoder("g", {}), FakeGeocoder("n", {}), batch_size=0)

    @pytest.mark.asyncio
    async def test_unexpected_google_body_falls_back_to_nominatim(self) -> None:
        """Test that a list body from Google is treated as a provider failure."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "maps.googleapis.com":
                return httpx.Response(200, json=["unexpected"])
            return httpx.Response(200, json=[{"lat": "42.5672", "lon": "8.7575"}])

        store = _store({"a": {"name": "Citadelle", "address": "Calvi"}})
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            enricher = GeocodingEnricher.from_client(
                store, client, google_api_key="key-123", nominatim_user_agent="ua", batch_delay_s=0
            )
            report = await enricher.run()

        assert (report.updated, report.errors) == (1, 0)
        activity = await store.get("trip/days/jour1/activitiesById/a")
        assert (activity["lat"], activity["lon"]) == COORDS["Calvi"]

    @pytest.mark.asyncio
    async def test_unexpected_error_is_counted_and_batch_continues(self) -> None:
        async def broken(address: str) -> GeocodeResult:
            if address == "Calvi":
                raise RuntimeError("boom")
            return await FakeGeocoder("google", COORDS)(address)

        store = _store(
            {
                "a": {"name": "Citadelle", "address": "Calvi"},
                "b": {"name": "Port", "address": "Bonifacio"},
            }
        )

        report = await GeocodingEnricher(store, broken, FakeGeocoder("n", {}), batch_delay_s=0).run()

        assert (report.updated, report.errors) == (1, 1)
        assert await store.get("trip/days/jour1/activitiesById/b/lat") == COORDS["Bonifacio"][0]
        assert await store.get("trip/days/jour1/activitiesById/a/lat") is None
