"""Tests for tree path helpers and the in-memory tree store."""

import pytest

from tripboard.db.inmemory import InMemoryTreeStore
from tripboard.db.subscriptions import SubscriptionHub
from tripboard.db.tree import PushIdGenerator, apply_update, paths_overlap, set_at, split_path


class TestTreeHelpers:
    def test_split_path_ignores_extra_slashes(self) -> None:
        assert split_path("/trip//days/jour1/") == ["trip", "days", "jour1"]

    def test_paths_overlap(self) -> None:
        assert paths_overlap("trip", "trip/days/jour1")
        assert paths_overlap("trip/days/jour1", "trip")
        assert not paths_overlap("trip/days/jour1", "trip/days/jour2")
        assert not paths_overlap("checklist", "trip")

    def test_set_at_none_deletes(self) -> None:
        tree = {"a": {"b": 1, "c": 2}}
        set_at(tree, ["a", "b"], None)
        assert tree == {"a": {"c": 2}}

    def test_set_at_drops_nested_nulls(self) -> None:
        tree: dict = {}
        set_at(tree, ["a"], {"x": 1, "y": None})
        assert tree == {"a": {"x": 1}}

    def test_root_must_be_mapping(self) -> None:
        with pytest.raises(ValueError):
            set_at({}, [], [1, 2])

    def test_apply_update_reports_changed_paths(self) -> None:
        tree: dict = {"trip": {"days": {}}}
        changed = apply_update(tree, ["trip", "days"], {"d1/title": "Calvi", "d2": {"id": "d2"}})
        assert changed == ["trip/days/d1/title", "trip/days/d2"]
        assert tree["trip"]["days"] == {"d1": {"title": "Calvi"}, "d2": {"id": "d2"}}


class TestPushIdGenerator:
    def test_ids_are_unique_and_sorted_within_same_millisecond(self) -> None:
        generator = PushIdGenerator(clock=lambda: 1_700_000_000.0)
        ids = [generator.next_id() for _ in range(50)]
        assert len(set(ids)) == 50
        assert ids == sorted(ids)
        assert all(len(key) == 20 for key in ids)

    def test_ids_sort_chronologically(self) -> None:
        now = [1_700_000_000.0]
        generator = PushIdGenerator(clock=lambda: now[0])
        first = generator.next_id()
        now[0] += 1
        assert generator.next_id() > first


class TestInMemoryTreeStore:
    @pytest.mark.asyncio
    async def test_get_returns_copies(self) -> None:
        store = InMemoryTreeStore({"trip": {"days": {"d1": {"id": "d1"}}}})
        day = await store.get("trip/days/d1")
        day["id"] = "mutated"
        assert (await store.get("trip/days/d1"))["id"] == "d1"

    @pytest.mark.asyncio
    async def test_get_missing_is_none(self) -> None:
        store = InMemoryTreeStore()
        assert await store.get("trip/days/nope") is None

    @pytest.mark.asyncio
    async def test_update_is_multi_path(self) -> None:
        store = InMemoryTreeStore({"trip": {"days": {"d1": {"activityOrder": ["a"], "activitiesById": {"a": {}}}}}})
        await store.update(
            "trip/days/d1",
            {"activitiesById/b": {"name": "Plage"}, "activityOrder": ["a", "b"]},
        )
        day = await store.get("trip/days/d1")
        assert day["activityOrder"] == ["a", "b"]
        assert day["activitiesById"]["b"] == {"name": "Plage"}

    @pytest.mark.asyncio
    async def test_remove(self) -> None:
        store = InMemoryTreeStore({"checklist": {"items": {"i1": {"text": "Passeport"}}}})
        await store.remove("checklist/items/i1")
        assert await store.get("checklist/items") == {}

    @pytest.mark.asyncio
    async def test_subscribe_delivers_current_then_changes(self) -> None:
        store = InMemoryTreeStore({"trip": {"budget": {"total": 100}}})
        snapshots: list = []
        subscription = await store.subscribe("trip/budget", snapshots.append)

        await store.update("trip/budget", {"spent": 40})
        await store.set("checklist", {"items": {}})  # unrelated path

        assert snapshots == [{"total": 100}, {"total": 100, "spent": 40}]

        subscription.unsubscribe()
        await store.update("trip/budget", {"spent": 50})
        assert len(snapshots) == 2
        assert not subscription.active

    @pytest.mark.asyncio
    async def test_subscriber_on_ancestor_sees_descendant_change(self) -> None:
        store = InMemoryTreeStore({"trip": {"days": {"d1": {"title": "A"}}}})
        snapshots: list = []
        await store.subscribe("trip", snapshots.append)
        await store.set("trip/days/d1/title", "B")
        assert snapshots[-1]["days"]["d1"]["title"] == "B"

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_fail_write(self) -> None:
        store = InMemoryTreeStore({"trip": {}})
        calls: list = []

        def callback(snapshot: object) -> None:
            calls.append(snapshot)
            if len(calls) > 1:
                raise RuntimeError("listener bug")

        await store.subscribe("trip", callback)
        await store.set("trip/budget", {"total": 1})
        assert await store.get("trip/budget") == {"total": 1}
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_watch_streams_snapshots(self) -> None:
        store = InMemoryTreeStore({"checklist": {"itemOrder": []}})
        stream = store.watch("checklist/itemOrder")

        assert await anext(stream) == []
        await store.set("checklist/itemOrder", ["i1"])
        assert await anext(stream) == ["i1"]
        await stream.aclose()


@pytest.mark.asyncio
async def test_watch_keeps_only_latest_pending_snapshots() -> None:
    """Test that a consumer that falls behind receives the newest snapshots."""
    version = 0

    async def reader(path: str) -> int:
        return version

    hub = SubscriptionHub(reader)
    stream = hub.watch("trip", max_pending=2)
    assert await anext(stream) == 0

    for version in range(1, 6):
        await hub.notify(["trip"])

    assert [await anext(stream), await anext(stream)] == [4, 5]
    await stream.aclose()
    assert len(hub) == 0
