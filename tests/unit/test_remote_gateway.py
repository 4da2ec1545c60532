import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from src.domain.errors import RemoteFailure
from src.infrastructure.database.remote_gateway import RemoteDataGateway, split_path


async def settle():
    for _ in range(10):
        await asyncio.sleep(0)


def test_split_path():
    assert split_path("palettes") == ("palettes", None)
    assert split_path("/users/u1/") == ("users", "u1")
    with pytest.raises(ValueError):
        split_path("")
    with pytest.raises(ValueError):
        split_path("a/b/c")


def test_create_overwrite_delete_roundtrip():
    async def scenario():
        gateway = RemoteDataGateway(None)
        key = await gateway.create("palettes", {"colors": ["#AABBCC"], "createdBy": "u1"})
        created = await gateway.fetch_once(f"palettes/{key}")
        await gateway.overwrite(f"palettes/{key}", {"colors": ["#000000"]})
        overwritten = await gateway.fetch_once(f"palettes/{key}")
        await gateway.delete(f"palettes/{key}")
        deleted = await gateway.fetch_once(f"palettes/{key}")
        return key, created, overwritten, deleted, await gateway.fetch_once("palettes")

    key, created, overwritten, deleted, collection = asyncio.run(scenario())
    assert key
    assert created == {"colors": ["#AABBCC"], "createdBy": "u1"}
    # overwrite replaces the whole record
    assert overwritten == {"colors": ["#000000"]}
    assert deleted is None
    assert collection is None


def test_new_keys_are_unique():
    gateway = RemoteDataGateway(None)
    assert len({gateway.new_key() for _ in range(100)}) == 100


def test_record_paths_are_required_for_writes():
    gateway = RemoteDataGateway(None)
    with pytest.raises(ValueError):
        asyncio.run(gateway.overwrite("palettes", {}))
    with pytest.raises(ValueError):
        gateway.watch("palettes/p1")


def test_feed_starts_with_current_snapshot_and_follows_changes():
    async def scenario():
        gateway = RemoteDataGateway(None)
        await gateway.overwrite("palettes/a", {"colors": ["#000000"]})
        feed = gateway.watch("palettes")
        seen = []

        async def consume():
            async for snapshot in feed:
                seen.append(snapshot)

        task = asyncio.create_task(consume())
        await settle()
        await gateway.overwrite("palettes/b", {"colors": ["#FFFFFF"]})
        await gateway.delete("palettes/a")
        await settle()
        await feed.close()
        await asyncio.wait_for(task, 1)
        return seen, gateway.watcher_count("palettes"), feed.active

    seen, watchers, active = asyncio.run(scenario())
    assert [sorted(s) for s in seen] == [["a"], ["a", "b"], ["b"]]
    assert watchers == 0
    assert not active


def test_feed_can_be_restarted_after_close():
    async def scenario():
        gateway = RemoteDataGateway(None)
        feed = gateway.watch("palettes")
        stream = aiter(feed)
        first = await anext(stream)
        await feed.close()
        leftover = [s async for s in stream]
        await gateway.create("palettes", {"colors": ["#1"]})
        restarted = aiter(feed)
        second = await anext(restarted)
        await restarted.aclose()
        return first, leftover, second, gateway.watcher_count("palettes")

    first, leftover, second, watchers = asyncio.run(scenario())
    assert first == {}
    assert leftover == []
    assert len(second) == 1
    assert watchers == 0


def test_subscribers_get_independent_copies():
    async def scenario():
        gateway = RemoteDataGateway(None)
        one, two = [], []
        sub_one = gateway.subscribe("palettes", one.append)
        sub_two = gateway.subscribe("palettes", two.append)
        await settle()
        await gateway.overwrite("palettes/p1", {"colors": ["#1"]})
        await settle()
        one[-1]["p1"]["colors"].append("#2")
        stored = await gateway.fetch_once("palettes/p1")
        await sub_one.cancel()
        await sub_two.cancel()
        return one, two, stored, gateway.watcher_count("palettes")

    one, two, stored, watchers = asyncio.run(scenario())
    assert len(one) == len(two) == 2
    assert two[-1]["p1"]["colors"] == ["#1"]
    assert stored == {"colors": ["#1"]}
    assert watchers == 0


def test_cancelled_subscription_stops_delivery():
    async def scenario():
        gateway = RemoteDataGateway(None)
        seen = []
        sub = gateway.subscribe("palettes", seen.append)
        await settle()
        await sub.cancel()
        await gateway.create("palettes", {"colors": ["#1"]})
        await settle()
        return seen, sub.active

    seen, active = asyncio.run(scenario())
    assert seen == [{}]
    assert not active


def test_failing_listener_does_not_stop_delivery():
    async def scenario():
        gateway = RemoteDataGateway(None)
        calls = []

        def listener(snapshot):
            calls.append(snapshot)
            if len(calls) == 1:
                raise RuntimeError("render failed")

        sub = gateway.subscribe("palettes", listener)
        await settle()
        await gateway.create("palettes", {"colors": ["#1"]})
        await settle()
        await sub.cancel()
        return calls

    assert len(asyncio.run(scenario())) == 2


@pytest.fixture()
def supabase_gateway(monkeypatch):
    monkeypatch.setenv("SUPABASE_DISABLED", "0")
    client = Mock()
    return RemoteDataGateway(client), client


def test_supabase_rows_map_to_store_records(supabase_gateway):
    gateway, client = supabase_gateway
    rows = [{"id": "p1", "colors": ["#1"], "created_by": "u1", "created_at": "2025-03-07T12:00:00Z"}]
    client.table.return_value.select.return_value.execute = AsyncMock(return_value=Mock(data=rows))

    snapshot = asyncio.run(gateway.fetch_once("palettes"))

    client.table.assert_called_with("palettes")
    assert snapshot == {
        "p1": {"colors": ["#1"], "createdBy": "u1", "createdAt": "2025-03-07T12:00:00Z"}
    }


def test_supabase_overwrite_upserts_snake_case_row(supabase_gateway):
    gateway, client = supabase_gateway
    upsert = client.table.return_value.upsert
    upsert.return_value.execute = AsyncMock()

    asyncio.run(gateway.overwrite("users/u1", {"fullName": "Ada", "profilePic": ""}))

    client.table.assert_called_with("users")
    assert upsert.call_args.args[0] == {"full_name": "Ada", "profile_pic": "", "id": "u1"}
    assert upsert.call_args.kwargs == {"on_conflict": "id"}


def test_supabase_errors_become_remote_failures(supabase_gateway):
    gateway, client = supabase_gateway
    client.table.return_value.delete.return_value.eq.return_value.execute = AsyncMock(
        side_effect=Exception("permission denied")
    )
    with pytest.raises(RemoteFailure, match="permission denied"):
        asyncio.run(gateway.delete("palettes/p1"))


def test_feed_teardown_error_ends_subscription_quietly(caplog):
    async def scenario():
        gateway = RemoteDataGateway(None)
        sub = gateway.subscribe("palettes", lambda snapshot: None)
        await settle()
        gateway._detach = AsyncMock(side_effect=RuntimeError("channel already removed"))
        await sub.feed.close()
        await settle()
        active = sub.active
        await sub.cancel()
        return active

    assert asyncio.run(scenario()) is False
    assert "Snapshot feed for palettes stopped" in caplog.text
