import pytest

from furlong.errors import ConfigurationError, SyncRoleError, SyncWriteError
from furlong.models import IssuedQuestion, RaceSnapshot, RaceStatus, Ranking
from furlong.sync import InMemoryRecordStore, RoomSync


class FailingStore(InMemoryRecordStore):
    def update(self, path, fields):
        raise SyncWriteError("store offline")


@pytest.fixture()
def host(store, scheduler):
    return RoomSync(store, "ROOM", "p1", is_host=True, scheduler=scheduler)


@pytest.fixture()
def client(store, scheduler):
    return RoomSync(store, "ROOM", "p2", is_host=False, scheduler=scheduler)


def _snapshot(roster, timestamp_ms=0.0):
    return RaceSnapshot(entities=roster, timestamp_ms=timestamp_ms, status=RaceStatus.RUNNING)


def test_store_multi_location_update(store):
    store.update("rooms/A", {"status": "racing", "players/p1/progress": 10.0, "players/p2/progress": 20.0})

    assert store.read("rooms/A/status") == "racing"
    assert store.read("rooms/A/players") == {"p1": {"progress": 10.0}, "p2": {"progress": 20.0}}

    store.update("rooms/A", {"players/p2": None})
    assert store.read("rooms/A/players") == {"p1": {"progress": 10.0}}
    assert store.read("rooms/missing") is None


def test_store_read_returns_copies(store):
    store.set("rooms/A", {"players": {"p1": {"progress": 1.0}}})

    record = store.read("rooms/A")
    record["players"]["p1"]["progress"] = 99.0

    assert store.read("rooms/A/players/p1/progress") == 1.0


def test_store_subscribe_pushes_whole_record(store):
    seen = []
    unsubscribe = store.subscribe("rooms/A", seen.append)

    store.update("rooms/A/players/p1", {"progress": 5.0})
    store.update("rooms/B", {"status": "lobby"})
    unsubscribe()
    store.update("rooms/A", {"status": "finished"})

    assert seen == [None, {"players": {"p1": {"progress": 5.0}}}]


def test_store_drop_applies_disconnect_hooks(store):
    store.set("rooms/A/players/p2", {"connected": True})
    store.on_disconnect("rooms/A/players/p2", {"connected": False})

    assert store.drop("rooms/A/players/p1") == 0
    assert store.drop("rooms/A") == 1
    assert store.read("rooms/A/players/p2/connected") is False
    assert store.drop() == 0


def test_room_sync_requires_store(scheduler):
    with pytest.raises(ConfigurationError):
        RoomSync(None, "ROOM", "p1", is_host=True, scheduler=scheduler)


def test_result_writes_are_host_only(client, roster):
    question = IssuedQuestion(
        id="q", text="?", options=("a", "b", "c", "d"), correct_index=0,
        issued_at_ms=0, timeout_ms=6000, number=1, total=10,
    )
    with pytest.raises(SyncRoleError):
        client.start_race(roster)
    with pytest.raises(SyncRoleError):
        client.push_snapshot(_snapshot(roster))
    with pytest.raises(SyncRoleError):
        client.end_race(None, [])
    with pytest.raises(SyncRoleError):
        client.publish_question(question)


def test_start_race_writes_roster(host, store, roster):
    host.start_race(roster)

    record = store.read("rooms/ROOM")
    assert record["status"] == "racing"
    assert set(record["players"]) == {"p1", "p2", "p3"}
    assert record["players"]["p2"]["name"] == "Bob"
    assert set(RoomSync.roster_from_record(record)) == {"p1", "p2", "p3"}


def test_push_snapshot_is_throttled(host, store, scheduler, roster):
    host.start_race(roster)
    moved = {pid: e.model_copy(update={"progress": 12.5, "speed": 0.7}) for pid, e in roster.items()}

    assert host.push_snapshot(_snapshot(moved))
    scheduler.advance(100)
    assert not host.push_snapshot(_snapshot(roster))
    assert host.push_snapshot(_snapshot(moved, 100.0), force=True)
    scheduler.advance(150)
    assert not host.push_snapshot(_snapshot(moved))
    scheduler.advance(50)
    assert host.push_snapshot(_snapshot(moved, 300.0))

    player = store.read("rooms/ROOM/players/p3")
    assert player["progress"] == 12.5
    assert player["speed"] == 0.7
    assert player["last_update_ms"] == 300.0
    assert player["name"] == "Cara"


def test_push_failures_are_swallowed(scheduler, roster):
    sync = RoomSync(FailingStore(), "ROOM", "p1", is_host=True, scheduler=scheduler)

    assert not sync.push_snapshot(_snapshot(roster))
    assert not sync.end_race(None, [])
    with pytest.raises(SyncWriteError):
        sync.start_race(roster)


def test_end_race_writes_result(host, store, roster):
    winner = roster["p2"].model_copy(update={"progress": 100.0})
    rankings = [
        Ranking(rank=1, player_id="p2", name="Bob", progress=100.0, is_winner=True),
        Ranking(rank=2, player_id="p1", name="Alice", progress=80.0),
    ]

    assert host.end_race(winner, rankings)

    record = store.read("rooms/ROOM")
    assert record["status"] == "finished"
    assert record["race"]["winner"]["id"] == "p2"
    assert [r["player_id"] for r in record["race"]["rankings"]] == ["p2", "p1"]


def test_participant_input_writes(client, store, scheduler):
    scheduler.advance(500)
    assert client.send_tap_input(12)
    assert client.send_trivia_answer("q1", 2, True)

    player = store.read("rooms/ROOM/players/p2")
    assert player["tap_count"] == 12
    assert player["last_tap_ms"] == 500.0
    assert player["last_answer"] == {
        "question_id": "q1",
        "answer_index": 2,
        "is_correct": True,
        "answered_ms": 500.0,
    }


def test_presence_marks_player_disconnected(host, client, store, roster):
    host.start_race(roster)
    mirrored = []
    client.subscribe(mirrored.append)
    client.register_presence()

    store.drop("rooms/ROOM/players/p2")

    roster_view = RoomSync.roster_from_record(mirrored[-1])
    assert not roster_view["p2"].connected
    assert roster_view["p1"].connected


def test_roster_from_record_skips_malformed_players():
    record = {
        "players": {
            "p1": {"name": "Alice", "progress": 10.0},
            "bad": "not a record",
            "p9": {"progress": 500.0},
        }
    }

    roster = RoomSync.roster_from_record(record)

    assert list(roster) == ["p1"]
    assert roster["p1"].id == "p1"
    assert RoomSync.roster_from_record(None) == {}
