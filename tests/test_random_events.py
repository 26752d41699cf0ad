import numpy as np
import pytest
from pydantic import ValidationError

from furlong.config import RandomEventConfig
from furlong.models import EventKind
from furlong.modes import RandomEventController, event_distribution, generate_random_event

ALWAYS_BOOST = RandomEventConfig(stumble_chance=0.0, boost_chance=1.0, surge_chance=0.0)


def test_default_distribution():
    dist = event_distribution(RandomEventConfig())

    assert dist[EventKind.TRIP] == pytest.approx(0.04)
    assert dist[EventKind.STUMBLE] == pytest.approx(0.16)
    assert dist[EventKind.SURGE] == pytest.approx(0.045)
    assert dist[EventKind.BOOST] == pytest.approx(0.255)
    assert dist[EventKind.NONE] == pytest.approx(0.5)
    assert sum(dist.values()) == pytest.approx(1.0)


def test_sampled_frequencies_converge(rng):
    config = RandomEventConfig()
    n = 20000
    counts = {kind: 0 for kind in EventKind}
    for _ in range(n):
        counts[generate_random_event(rng, config).kind] += 1

    for kind, expected in event_distribution(config).items():
        assert counts[kind] / n == pytest.approx(expected, abs=0.015)


def test_event_multipliers_and_durations(rng):
    for _ in range(500):
        event = generate_random_event(rng)
        if event.kind == EventKind.BOOST:
            assert 1.2 <= event.multiplier <= 2.0
            assert event.duration_ms == 800
        elif event.kind == EventKind.STUMBLE:
            assert 0.3 <= event.multiplier <= 0.6
            assert event.duration_ms == 800
        elif event.kind == EventKind.SURGE:
            assert event.multiplier == pytest.approx(3.0)
            assert event.duration_ms == pytest.approx(640)
        elif event.kind == EventKind.TRIP:
            assert event.multiplier == pytest.approx(0.3)
            assert event.duration_ms == pytest.approx(1200)
        else:
            assert event.multiplier == 1.0


def test_seeded_draws_are_reproducible():
    a = [generate_random_event(np.random.default_rng(7)) for _ in range(3)]
    b = [generate_random_event(np.random.default_rng(7)) for _ in range(3)]
    assert a == b


def test_events_apply_then_revert(scheduler, rng):
    notified = []
    events = []
    ctrl = RandomEventController(
        ["p1", "p2"],
        on_event=events.append,
        on_speed_update=notified.append,
        config=ALWAYS_BOOST,
        scheduler=scheduler,
        rng=rng,
    )
    ctrl.start()

    scheduler.advance(1000)
    assert len(events) == 1
    assert all(e.kind == EventKind.BOOST for e in events[0].values())
    assert all(speed >= 0.8 * 1.2 for speed in notified[-1].values())

    scheduler.advance(800)
    assert notified[-1] == {"p1": 0.8, "p2": 0.8}
    assert ctrl.get_active_events() == {"p1": None, "p2": None}


def test_newer_event_cancels_older_reversion(scheduler, rng):
    config = ALWAYS_BOOST.model_copy(update={"event_duration_ms": 1500.0})
    ctrl = RandomEventController(["p1"], config=config, scheduler=scheduler, rng=rng)
    ctrl.start()

    scheduler.advance(2600)

    # The first event's reversion (due at 2500) must not undo the second event
    assert ctrl.get_speeds()["p1"] >= 0.8 * 1.2
    assert ctrl.get_active_events()["p1"] is not None


def test_stop_halts_events_and_reversions(scheduler, rng):
    notified = []
    ctrl = RandomEventController(
        ["p1", "p2"], on_speed_update=notified.append, scheduler=scheduler, rng=rng
    )
    ctrl.start()
    scheduler.advance(1000)
    count = len(notified)

    ctrl.stop()
    ctrl.stop()
    scheduler.advance(5000)

    assert len(notified) == count
    assert scheduler.pending == 0


def test_set_player_ids_keeps_known_speeds(scheduler, rng):
    ctrl = RandomEventController(["p1"], config=ALWAYS_BOOST, scheduler=scheduler, rng=rng)
    ctrl.start()
    ctrl.generate_events()
    boosted = ctrl.get_speeds()["p1"]

    ctrl.set_player_ids(["p1", "p2"])

    assert ctrl.get_speeds() == {"p1": boosted, "p2": 0.8}


def test_config_rejects_overlapping_chances():
    with pytest.raises(ValidationError):
        RandomEventConfig(stumble_chance=0.6, boost_chance=0.6)


def test_generate_events_is_inert_while_stopped(scheduler, rng):
    notified = []
    ctrl = RandomEventController(["p1"], on_speed_update=notified.append, scheduler=scheduler, rng=rng)

    assert ctrl.generate_events() == {}
    assert notified == []
    assert scheduler.pending == 0
    assert ctrl.get_speeds() == {"p1": 0.8}


def test_stop_inside_event_listener_skips_speed_push(scheduler, rng):
    notified = []
    events = []

    def stop_on_event(batch):
        events.append(batch)
        ctrl.stop()

    ctrl = RandomEventController(
        ["p1"],
        on_event=stop_on_event,
        on_speed_update=notified.append,
        config=ALWAYS_BOOST,
        scheduler=scheduler,
        rng=rng,
    )
    ctrl.start()
    scheduler.advance(5000)

    assert len(events) == 1
    assert notified == []
    assert scheduler.pending == 0
