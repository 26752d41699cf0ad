import pytest

from furlong.config import ButtonMashConfig, TrackLength
from furlong.modes import ButtonMashController


def _controller(scheduler, track_length=TrackLength.LONG, **kwargs):
    ctrl = ButtonMashController("p1", track_length=track_length, scheduler=scheduler, **kwargs)
    ctrl.start()
    return ctrl


def test_taps_build_momentum_up_to_max_speed(scheduler):
    speeds = []
    ctrl = _controller(scheduler, TrackLength.SHORT, on_speed_update=lambda s, p: speeds.append(s))

    assert ctrl.tap()
    assert ctrl.get_current_speed() == pytest.approx(0.65)
    assert speeds[-1] == pytest.approx(0.65)

    for _ in range(100):
        ctrl.tap()
    assert ctrl.get_current_speed() == pytest.approx(3.0)


def test_overheat_after_draining_stamina(scheduler):
    ctrl = _controller(scheduler)

    accepted = sum(ctrl.tap() for _ in range(60))

    assert accepted == 50
    stamina = ctrl.get_stamina()
    assert stamina.is_overheated
    assert stamina.current == 0
    assert ctrl.get_current_speed() == pytest.approx(0.25)


def test_overheat_recovers_to_half_stamina(scheduler):
    ctrl = _controller(scheduler, config=ButtonMashConfig(stamina_recovery_rate=0.0))
    for _ in range(51):
        ctrl.tap()
    assert ctrl.is_overheated

    scheduler.advance(1999)
    assert ctrl.is_overheated
    scheduler.advance(1)

    stamina = ctrl.get_stamina()
    assert not stamina.is_overheated
    assert stamina.current == pytest.approx(50.0)
    assert stamina.percentage == pytest.approx(50.0)
    assert ctrl.tap()


def test_stamina_recovers_only_after_idle_period(scheduler):
    ctrl = _controller(scheduler)
    for _ in range(10):
        ctrl.tap()
    assert ctrl.get_stamina().current == pytest.approx(80.0)

    scheduler.advance(200)
    assert ctrl.get_stamina().current == pytest.approx(80.0)
    scheduler.advance(100)
    assert ctrl.get_stamina().current == pytest.approx(81.0)


def test_short_track_disables_stamina(scheduler):
    ctrl = _controller(scheduler, TrackLength.SHORT)

    assert all(ctrl.tap() for _ in range(120))
    stamina = ctrl.get_stamina()
    assert not stamina.enabled
    assert not stamina.is_overheated
    assert stamina.current == stamina.max
    assert ctrl.get_tap_target() == 200
    assert ctrl.get_progress() == pytest.approx(60.0)


def test_unknown_track_uses_default_profile(scheduler):
    ctrl = _controller(scheduler, track_length=8)

    assert ctrl.get_tap_target() == 300
    assert ctrl.get_stamina().enabled


def test_momentum_decays_to_base_speed(scheduler):
    ctrl = _controller(scheduler)
    ctrl.tap()

    scheduler.advance(6000)

    assert ctrl.get_current_speed() == pytest.approx(0.5)


def test_sync_tick_batches_taps(scheduler):
    synced = []
    ctrl = _controller(scheduler, on_sync=lambda delta, total: synced.append((delta, total)))
    for _ in range(5):
        ctrl.tap()

    scheduler.advance(200)
    for _ in range(3):
        ctrl.tap()
    scheduler.advance(200)
    scheduler.advance(200)

    assert synced == [(5, 5), (3, 8)]
    assert ctrl.get_tap_count() == 8


def test_stop_cancels_all_timers(scheduler):
    ctrl = _controller(scheduler)
    for _ in range(51):
        ctrl.tap()

    ctrl.stop()
    ctrl.stop()

    assert scheduler.pending == 0
    assert not ctrl.tap()


def test_restart_resets_state(scheduler):
    ctrl = _controller(scheduler)
    for _ in range(20):
        ctrl.tap()

    ctrl.start()

    assert ctrl.get_tap_count() == 0
    assert ctrl.get_stamina().current == 100
    assert ctrl.get_current_speed() == pytest.approx(0.5)
