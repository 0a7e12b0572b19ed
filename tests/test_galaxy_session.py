import numpy as np
import pytest

from galaxy_session import (
    CurrentCloud,
    GalaxySession,
    RegenerateDebouncer,
    RegenerateRequested,
)
from spiralgen import GalaxyParameters, InvalidParameter


PARAMS = GalaxyParameters(count=200, radius=2.0, branches=3)


class FakeClock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# Dispose-then-install hand-off
# ---------------------------------------------------------------------------

def test_repeated_regeneration_keeps_one_live_cloud(counting_layer):
    session = GalaxySession(counting_layer, seed=1, verbose=False)
    for i in range(10):
        current = session.regenerate(PARAMS.replace(spin=0.1 * i))
        assert len(counting_layer.live) == 1
        assert counting_layer.live == {current.handle}

    assert session.current.generation == 10
    uploads = [e for e in counting_layer.events if e[0] == "upload"]
    releases = [e for e in counting_layer.events if e[0] == "release"]
    assert len(uploads) == 10
    assert len(releases) == 9


def test_old_cloud_released_before_new_upload(counting_layer):
    session = GalaxySession(counting_layer, seed=1, verbose=False)
    session.regenerate(PARAMS)
    session.regenerate(PARAMS)
    assert counting_layer.events == [("upload", 1), ("release", 1), ("upload", 2)]


def test_close_releases_current(counting_layer):
    with GalaxySession(counting_layer, verbose=False) as session:
        session.regenerate(PARAMS)
        assert counting_layer.live
    assert not counting_layer.live
    assert session.current is None


def test_rejected_parameters_keep_previous_cloud(counting_layer):
    session = GalaxySession(counting_layer, verbose=False)
    before = session.regenerate(PARAMS)
    with pytest.raises(InvalidParameter):
        session.regenerate(PARAMS.replace(branches=0))
    assert session.current is before
    assert counting_layer.live == {before.handle}
    assert len(counting_layer.events) == 1


def test_current_cloud_records_params_and_cloud(counting_layer):
    session = GalaxySession(counting_layer, verbose=False)
    current = session.regenerate(PARAMS)
    assert isinstance(current, CurrentCloud)
    assert current.params == PARAMS
    assert len(current.cloud) == PARAMS.count


def test_seeded_session_reproduces_galaxy(counting_layer):
    session = GalaxySession(counting_layer, seed=5, verbose=False)
    first = session.regenerate(PARAMS).cloud
    second = session.regenerate(PARAMS).cloud
    np.testing.assert_array_equal(first.positions, second.positions)


def test_unseeded_session_draws_fresh_galaxies(counting_layer):
    session = GalaxySession(counting_layer, verbose=False)
    first = session.regenerate(PARAMS).cloud
    second = session.regenerate(PARAMS).cloud
    assert not np.array_equal(first.positions, second.positions)


def test_build_then_install_matches_regenerate(counting_layer):
    session = GalaxySession(counting_layer, seed=3, verbose=False)
    cloud = session.build(PARAMS)
    assert session.current is None
    current = session.install(PARAMS, cloud)
    assert current.cloud is cloud
    assert counting_layer.live == {current.handle}


def test_install_is_not_reentrant():
    class ReentrantLayer:
        session = None

        def upload(self, cloud, params):
            self.session.install(params, cloud)

        def release(self, handle):
            pass

    layer = ReentrantLayer()
    session = GalaxySession(layer, verbose=False)
    layer.session = session
    with pytest.raises(RuntimeError):
        session.regenerate(PARAMS)


def test_handle_dispatches_command(counting_layer):
    session = GalaxySession(counting_layer, verbose=False)
    current = session.handle(RegenerateRequested(params=PARAMS, requested_at=0.0))
    assert current.params == PARAMS


def test_verbose_session_reports_each_generation(counting_layer, capsys):
    session = GalaxySession(counting_layer, seed=1)
    session.regenerate(PARAMS)
    assert "Generation 1: 200 points" in capsys.readouterr().out


# ---------------------------------------------------------------------------
# Debouncer
# ---------------------------------------------------------------------------

def test_debouncer_coalesces_bursts():
    clock = FakeClock()
    dispatched = []
    debouncer = RegenerateDebouncer(dispatched.append, quiet_period=0.25, clock=clock)

    for spin in (0.1, 0.2, 0.3):
        debouncer.submit(PARAMS.replace(spin=spin))
        clock.now += 0.1
        assert debouncer.poll() is None

    assert dispatched == []
    clock.now += 0.2
    debouncer.poll()
    assert [p.spin for p in dispatched] == [0.3]
    assert debouncer.pending is None

    clock.now += 10.0
    assert debouncer.poll() is None
    assert len(dispatched) == 1


def test_debouncer_flush_and_cancel():
    dispatched = []
    debouncer = RegenerateDebouncer(dispatched.append, clock=FakeClock())

    debouncer.submit(PARAMS)
    debouncer.flush()
    assert dispatched == [PARAMS]

    debouncer.submit(PARAMS.replace(count=10))
    debouncer.cancel()
    assert debouncer.flush() is None
    assert dispatched == [PARAMS]


def test_debounced_session_keeps_one_cloud(counting_layer):
    clock = FakeClock()
    session = GalaxySession(counting_layer, seed=2, verbose=False)
    debouncer = RegenerateDebouncer(session.regenerate, quiet_period=0.25, clock=clock)

    for step in range(5):
        for spin in (0.5, 1.0, 1.5):
            debouncer.submit(PARAMS.replace(spin=spin + step))
        clock.now += 1.0
        current = debouncer.poll()
        assert current.params.spin == 1.5 + step

    assert session.current.generation == 5
    assert len(counting_layer.live) == 1


def test_debouncer_propagates_dispatch_errors(counting_layer):
    session = GalaxySession(counting_layer, verbose=False)
    debouncer = RegenerateDebouncer(session.regenerate, clock=FakeClock())
    debouncer.submit(PARAMS.replace(branches=0))
    with pytest.raises(InvalidParameter):
        debouncer.flush()
    assert debouncer.pending is None
