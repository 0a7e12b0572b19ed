import pytest

galaxy_gui = pytest.importorskip("galaxy_gui")

import matplotlib.pyplot as plt

from spiralgen import GalaxyParameters

# Importing the editor selects TkAgg; the rest of the suite renders off-screen.
plt.switch_backend("Agg")


class RecordingRoot:
    def __init__(self) -> None:
        self.scheduled = []

    def after(self, delay, callback):
        self.scheduled.append((delay, callback))


class UntouchableSession:
    def install(self, params, cloud):
        raise AssertionError("install after close")


def headless_gui(closing: bool):
    gui = object.__new__(galaxy_gui.GalaxyGUI)
    gui.root = RecordingRoot()
    gui._closing = closing
    gui._session = UntouchableSession()
    return gui


def test_worker_results_reach_tk_thread_while_open():
    gui = headless_gui(closing=False)
    gui._post(lambda: None)
    assert len(gui.root.scheduled) == 1
    assert gui.root.scheduled[0][0] == 0


def test_worker_results_dropped_after_close():
    gui = headless_gui(closing=True)
    gui._post(lambda: None)
    assert gui.root.scheduled == []

    # Callbacks queued before the close must not touch the torn-down view.
    gui._install(GalaxyParameters(count=10), None, 0.1)
    gui._set_busy(False)
