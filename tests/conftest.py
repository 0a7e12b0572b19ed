import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


class ConstantSource:
    """Random source returning the same draw every time."""

    def __init__(self, value: float) -> None:
        self.value = value
        self.calls = 0

    def random(self, size=None):
        self.calls += 1
        return np.full(size, self.value, dtype=np.float64)


class CountingLayer:
    """Graphics layer stand-in that tracks live handles and call order."""

    def __init__(self) -> None:
        self.live = set()
        self.events = []
        self._next = 0

    def upload(self, cloud, params):
        self._next += 1
        handle = self._next
        self.live.add(handle)
        self.events.append(("upload", handle))
        return handle

    def release(self, handle):
        assert handle in self.live, f"double release of {handle}"
        self.live.remove(handle)
        self.events.append(("release", handle))


@pytest.fixture
def constant_source():
    return ConstantSource


@pytest.fixture
def counting_layer():
    return CountingLayer()
