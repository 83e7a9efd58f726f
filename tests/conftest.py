import pytest

from smart_idworker.utils.id_worker import TWEPOCH, reset_id_worker


class FakeClock:
    """Clock that returns ``now`` until told otherwise."""

    def __init__(self, now: int = TWEPOCH + 1_000_000):
        self.now = now
        self.reads = 0

    def __call__(self) -> int:
        self.reads += 1
        return self.now


class ScriptedClock:
    """Clock that plays back a list of readings, then repeats the last one."""

    def __init__(self, readings):
        self._readings = iter(readings)
        self._last = None
        self.reads = 0

    def __call__(self) -> int:
        self.reads += 1
        self._last = next(self._readings, self._last)
        return self._last


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def _reset_global_worker():
    reset_id_worker()
    yield
    reset_id_worker()
