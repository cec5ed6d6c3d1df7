import pytest

import costlru.inputs as inputs_mod


class FakeClock:
    """Manually advanced millisecond clock for TTL tests."""

    def __init__(self) -> None:
        self.now = 0.0

    def advance(self, ms: float) -> None:
        self.now += ms

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock()
    monkeypatch.setattr(inputs_mod, "now_ms", fake)
    return fake
