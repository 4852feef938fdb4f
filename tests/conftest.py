import pytest

from tiercache.infrastructure.cache.memory_store import MemoryStore
from tiercache.infrastructure.config import settings


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def memory_store(clock):
    """MemoryStore driven by the fake clock."""
    return MemoryStore(clock=clock)

@pytest.fixture(autouse=True)
def clean_test_config():
    """Ensures testing overrides never leak between tests."""
    yield
    settings.clear_test_config()
