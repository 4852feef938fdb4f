"""End-to-end flows through key builders, the tiered store and real local stores."""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List

import pytest

from tiercache import (
    CacheKeyBuilder,
    DiskStore,
    Expiration,
    KeyArityError,
    MemoryStore,
    TieredStore,
    UnsupportedOperationError,
)


@dataclass
class Profile:
    name: str
    age: int
    tags: List[str] = field(default_factory=list)
    seen: datetime = datetime(1970, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def disk_store(tmp_path):
    store = DiskStore(str(tmp_path / "slow"))
    yield store
    store.close()


def test_profile_cache_over_tiers(disk_store, clock):
    fast = MemoryStore(clock=clock)
    tiered = TieredStore(fast, disk_store, Expiration(3))
    profiles = CacheKeyBuilder("app", "profile", 1, tiered, Expiration(60, 5), shape=Profile)

    handle = profiles.key(42)
    assert handle.key == "app:profile_42"
    assert handle.get() is None

    profile = Profile("ann", 31, ["admin"], datetime(2022, 3, 27, tzinfo=timezone.utc))
    assert handle.create(profile) is True
    assert handle.create(Profile("bob", 1)) is False

    # Fast tier expires, disk still answers and backfills
    clock.advance(10)
    assert handle.get() == profile
    assert fast.get(handle.key) == profile

    assert handle.try_get(dict) == (True, {
        "name": "ann", "age": 31, "tags": ["admin"], "seen": profile.seen,
    })

    assert handle.remove() is True
    assert handle.get() is None

    with pytest.raises(UnsupportedOperationError):
        handle.increment()

def test_counters_on_memory_store():
    counters = CacheKeyBuilder("app", "hits", 2, MemoryStore(), Expiration.from_minutes(5, 1), shape=int)

    page = counters.key("home", datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert page.increment_or_create() == 1
    assert page.increment_or_create(4) == 5
    assert page.increment() == 6
    assert page.get(str) == "6"

    with pytest.raises(KeyArityError):
        counters.key("home")

def test_threaded_counter_on_disk(disk_store):
    counter = CacheKeyBuilder("app", "jobs", 0, disk_store).key()
    counter.set(10)

    def worker():
        for _ in range(25):
            counter.increment()

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert counter.get(int) == 110
