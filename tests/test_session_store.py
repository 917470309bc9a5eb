import asyncio
import gc

import pytest

from canteen.services.chat import SessionStore
from canteen.services.chat.flow import ChoosingCanteen


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_session_expires_after_ttl():
    clock = FakeClock()
    store = SessionStore(ttl_minutes=30, clock=clock)
    store.set("919876543210", ChoosingCanteen())

    clock.now += 29 * 60
    assert store.get("919876543210") == ChoosingCanteen()

    clock.now += 31 * 60
    assert store.get("919876543210") is None
    assert len(store) == 0


def test_touch_extends_ttl():
    clock = FakeClock()
    store = SessionStore(ttl_minutes=1, clock=clock)
    store.set("a", ChoosingCanteen())
    clock.now += 50
    store.set("a", ChoosingCanteen())
    clock.now += 50
    assert "a" in store


def test_purge_expired():
    clock = FakeClock()
    store = SessionStore(ttl_minutes=1, clock=clock)
    store.set("old", ChoosingCanteen())
    clock.now += 120
    store.set("new", ChoosingCanteen())

    assert store.purge_expired() == 1
    assert "new" in store
    assert "old" not in store


def test_no_ttl_keeps_sessions():
    clock = FakeClock()
    store = SessionStore(clock=clock)
    store.set("a", ChoosingCanteen())
    clock.now += 10 ** 6
    assert store.get("a") is not None


async def test_lock_serializes_same_key():
    store = SessionStore()
    events = []

    async def worker(name):
        async with store.lock("same"):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a"), worker("b"))
    assert events in (["a-in", "a-out", "b-in", "b-out"], ["b-in", "b-out", "a-in", "a-out"])
    assert store.lock("same") is store.lock("same")
    assert store.lock("same") is not store.lock("other")


async def test_locks_are_released_once_unused():
    store = SessionStore()

    async with store.lock("919812345678"):
        assert "919812345678" in store._locks
    gc.collect()

    assert len(store._locks) == 0


async def test_purge_loop_sweeps_idle_sessions():
    clock = FakeClock()
    store = SessionStore(ttl_minutes=1, clock=clock)
    store.set("idle", ChoosingCanteen())
    clock.now += 120

    task = asyncio.create_task(store.purge_forever(0.01))
    await asyncio.sleep(0.05)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert store._sessions == {}
