import threading
import time

from tippr.services.league_locks import LeagueLockRegistry


def test_locks_are_created_once_per_league():
    registry = LeagueLockRegistry()

    assert registry.lock_for(1) is registry.lock_for(1)
    assert registry.lock_for(1) is not registry.lock_for(2)
    assert len(registry) == 2


def test_hold_orders_and_dedupes_ids():
    registry = LeagueLockRegistry()

    with registry.hold([3, 1, 2, 3]) as held:
        assert held == [1, 2, 3]


def test_hold_is_reentrant_in_one_thread():
    registry = LeagueLockRegistry()

    with registry.hold([1, 2]):
        with registry.hold([2]):
            pass


def test_hold_of_nothing():
    registry = LeagueLockRegistry()

    with registry.hold([]) as held:
        assert held == []
    assert len(registry) == 0


def test_same_league_is_serialized():
    registry = LeagueLockRegistry()
    events = []
    first_inside = threading.Event()

    def first():
        with registry.hold([7, 8]):
            events.append("first-in")
            first_inside.set()
            time.sleep(0.05)
            events.append("first-out")

    def second():
        first_inside.wait(timeout=5)
        with registry.hold([8]):
            events.append("second-in")

    threads = [threading.Thread(target=first), threading.Thread(target=second)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert events == ["first-in", "first-out", "second-in"]


def test_disjoint_leagues_do_not_block():
    registry = LeagueLockRegistry()
    other_done = threading.Event()

    def other():
        with registry.hold([2]):
            other_done.set()

    with registry.hold([1]):
        t = threading.Thread(target=other)
        t.start()
        assert other_done.wait(timeout=5)
        t.join(timeout=5)


def test_lock_released_on_error():
    registry = LeagueLockRegistry()

    try:
        with registry.hold([5]):
            raise ValueError("boom")
    except ValueError:
        pass

    acquired = registry.lock_for(5).acquire(blocking=False)
    assert acquired
    registry.lock_for(5).release()
