import threading

import pytest

from quizlive.services.sessions import NotFound, SessionRegistry
from conftest import DictLookup, make_quiz


def test_lookup_is_case_insensitive(registry, lookup):
    session = registry.get_or_load('abcd1')
    assert session.code == 'ABCD1'
    assert registry.get('AbCd1') is session
    assert 'abcd1' in registry
    assert lookup.calls == 1
    # warm hit does not touch the store
    assert registry.get_or_load('ABCD1') is session
    assert lookup.calls == 1


def test_unknown_code_is_not_found(registry):
    with pytest.raises(NotFound):
        registry.get_or_load('NOPE')
    assert len(registry) == 0


def test_store_error_is_not_found(registry, lookup):
    lookup.fail = True
    with pytest.raises(NotFound):
        registry.get_or_load('ABCD1')
    # a later successful load still works
    lookup.fail = False
    assert registry.get_or_load('ABCD1').code == 'ABCD1'


def test_lazily_loaded_session_has_no_admin_yet(registry):
    session = registry.get_or_load('ABCD1')
    assert session.admin_id is None
    assert session.current_index == -1
    assert not session.is_active


def test_concurrent_cold_loads_share_one_lookup():
    lookup = DictLookup(make_quiz())
    lookup.gate = threading.Event()
    registry = SessionRegistry(lookup)
    results = []

    def join():
        results.append(registry.get_or_load('abcd1'))

    threads = [threading.Thread(target=join) for _ in range(5)]
    for t in threads:
        t.start()
    lookup.gate.set()
    for t in threads:
        t.join(5)

    assert len(results) == 5
    assert all(s is results[0] for s in results)
    assert lookup.calls == 1


def test_create_and_guarded_remove(registry, quiz):
    first = registry.create(quiz, 'admin', 'xy12')
    assert first.admin_id == 'admin'
    replacement = registry.create(quiz, 'admin2', 'XY12')
    # stale removal for the old object leaves the new one alone
    assert registry.remove('XY12', expected=first) is None
    assert registry.get('XY12') is replacement
    assert registry.remove('xy12') is replacement
    assert registry.get('XY12') is None


def test_drain_cancels_pending_timers(registry, quiz, timers):
    session = registry.create(quiz, 'admin', 'ABCD1')
    task = timers.schedule(10, lambda: None)
    session.arm_timer(task)
    drained = registry.drain()
    assert drained == [session]
    assert task.cancelled
    assert len(registry) == 0
