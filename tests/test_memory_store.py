"""
Tests for the in-memory booking session store.
"""

from __future__ import annotations

from clinic_booking.infrastructure.store.memory_store import MemoryWorkflowStore


def test_store_returns_what_was_added(wizard):
    store = MemoryWorkflowStore()

    session_id = store.add(wizard)

    assert store.get(session_id) is wizard
    assert store.get("unknown") is None


def test_oldest_untouched_session_is_evicted(wizard):
    store = MemoryWorkflowStore(limit=2)
    first = store.add(wizard)
    second = store.add(wizard)

    store.get(first)  # touch, so the second one is now the oldest
    third = store.add(wizard)

    assert len(store) == 2
    assert store.get(second) is None
    assert store.get(first) is wizard
    assert store.get(third) is wizard


def test_remove(wizard):
    store = MemoryWorkflowStore()
    session_id = store.add(wizard)

    store.remove(session_id)
    store.remove(session_id)

    assert store.get(session_id) is None


def test_session_is_only_returned_to_its_owner(wizard):
    store = MemoryWorkflowStore()
    mine = store.add(wizard, owner="token-a")
    anonymous = store.add(wizard)

    assert store.get(mine, owner="token-a") is wizard
    assert store.get(mine, owner="token-b") is None
    assert store.get(mine) is None
    assert store.get(anonymous) is wizard
    assert store.get(anonymous, owner="token-a") is None
