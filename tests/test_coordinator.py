# File: tests/test_coordinator.py
"""Тесты SyncCoordinator: порядок FIFO на сущность, параллельность между
сущностями, отмена и отбрасывание опоздавших ответов."""
from __future__ import annotations

import asyncio

import pytest

from hyphen_edit.errors import NetworkError, SyncRejected
from hyphen_edit.model.store import Op
from hyphen_edit.sync import Accepted, Mutation, Rejected, SyncCoordinator

from conftest import settle


@pytest.mark.asyncio()
async def test_fifo_per_entity(store, backend, coordinator):
    gate = backend.hold("E1")
    tickets = [
        coordinator.submit(Mutation.set_field("E1", "name", "First")),
        coordinator.submit(Mutation.set_field("E1", "name", "Second")),
        coordinator.submit(Mutation.set_field("E1", "status", "OUT")),
    ]
    await settle()
    # only the head of the queue is in flight
    assert len(backend.patches) == 1
    assert coordinator.pending("E1") == 3

    gate.set()
    results = await asyncio.gather(*tickets)
    assert all(isinstance(r, Accepted) for r in results)

    values = [payload["value"] for kind, _, payload in backend.events if kind == "start"]
    assert values == ["First", "Second", "OUT"]
    # every request finished before the next one started
    kinds = [kind for kind, _, _ in backend.events]
    assert kinds == ["start", "end"] * 3
    assert store.focal.name == "Second"
    assert store.focal.status == "OUT"


@pytest.mark.asyncio()
async def test_entities_sync_concurrently(store, backend, coordinator):
    store.insert(await store.fetch("E2"))
    backend.hold("E1")

    slow = coordinator.submit(Mutation.set_field("E1", "name", "Slow"))
    fast = coordinator.submit(Mutation.set_field("E2", "name", "Fast"))

    result = await asyncio.wait_for(fast, timeout=1.0)
    assert isinstance(result, Accepted)
    assert store.get("E2").name == "Fast"
    assert not slow.done()

    backend.gates["E1"].set()
    assert isinstance(await slow, Accepted)


@pytest.mark.asyncio()
async def test_rejection_leaves_store_untouched(store, backend, coordinator):
    backend.replies.append({"rejected": True, "reason": "name already taken"})
    result = await coordinator.submit(Mutation.set_field("E1", "name", "Taken"))
    assert isinstance(result, Rejected)
    assert result.reason == "name already taken"
    assert not result.retryable
    assert store.focal.name == "Example"
    assert isinstance(result.to_error(), SyncRejected)


@pytest.mark.asyncio()
async def test_network_error_is_not_retried(store, backend, coordinator):
    backend.replies.append(NetworkError("connection reset"))
    result = await coordinator.submit(Mutation.set_field("E1", "name", "Lost"))
    assert isinstance(result, Rejected)
    assert result.retryable
    assert isinstance(result.to_error(), NetworkError)
    assert len(backend.patches) == 1
    assert store.focal.name == "Example"

    # the queue keeps working after a failure
    result = await coordinator.submit(Mutation.set_field("E1", "name", "Found"))
    assert isinstance(result, Accepted)
    assert store.focal.name == "Found"


@pytest.mark.asyncio()
async def test_cancel_discards_late_response(store, backend, coordinator):
    gate = backend.hold("E1")
    changes = []
    store.subscribe(changes.append)

    ticket = coordinator.submit(Mutation.set_field("E1", "name", "Late"))
    await settle()
    assert len(backend.patches) == 1

    assert ticket.cancel()
    result = await ticket
    assert isinstance(result, Rejected) and result.cancelled

    gate.set()
    await coordinator.join()
    assert store.focal.name == "Example"
    assert changes == []
    assert not ticket.cancel()


@pytest.mark.asyncio()
async def test_discard_skips_queued_mutations(store, backend, coordinator):
    gate = backend.hold("E1")
    first = coordinator.submit(Mutation.set_field("E1", "name", "One"))
    second = coordinator.submit(Mutation.set_field("E1", "name", "Two"))
    await settle()

    assert coordinator.discard("E1") == 2
    gate.set()
    await coordinator.join()
    # the queued one was never sent
    assert len(backend.patches) == 1
    assert (await first).cancelled and (await second).cancelled
    assert store.focal.name == "Example"


@pytest.mark.asyncio()
async def test_normalized_value_and_modification_date(store, backend, coordinator):
    backend.replies.append(
        {"accepted": True, "normalizedValue": "Example Corp", "lastModifiedDate": "1400000000000"}
    )
    result = await coordinator.submit(Mutation.set_field("E1", "name", "example corp"))
    assert result.normalized_value == "Example Corp"
    assert store.focal.name == "Example Corp"
    assert store.focal.last_modified_date.year == 2014


@pytest.mark.asyncio()
async def test_tag_and_prefix_mutations(store, backend, coordinator):
    await coordinator.submit(Mutation.tag("E1", Op.ADD, "Type", "Shop"))
    await coordinator.submit(Mutation.prefix("E1", Op.REMOVE, "http://example.org/blog/"))
    assert store.focal.tags["Type"] == frozenset({"Blog", "Shop"})
    assert store.focal.prefixes == ("s:http|h:org|h:example|",)
    assert backend.patches[0][1] == {"tag": {"category": "Type", "op": "add", "value": "Shop"}}
    assert backend.patches[1][1] == {"prefix": {"op": "remove", "value": "http://example.org/blog/"}}


@pytest.mark.asyncio()
async def test_closed_coordinator_refuses_submissions(store, backend):
    coordinator = SyncCoordinator(store, backend)
    await coordinator.close()
    with pytest.raises(RuntimeError):
        coordinator.submit(Mutation.set_field("E1", "name", "x"))


@pytest.mark.asyncio()
async def test_unexpected_backend_failure_is_a_retryable_rejection(store, backend, coordinator):
    backend.replies.append(RuntimeError("boom"))
    failed = coordinator.submit(Mutation.set_field("E1", "name", "First"))
    after = coordinator.submit(Mutation.set_field("E1", "name", "Second"))

    result = await failed
    assert isinstance(result, Rejected)
    assert result.retryable
    assert isinstance(result.to_error(), NetworkError)
    # the worker survives and keeps serving the queue
    assert isinstance(await after, Accepted)
    assert store.focal.name == "Second"
