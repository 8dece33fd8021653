# hyphen_edit/sync/coordinator.py
"""
Sync coordinator: persists mutations in submission order per entity.

Each entity gets its own :class:`asyncio.Queue` and worker task, so mutations
of one entity are sent strictly one after another while different entities
proceed concurrently. Nothing is retried. A cancelled :class:`Ticket` is
resolved immediately; if its request was already in flight, the late response
is dropped without touching the store. Any unexpected failure of a backend
call resolves its ticket as a retryable :class:`Rejected`.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, Generator, Optional, Set

from hyphen_edit.errors import EditorError, SyncRejected
from hyphen_edit.logger import get_logger
from hyphen_edit.model.store import EntityStore, Op
from hyphen_edit.sync.client import Backend
from hyphen_edit.sync.mutations import (
    Accepted,
    Mutation,
    MutationKind,
    Rejected,
    SyncResult,
    result_from_response,
)

__all__ = ("Ticket", "SyncCoordinator")

log = get_logger("sync")


class Ticket:
    """Awaitable handle of a submitted mutation; resolves to Accepted or Rejected."""

    __slots__ = ("mutation", "cancelled", "_future")

    def __init__(self, mutation: Mutation, future: asyncio.Future) -> None:
        self.mutation = mutation
        self.cancelled = False
        self._future = future

    def done(self) -> bool:
        return self._future.done()

    def result(self) -> SyncResult:
        return self._future.result()

    def cancel(self) -> bool:
        """Discard the pending result. Returns False if already resolved."""
        if self._future.done():
            return False
        self.cancelled = True
        self._future.set_result(Rejected("cancelled", cancelled=True))
        log.debug("Cancelled %s", self.mutation.describe())
        return True

    def _resolve(self, result: SyncResult) -> None:
        if not self._future.done():
            self._future.set_result(result)

    def __await__(self) -> Generator[Any, None, SyncResult]:
        return self._future.__await__()

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else ("done" if self.done() else "pending")
        return f"<Ticket {self.mutation.describe()} {state}>"


class SyncCoordinator:
    """FIFO-per-entity mutation queue in front of a :class:`Backend`."""

    def __init__(self, store: EntityStore, backend: Backend) -> None:
        self.store = store
        self.backend = backend
        self._queues: Dict[str, asyncio.Queue[Ticket]] = {}
        self._workers: Dict[str, asyncio.Task] = {}
        self._pending: Set[Ticket] = set()
        self._closed = False

    async def __aenter__(self) -> SyncCoordinator:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Public API                                                         #
    # ------------------------------------------------------------------ #

    def submit(self, mutation: Mutation) -> Ticket:
        """Queue *mutation* behind earlier ones for the same entity."""
        if self._closed:
            raise RuntimeError("coordinator is closed")
        loop = asyncio.get_running_loop()
        ticket = Ticket(mutation, loop.create_future())
        self._pending.add(ticket)
        ticket._future.add_done_callback(lambda _f: self._pending.discard(ticket))

        queue = self._queues.get(mutation.entity_id)
        if queue is None:
            queue = self._queues[mutation.entity_id] = asyncio.Queue()
            self._workers[mutation.entity_id] = asyncio.create_task(
                self._worker(mutation.entity_id, queue)
            )
        queue.put_nowait(ticket)
        log.debug("Queued %s (%d waiting)", mutation.describe(), queue.qsize())
        return ticket

    def pending(self, entity_id: Optional[str] = None) -> int:
        return sum(1 for t in self._pending if entity_id is None or t.mutation.entity_id == entity_id)

    def discard(self, entity_id: Optional[str] = None) -> int:
        """Cancel every unresolved ticket (of *entity_id*, or all)."""
        victims = [t for t in self._pending if entity_id is None or t.mutation.entity_id == entity_id]
        cancelled = sum(1 for t in victims if t.cancel())
        if cancelled:
            log.info("Discarded %d pending mutation(s)", cancelled)
        return cancelled

    async def join(self) -> None:
        """Wait until every queue has been processed."""
        for queue in list(self._queues.values()):
            await queue.join()

    async def close(self) -> None:
        self._closed = True
        self.discard()
        workers = list(self._workers.values())
        for w in workers:
            w.cancel()
        await asyncio.gather(*workers, return_exceptions=True)
        self._workers.clear()
        self._queues.clear()

    # ------------------------------------------------------------------ #
    # Worker                                                             #
    # ------------------------------------------------------------------ #

    async def _worker(self, entity_id: str, queue: asyncio.Queue[Ticket]) -> None:
        while True:
            try:
                ticket = await queue.get()
            except asyncio.CancelledError:
                break
            try:
                await self._process(ticket)
            except asyncio.CancelledError:
                ticket.cancel()
                queue.task_done()
                break
            except Exception as exc:
                log.exception("Unexpected failure while syncing %s", ticket.mutation.describe())
                ticket._resolve(Rejected(str(exc) or type(exc).__name__, retryable=True))
            queue.task_done()

    async def _process(self, ticket: Ticket) -> None:
        mutation = ticket.mutation
        if ticket.done():
            log.debug("Skipping discarded %s", mutation.describe())
            return

        result = await self._send(mutation)
        if ticket.done():
            log.info("Ignoring late response for discarded %s", mutation.describe())
            return

        if isinstance(result, Accepted):
            try:
                self._apply(mutation, result)
            except EditorError as exc:
                log.warning("Accepted %s could not be applied locally: %s", mutation.describe(), exc)
                result = Rejected(str(exc))
            else:
                log.info("Accepted %s", mutation.describe())
        else:
            log.warning("Rejected %s: %s", mutation.describe(), result.reason)
        ticket._resolve(result)

    async def _send(self, mutation: Mutation) -> SyncResult:
        try:
            response = await self.backend.patch_entity(mutation.entity_id, mutation.to_payload())
        except SyncRejected as exc:
            return Rejected(exc.reason, retryable=exc.retryable)
        return result_from_response(response)

    def _apply(self, mutation: Mutation, result: Accepted) -> None:
        """Reflect a server-confirmed mutation in the store."""
        normalized = result.normalized_value
        entity_id = mutation.entity_id
        if mutation.kind is MutationKind.FIELD:
            value = mutation.value if normalized is None else normalized
            self.store.apply_field_update(mutation.field, value, entity_id=entity_id)
        elif mutation.kind is MutationKind.TAG:
            value, new_value = mutation.value, mutation.new_value
            if normalized is not None:
                if mutation.op is Op.RENAME:
                    new_value = normalized
                elif mutation.op is Op.ADD:
                    value = normalized
            self.store.apply_tag_update(mutation.category, mutation.op, value, new_value, entity_id=entity_id)
        else:
            value = mutation.value
            if normalized is not None and mutation.op is Op.ADD:
                value = normalized
            self.store.apply_prefix_update(mutation.op, value, entity_id=entity_id)
        if result.last_modified_date is not None:
            self.store.touch(entity_id, result.last_modified_date)
