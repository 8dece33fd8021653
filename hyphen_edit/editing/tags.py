# hyphen_edit/editing/tags.py
"""
Tag manager: category-keyed tag editing with optimistic pending state.

Local checks (read-only category, duplicates, unknown values) run before
anything is queued; the store only changes once the coordinator reports the
mutation as accepted.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from hyphen_edit.errors import DuplicateTagError, ValidationError
from hyphen_edit.logger import get_logger
from hyphen_edit.model.entity import TagCategory, WebEntity
from hyphen_edit.model.store import EntityStore, Op
from hyphen_edit.sync.coordinator import SyncCoordinator
from hyphen_edit.sync.mutations import Accepted, Mutation
from hyphen_edit.utils import tag_key

__all__ = ("PendingTag", "TagManager")

log = get_logger("tags")


@dataclass(frozen=True, slots=True)
class PendingTag:
    """A tag change shown optimistically until the coordinator answers."""

    category: str
    op: Op
    value: str
    new_value: Optional[str] = None


class TagManager:
    def __init__(
        self,
        store: EntityStore,
        coordinator: SyncCoordinator,
        *,
        entity_id: Optional[str] = None,
    ) -> None:
        self.store = store
        self.coordinator = coordinator
        self.entity_id = entity_id or store.focal_id
        self._pending: List[PendingTag] = []

    @property
    def entity(self) -> WebEntity:
        return self.store.get(self.entity_id)

    def categories(self) -> Tuple[List[TagCategory], List[TagCategory]]:
        """(editable, read-only) partitions of the entity's categories."""
        editable = [c for c in self.entity.categories if c.editable]
        readonly = [c for c in self.entity.categories if not c.editable]
        return editable, readonly

    def pending(self, category: Optional[str] = None) -> List[PendingTag]:
        return [p for p in self._pending if category is None or p.category == category]

    async def add(self, category: str, value: str) -> WebEntity:
        return await self._run(category, Op.ADD, value)

    async def remove(self, category: str, value: str) -> WebEntity:
        return await self._run(category, Op.REMOVE, value)

    async def rename(self, category: str, old: str, new: str) -> WebEntity:
        return await self._run(category, Op.RENAME, old, new)

    async def _run(self, category: str, op: Op, value: str, new_value: Optional[str] = None) -> WebEntity:
        value = (value or "").strip()
        new_value = new_value.strip() if new_value is not None else None
        self.store.validate_tag(self.entity, category, op, value, new_value)
        self._check_pending(category, op, value, new_value)

        if op is not Op.ADD:
            # send the stored spelling
            value = self.entity.category(category).find(value) or value

        pending = PendingTag(category, op, value, new_value)
        self._pending.append(pending)
        ticket = self.coordinator.submit(Mutation.tag(self.entity_id, op, category, value, new_value))
        try:
            result = await ticket
        finally:
            self._pending.remove(pending)

        if isinstance(result, Accepted):
            return self.entity
        log.warning("Tag %s %s:%s rolled back: %s", op.value, category, value, result.reason)
        raise result.to_error()

    def _check_pending(self, category: str, op: Op, value: str, new_value: Optional[str]) -> None:
        """Reject a second in-flight change of the same tag value."""
        keys = {tag_key(value)} | ({tag_key(new_value)} if new_value else set())
        for p in self.pending(category):
            busy = {tag_key(p.value)} | ({tag_key(p.new_value)} if p.new_value else set())
            if keys & busy:
                if op is Op.ADD and p.op in (Op.ADD, Op.RENAME):
                    raise DuplicateTagError(category, value)
                raise ValidationError("tags", f"tag {value!r} already has a pending change")

    def view(self) -> Dict[str, List[str]]:
        """Values per category including optimistic pending changes."""
        shown = {c.name: list(c.values) for c in self.entity.categories}
        for p in self._pending:
            values = shown.setdefault(p.category, [])
            if p.op is Op.ADD:
                values.append(p.value)
            elif p.op is Op.REMOVE and p.value in values:
                values.remove(p.value)
            elif p.op is Op.RENAME and p.value in values:
                values[values.index(p.value)] = p.new_value or p.value
        return shown
