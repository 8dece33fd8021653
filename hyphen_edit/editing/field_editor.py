# hyphen_edit/editing/field_editor.py
"""
Inline editor for the identity and status fields of a web entity.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from hyphen_edit.errors import ValidationError
from hyphen_edit.logger import get_logger
from hyphen_edit.model.entity import EDITABLE_FIELDS, WebEntity
from hyphen_edit.model.store import EntityStore
from hyphen_edit.sync.coordinator import SyncCoordinator, Ticket
from hyphen_edit.sync.mutations import Accepted, Mutation

from .session import EditSession, EditState, IllegalTransition

__all__ = ("InlineFieldEditor",)

log = get_logger("editing")

_MISSING: Any = object()


class InlineFieldEditor:
    """One :class:`EditSession` per field; sessions of different fields are independent."""

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
        self._sessions: Dict[str, EditSession] = {}
        self._tickets: Dict[str, Ticket] = {}

    @property
    def entity(self) -> WebEntity:
        return self.store.get(self.entity_id)

    def session(self, field: str) -> EditSession:
        if field not in EDITABLE_FIELDS:
            raise ValidationError(field, "field is not editable")
        if field not in self._sessions:
            self._sessions[field] = EditSession(field, original_value=self.entity.value_of(field))
        return self._sessions[field]

    def state(self, field: str) -> EditState:
        return self.session(field).state

    def display_value(self, field: str) -> Any:
        s = self.session(field)
        if s.state is EditState.VIEWING:
            return self.entity.value_of(field)
        return s.display_value

    def activate(self, field: str) -> EditSession:
        """Enter EDITING. Ignored unless the field is VIEWING."""
        s = self.session(field)
        if s.state is not EditState.VIEWING:
            log.debug("Activation of %s ignored while %s", field, s.state.value)
            return s
        s.activate(self.entity.value_of(field))
        return s

    def update(self, field: str, value: Any) -> EditSession:
        s = self.session(field)
        s.update(value)
        return s

    def cancel(self, field: str) -> EditSession:
        """Leave EDITING without sending anything."""
        s = self.session(field)
        s.cancel()
        return s

    def cancel_commit(self, field: str) -> bool:
        """Drop an in-flight commit; the field reverts when the ticket resolves."""
        ticket = self._tickets.get(field)
        return bool(ticket and ticket.cancel())

    async def confirm(self, field: str, value: Any = _MISSING) -> WebEntity:
        """Validate and commit the pending value of *field*.

        Raises ValidationError (session stays EDITING, nothing sent) or
        SyncRejected/NetworkError after the field has been reverted.
        """
        s = self.session(field)
        if s.state is not EditState.EDITING:
            raise IllegalTransition(field, s.state, EditState.COMMITTING)
        if value is not _MISSING:
            s.update(value)

        try:
            canonical = self.store.validate_field(field, s.pending_value)
        except ValidationError as exc:
            s.fail_validation(exc.message)
            log.debug("Invalid %s: %s", field, exc.message)
            raise

        s.begin_commit(canonical)
        if canonical == self.entity.value_of(field):
            s.finish_commit(canonical)
            return self.entity

        ticket = self.coordinator.submit(Mutation.set_field(self.entity_id, field, canonical))
        self._tickets[field] = ticket
        try:
            result = await ticket
        finally:
            if self._tickets.get(field) is ticket:
                del self._tickets[field]

        if isinstance(result, Accepted):
            entity = self.entity
            s.finish_commit(entity.value_of(field))
            return entity

        s.revert(result.reason)
        log.warning("Edit of %s reverted: %s", field, result.reason)
        raise result.to_error()
