# hyphen_edit/editing/session.py
"""
EditSession: the click-to-edit state machine of one field.

    VIEWING --activate--> EDITING --confirm--> COMMITTING --accepted--> VIEWING
                             |                      |
                           cancel                rejected
                             v                      v
                          VIEWING               REVERTING --> VIEWING

Invalid input keeps the session in EDITING with :attr:`EditSession.error` set.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, FrozenSet, List, Optional

from hyphen_edit.errors import EditorError
from hyphen_edit.logger import get_logger

__all__ = ("EditState", "EditSession", "IllegalTransition")

log = get_logger("editing")


class EditState(str, Enum):
    VIEWING = "viewing"
    EDITING = "editing"
    COMMITTING = "committing"
    REVERTING = "reverting"


class IllegalTransition(EditorError):
    def __init__(self, field_name: str, current: EditState, target: EditState) -> None:
        super().__init__(f"{field_name}: cannot go from {current.value} to {target.value}")
        self.current = current
        self.target = target


@dataclass(slots=True)
class EditSession:
    target_field: str
    original_value: Any = None
    pending_value: Any = None
    state: EditState = EditState.VIEWING
    error: Optional[str] = None
    notice: Optional[str] = None
    history: List[EditState] = field(default_factory=list)

    _ALLOWED: ClassVar[Dict[EditState, FrozenSet[EditState]]] = {
        EditState.VIEWING: frozenset({EditState.EDITING}),
        EditState.EDITING: frozenset({EditState.COMMITTING, EditState.VIEWING}),
        EditState.COMMITTING: frozenset({EditState.VIEWING, EditState.REVERTING}),
        EditState.REVERTING: frozenset({EditState.VIEWING}),
    }

    def _move(self, target: EditState) -> None:
        if target not in self._ALLOWED[self.state]:
            raise IllegalTransition(self.target_field, self.state, target)
        log.debug("%s: %s -> %s", self.target_field, self.state.value, target.value)
        self.history.append(self.state)
        self.state = target

    @property
    def display_value(self) -> Any:
        """The one value the UI shows for this field right now."""
        if self.state in (EditState.EDITING, EditState.COMMITTING):
            return self.pending_value
        return self.original_value

    def activate(self, current_value: Any) -> None:
        self._move(EditState.EDITING)
        self.original_value = current_value
        self.pending_value = current_value
        self.error = None
        self.notice = None

    def update(self, value: Any) -> None:
        if self.state is not EditState.EDITING:
            raise IllegalTransition(self.target_field, self.state, EditState.EDITING)
        self.pending_value = value
        self.error = None

    def fail_validation(self, message: str) -> None:
        if self.state is not EditState.EDITING:
            raise IllegalTransition(self.target_field, self.state, EditState.EDITING)
        self.error = message

    def begin_commit(self, value: Any) -> None:
        self._move(EditState.COMMITTING)
        self.pending_value = value

    def finish_commit(self, confirmed_value: Any) -> None:
        self._move(EditState.VIEWING)
        self.original_value = confirmed_value
        self.pending_value = None

    def revert(self, notice: str) -> None:
        """Rejected commit: restore the original value and keep a notice."""
        self._move(EditState.REVERTING)
        self.notice = notice
        self.pending_value = self.original_value
        self._move(EditState.VIEWING)
        self.pending_value = None

    def cancel(self) -> None:
        self._move(EditState.VIEWING)
        self.pending_value = None
        self.error = None
