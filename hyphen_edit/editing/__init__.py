"""hyphen_edit.editing: inline field editing and tag management."""

from hyphen_edit.editing.field_editor import InlineFieldEditor
from hyphen_edit.editing.session import EditSession, EditState, IllegalTransition
from hyphen_edit.editing.tags import PendingTag, TagManager

__all__ = [
    "InlineFieldEditor",
    "EditSession",
    "EditState",
    "IllegalTransition",
    "PendingTag",
    "TagManager",
]
