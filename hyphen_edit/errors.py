# File: hyphen_edit/errors.py
"""Error taxonomy of the editing engine.

Local errors (:class:`ValidationError`, :class:`DuplicateTagError`,
:class:`ReadOnlyCategoryError`, :class:`NotFoundError`) are raised before any
request is made. Remote errors (:class:`SyncRejected`, :class:`NetworkError`)
come back from the backing store through the sync coordinator.
"""
from __future__ import annotations

from typing import Optional

__all__ = (
    "EditorError",
    "ValidationError",
    "TagError",
    "DuplicateTagError",
    "ReadOnlyCategoryError",
    "NotFoundError",
    "SyncRejected",
    "NetworkError",
)


class EditorError(Exception):
    """Base class for every error raised by hyphen_edit."""


class ValidationError(EditorError):
    """Field-format violation, reported inline next to the field."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class TagError(EditorError):
    def __init__(self, category: str, value: Optional[str], message: str) -> None:
        super().__init__(message)
        self.category = category
        self.value = value


class DuplicateTagError(TagError):
    def __init__(self, category: str, value: str) -> None:
        super().__init__(category, value, f"tag {value!r} already exists in {category!r}")


class ReadOnlyCategoryError(TagError):
    def __init__(self, category: str) -> None:
        super().__init__(category, None, f"category {category!r} is read-only")


class NotFoundError(EditorError):
    """Entity, category or tag absent."""


class SyncRejected(EditorError):
    """The backing store refused a mutation."""

    retryable: bool = False

    def __init__(self, reason: str, *, retryable: Optional[bool] = None) -> None:
        super().__init__(reason)
        self.reason = reason
        if retryable is not None:
            self.retryable = retryable


class NetworkError(SyncRejected):
    """Transport failure or timeout. Callers may retry; the engine never does."""

    retryable = True
