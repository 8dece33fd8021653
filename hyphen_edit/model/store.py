# hyphen_edit/model/store.py
"""
Arena of :class:`WebEntity` snapshots keyed by id.

The store is the single writer path for entity state. Mutators validate the
whole change first, then swap the snapshot and notify subscribers with a
:class:`Change`; a failing call leaves the arena untouched.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

import pydantic

from hyphen_edit.config import EditorConfig
from hyphen_edit.errors import (
    DuplicateTagError,
    NotFoundError,
    ReadOnlyCategoryError,
    ValidationError,
)
from hyphen_edit.logger import get_logger
from hyphen_edit.model.entity import EDITABLE_FIELDS, TagCategory, WebEntity
from hyphen_edit.model.serialize import entity_from_payload
from hyphen_edit.utils import is_http_url, match_status, parse_timestamp, tag_key, to_lru

if TYPE_CHECKING:
    from hyphen_edit.sync.client import Backend

__all__ = ("Op", "Change", "EntityStore")

log = get_logger("model")


class Op(str, Enum):
    SET = "set"
    ADD = "add"
    REMOVE = "remove"
    RENAME = "rename"


@dataclass(frozen=True, slots=True)
class Change:
    """Change notification: which fields of which entity were replaced."""

    entity_id: str
    fields: FrozenSet[str]
    previous: Optional[WebEntity]
    current: WebEntity


Listener = Callable[[Change], None]


def _changed_fields(old: Optional[WebEntity], new: WebEntity) -> FrozenSet[str]:
    if old is None:
        return frozenset(WebEntity.model_fields)
    return frozenset(f for f in WebEntity.model_fields if getattr(old, f) != getattr(new, f))


class EntityStore:
    """In-memory model of the focal entity and every entity reached from it."""

    def __init__(
        self,
        backend: Backend,
        config: EditorConfig,
        *,
        focal_id: Optional[str] = None,
        statuses: Optional[Sequence[str]] = None,
    ) -> None:
        self.backend = backend
        self.config = config
        self.focal_id = focal_id
        self.statuses: List[str] = list(statuses or config.statuses)
        self._arena: Dict[str, WebEntity] = {}
        self._listeners: List[Listener] = []

    # ------------------------------------------------------------------ #
    # Arena access                                                       #
    # ------------------------------------------------------------------ #

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._arena

    def __len__(self) -> int:
        return len(self._arena)

    def get(self, entity_id: Optional[str] = None) -> WebEntity:
        key = entity_id or self.focal_id
        if key is None or key not in self._arena:
            raise NotFoundError(f"web entity {key!r} is not loaded")
        return self._arena[key]

    @property
    def focal(self) -> WebEntity:
        return self.get(self.focal_id)

    async def fetch(self, entity_id: str) -> WebEntity:
        """Fetch and parse an entity without storing it."""
        payload = await self.backend.load_entity(entity_id)
        try:
            return entity_from_payload(payload, self.config, statuses=self.statuses)
        except pydantic.ValidationError as exc:
            raise ValidationError("payload", f"malformed web entity {entity_id!r}: {exc}") from exc

    async def load(self, entity_id: str) -> WebEntity:
        """Fetch *entity_id* from the backend and store it. Raises NotFoundError."""
        entity = await self.fetch(entity_id)
        if entity.id != entity_id:
            log.warning("Backend returned %s when asked for %s", entity.id, entity_id)
            raise NotFoundError(f"web entity {entity_id!r} not found (backend returned {entity.id!r})")
        self.insert(entity)
        log.info("Loaded web entity %s (%s)", entity.id, entity.name)
        return entity

    def insert(self, entity: WebEntity) -> WebEntity:
        self._commit(self._arena.get(entity.id), entity)
        return entity

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # ------------------------------------------------------------------ #
    # Validation (no side effects)                                       #
    # ------------------------------------------------------------------ #

    def validate_field(self, field: str, value: Any) -> Any:
        """Return the canonical value for *field* or raise ValidationError."""
        if field not in EDITABLE_FIELDS:
            raise ValidationError(field, "field is not editable")
        if value is not None and not isinstance(value, str):
            raise ValidationError(field, f"expected a string, got {type(value).__name__}")
        text = (value or "").strip()

        if field == "name":
            if not text:
                raise ValidationError(field, "name cannot be empty")
            return text
        if field == "homepage":
            if not text:
                return None
            if not is_http_url(text):
                raise ValidationError(field, f"{text!r} is not a valid http(s) URL")
            return text
        status = match_status(text, self.statuses)
        if status is None:
            raise ValidationError(field, f"{text!r} is not one of {', '.join(self.statuses)}")
        return status

    def validate_tag(
        self,
        entity: WebEntity,
        category: str,
        op: Op,
        value: str,
        new_value: Optional[str] = None,
    ) -> Tuple[TagCategory, Tuple[str, ...]]:
        """Check a tag operation; returns the category and its resulting values."""
        cat = entity.category(category)
        if cat is None:
            raise NotFoundError(f"unknown tag category {category!r}")
        if not cat.editable:
            raise ReadOnlyCategoryError(category)
        text = (value or "").strip()
        if not text:
            raise ValidationError("tags", "tag value cannot be empty")

        if op is Op.ADD:
            if text in cat:
                raise DuplicateTagError(category, text)
            return cat, cat.values + (text,)

        existing = cat.find(text)
        if existing is None:
            raise NotFoundError(f"tag {text!r} not found in {category!r}")
        if op is Op.REMOVE:
            return cat, tuple(v for v in cat.values if v != existing)
        if op is Op.RENAME:
            renamed = (new_value or "").strip()
            if not renamed:
                raise ValidationError("tags", "tag value cannot be empty")
            other = cat.find(renamed)
            if other is not None and other != existing:
                raise DuplicateTagError(category, renamed)
            return cat, tuple(renamed if v == existing else v for v in cat.values)
        raise ValidationError("tags", f"unsupported tag operation {op!r}")

    def validate_prefix(self, entity: WebEntity, op: Op, value: str) -> Tuple[str, ...]:
        """Check a prefix operation; returns the resulting prefix tuple."""
        try:
            lru = to_lru(value)
        except ValueError as exc:
            raise ValidationError("prefixes", str(exc)) from exc
        if op is Op.ADD:
            if lru in entity.prefixes:
                raise ValidationError("prefixes", f"prefix {value!r} already defined")
            return entity.prefixes + (lru,)
        if op is Op.REMOVE:
            if lru not in entity.prefixes:
                raise NotFoundError(f"prefix {value!r} not found")
            if len(entity.prefixes) == 1:
                raise ValidationError("prefixes", "a web entity needs at least one prefix")
            return tuple(p for p in entity.prefixes if p != lru)
        raise ValidationError("prefixes", f"unsupported prefix operation {op!r}")

    # ------------------------------------------------------------------ #
    # Mutators                                                           #
    # ------------------------------------------------------------------ #

    def apply_field_update(self, field: str, value: Any, *, entity_id: Optional[str] = None) -> WebEntity:
        entity = self.get(entity_id)
        canonical = self.validate_field(field, value)
        return self._commit(entity, self._rebuild(entity, field, **{field: canonical}))

    def apply_tag_update(
        self,
        category: str,
        op: Op,
        value: str,
        new_value: Optional[str] = None,
        *,
        entity_id: Optional[str] = None,
    ) -> WebEntity:
        entity = self.get(entity_id)
        cat, values = self.validate_tag(entity, category, Op(op), value, new_value)
        updated = cat.model_copy(update={"values": values})
        categories = tuple(updated if c.name == cat.name else c for c in entity.categories)
        return self._commit(entity, self._rebuild(entity, "tags", categories=categories))

    def apply_prefix_update(self, op: Op, value: str, *, entity_id: Optional[str] = None) -> WebEntity:
        entity = self.get(entity_id)
        prefixes = self.validate_prefix(entity, Op(op), value)
        return self._commit(entity, self._rebuild(entity, "prefixes", prefixes=prefixes))

    def touch(self, entity_id: str, last_modified: Any) -> WebEntity:
        """Record a server-confirmed modification date."""
        entity = self.get(entity_id)
        try:
            stamp = parse_timestamp(last_modified)
        except ValueError:
            log.warning("Ignoring unparsable modification date %r for %s", last_modified, entity_id)
            return entity
        if stamp is None or stamp == entity.last_modified_date:
            return entity
        return self._commit(entity, entity.replace(last_modified_date=stamp))

    # ------------------------------------------------------------------ #
    # Internals                                                          #
    # ------------------------------------------------------------------ #

    @staticmethod
    def _rebuild(entity: WebEntity, field: str, **changes: Any) -> WebEntity:
        try:
            return entity.replace(**changes)
        except pydantic.ValidationError as exc:
            raise ValidationError(field, str(exc)) from exc

    def _commit(self, old: Optional[WebEntity], new: WebEntity) -> WebEntity:
        fields = _changed_fields(old, new)
        self._arena[new.id] = new
        if not fields:
            return new
        change = Change(new.id, fields, old, new)
        log.debug("Entity %s changed: %s", new.id, ", ".join(sorted(fields)))
        for listener in list(self._listeners):
            listener(change)
        return new
