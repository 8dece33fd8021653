# hyphen_edit/model/entity.py
"""
Immutable snapshots of a web entity and its tag categories.

Every mutation produces a new :class:`WebEntity` through :meth:`WebEntity.replace`,
which re-runs validation, so a snapshot is always internally consistent.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, FrozenSet, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from hyphen_edit.utils import lru_to_url, parse_timestamp, remove_duplicates, tag_key, to_lru

__all__ = ("TagCategory", "WebEntity", "EDITABLE_FIELDS")

# Fields the inline editor may change.
EDITABLE_FIELDS: Tuple[str, ...] = ("name", "homepage", "status")


class TagCategory(BaseModel):
    """A named group of tag values; values are unique case-insensitively."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    editable: bool = True
    values: Tuple[str, ...] = ()

    @field_validator("values", mode="before")
    def _dedupe_values(cls, v: Any) -> Any:
        if v is None:
            return ()
        seen: Dict[str, str] = {}
        for raw in v:
            value = str(raw).strip()
            if value and tag_key(value) not in seen:
                seen[tag_key(value)] = value
        return tuple(seen.values())

    def find(self, value: str) -> Optional[str]:
        """Stored spelling of *value*, or None."""
        key = tag_key(value)
        for existing in self.values:
            if tag_key(existing) == key:
                return existing
        return None

    def __contains__(self, value: object) -> bool:
        return isinstance(value, str) and self.find(value) is not None


class WebEntity(BaseModel):
    """Snapshot of one web entity; relations are id references into the store."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str = ""
    homepage: Optional[str] = None
    status: str = "DISCOVERED"
    creation_date: Optional[datetime] = None
    last_modified_date: Optional[datetime] = None
    last_crawl_date: Optional[datetime] = None
    prefixes: Tuple[str, ...] = ()
    startpages: Tuple[str, ...] = ()
    categories: Tuple[TagCategory, ...] = ()
    children: Tuple[str, ...] = ()
    parent: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_self_reference(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("children"):
            own_id = data.get("id")
            data = {**data, "children": [c for c in data["children"] if c != own_id]}
        return data

    @field_validator("creation_date", "last_modified_date", "last_crawl_date", mode="before")
    def _parse_dates(cls, v: Any) -> Any:
        return parse_timestamp(v)

    @field_validator("prefixes", mode="before")
    def _normalize_prefixes(cls, v: Any) -> Any:
        if v is None:
            return ()
        return tuple(remove_duplicates([to_lru(str(p)) for p in v]))

    @field_validator("startpages", "children", mode="before")
    def _unique(cls, v: Any) -> Any:
        if v is None:
            return ()
        return tuple(remove_duplicates([str(x) for x in v if str(x).strip()]))

    @field_validator("categories", mode="after")
    def _unique_categories(cls, v: Tuple[TagCategory, ...]) -> Tuple[TagCategory, ...]:
        names = [c.name for c in v]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate tag categories in {names}")
        return v

    # ------------------------------------------------------------------ #
    # Derived views                                                      #
    # ------------------------------------------------------------------ #

    @property
    def tags(self) -> Dict[str, FrozenSet[str]]:
        return {c.name: frozenset(c.values) for c in self.categories}

    @property
    def prefix_urls(self) -> Tuple[str, ...]:
        return tuple(lru_to_url(p) for p in self.prefixes)

    def category(self, name: str) -> Optional[TagCategory]:
        for cat in self.categories:
            if cat.name == name:
                return cat
        return None

    def value_of(self, field: str) -> Any:
        return getattr(self, field)

    def replace(self, **changes: Any) -> WebEntity:
        """Return a validated copy with *changes* applied."""
        data = self.model_dump()
        data.update(changes)
        return type(self).model_validate(data)
