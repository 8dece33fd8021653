"""hyphen_edit.model: снимки веб-сущностей, их хранилище и сериализация."""

from hyphen_edit.model.entity import EDITABLE_FIELDS, TagCategory, WebEntity
from hyphen_edit.model.serialize import entity_from_payload, entity_to_payload
from hyphen_edit.model.store import Change, EntityStore, Op

__all__ = [
    "EDITABLE_FIELDS",
    "TagCategory",
    "WebEntity",
    "entity_from_payload",
    "entity_to_payload",
    "Change",
    "EntityStore",
    "Op",
]
