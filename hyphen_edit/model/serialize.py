# File: hyphen_edit/model/serialize.py
"""hyphen_edit.model.serialize: разбор ответа хранилища в WebEntity и обратно."""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, TypedDict, Union

from hyphen_edit.config import EditorConfig
from hyphen_edit.logger import logger
from hyphen_edit.model.entity import TagCategory, WebEntity
from hyphen_edit.utils import lru_to_url, normalize_status

__all__ = (
    "EntityPayload",
    "entity_from_payload",
    "entity_to_payload",
    "parse_tag_string",
    "format_tag_string",
    "OUTSIDE_WEB",
)

# Name given to entities stored without one.
OUTSIDE_WEB = "OUTSIDE WEB"

NestedTags = Dict[str, Dict[str, List[str]]]


class EntityPayload(TypedDict, total=False):
    """Сериализованная форма веб-сущности (ответ GET entity)."""

    id: str
    name: str
    homepage: Optional[str]
    status: str
    lru_prefixes: List[str]
    startpages: List[str]
    tags: Union[NestedTags, List[str]]
    creation_date: Union[str, int, None]
    last_modification_date: Union[str, int, None]
    last_crawl_date: Union[str, int, None]
    children: List[str]
    parent: Optional[str]


# camelCase variants accepted on input
_ALIASES: Dict[str, Tuple[str, ...]] = {
    "lru_prefixes": ("lru_prefixes", "prefixes", "lruSet"),
    "creation_date": ("creation_date", "creationDate"),
    "last_modification_date": ("last_modification_date", "lastModifiedDate", "lastModificationDate"),
    "last_crawl_date": ("last_crawl_date", "lastCrawlDate"),
    "children": ("children", "subwebentities"),
}


def _pick(payload: Mapping[str, Any], key: str, default: Any = None) -> Any:
    for alias in _ALIASES.get(key, (key,)):
        if alias in payload:
            return payload[alias]
    return default


def parse_tag_string(tag: str) -> Tuple[str, str, str]:
    """Разбирает строку вида ``namespace:key=value``."""
    namespace, sep, key_value = tag.partition(":")
    key, sep2, value = key_value.partition("=")
    if not sep or not sep2 or not namespace:
        raise ValueError(f"malformed tag {tag!r}, expected 'namespace:key=value'")
    return namespace, key, value


def format_tag_string(namespace: str, key: str, value: str) -> str:
    return f"{namespace}:{key}={value}"


def _nested_tags(raw: Any) -> NestedTags:
    """Приводит теги к вложенной форме {namespace: {key: [values]}}."""
    nested: NestedTags = {}
    if not raw:
        return nested
    if isinstance(raw, Mapping):
        for namespace, keys in raw.items():
            if not isinstance(keys, Mapping):
                logger.warning("Skipping tag namespace %s: expected mapping", namespace)
                continue
            for key, values in keys.items():
                if isinstance(values, str):
                    values = [values]
                nested.setdefault(str(namespace), {}).setdefault(str(key), []).extend(
                    str(v) for v in values
                )
        return nested
    for tag in raw:
        try:
            namespace, key, value = parse_tag_string(str(tag))
        except ValueError as exc:
            logger.warning("Skipping tag: %s", exc)
            continue
        nested.setdefault(namespace, {}).setdefault(key, []).append(value)
    return nested


def _categories_from_tags(raw: Any, config: EditorConfig) -> Tuple[TagCategory, ...]:
    nested = _nested_tags(raw)
    editable: Dict[str, List[str]] = {name: [] for name in config.tag_categories}
    readonly: List[str] = []
    for namespace, keys in nested.items():
        for key, values in keys.items():
            if namespace == config.editable_namespace and key != config.readonly_category:
                editable.setdefault(key, []).extend(values)
            else:
                readonly.extend(format_tag_string(namespace, key, v) for v in values)
    categories = [TagCategory(name=name, editable=True, values=values) for name, values in editable.items()]
    categories.append(TagCategory(name=config.readonly_category, editable=False, values=readonly))
    return tuple(categories)


def entity_from_payload(
    payload: Mapping[str, Any],
    config: EditorConfig,
    *,
    statuses: Optional[Sequence[str]] = None,
) -> WebEntity:
    """Собирает WebEntity из ответа хранилища.

    Неизвестный статус заменяется на ``config.default_status``, пустое имя на
    ``OUTSIDE WEB``; префиксы принимаются как URL или LRU.
    """
    vocabulary = statuses or config.statuses
    name = (payload.get("name") or "").strip() or OUTSIDE_WEB
    homepage = payload.get("homepage") or None
    return WebEntity(
        id=str(payload.get("id") or ""),
        name=name,
        homepage=homepage,
        status=normalize_status(payload.get("status"), vocabulary, config.default_status),
        creation_date=_pick(payload, "creation_date"),
        last_modified_date=_pick(payload, "last_modification_date"),
        last_crawl_date=_pick(payload, "last_crawl_date"),
        prefixes=_pick(payload, "lru_prefixes", []),
        startpages=payload.get("startpages") or [],
        categories=_categories_from_tags(payload.get("tags"), config),
        children=_pick(payload, "children", []),
        parent=payload.get("parent") or None,
    )


def _ms(value: Any) -> Optional[str]:
    return str(int(value.timestamp() * 1000)) if value else None


def entity_to_payload(entity: WebEntity, config: EditorConfig) -> EntityPayload:
    """Обратное преобразование: WebEntity -> сериализованная форма."""
    tags: NestedTags = {}
    for category in entity.categories:
        if category.editable:
            if category.values:
                tags.setdefault(config.editable_namespace, {})[category.name] = list(category.values)
            continue
        for value in category.values:
            try:
                namespace, key, tag_value = parse_tag_string(value)
            except ValueError:
                namespace, key, tag_value = category.name, "", value
            tags.setdefault(namespace, {}).setdefault(key, []).append(tag_value)
    return {
        "id": entity.id,
        "name": entity.name,
        "homepage": entity.homepage,
        "status": entity.status,
        "lru_prefixes": list(entity.prefixes),
        "startpages": list(entity.startpages),
        "tags": tags,
        "creation_date": _ms(entity.creation_date),
        "last_modification_date": _ms(entity.last_modified_date),
        "last_crawl_date": _ms(entity.last_crawl_date),
        "children": list(entity.children),
        "parent": entity.parent,
    }


def prefix_rows(entity: WebEntity) -> List[Dict[str, str]]:
    """Строки таблицы префиксов: LRU и читаемый URL."""
    return [{"lru": lru, "url": lru_to_url(lru)} for lru in entity.prefixes]


def tag_rows(categories: Iterable[TagCategory]) -> List[Dict[str, Any]]:
    return [{"name": c.name, "values": sorted(c.values, key=str.casefold)} for c in categories]
