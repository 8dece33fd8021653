# File: hyphen_edit/utils.py
"""hyphen_edit.utils: URL/LRU conversion, status vocabulary and timestamp helpers.

LRU ("reversed URL") form, as used by the corpus index::

    http://www.example.org:8080/blog/post?q=1#top
    -> s:http|t:8080|h:org|h:example|h:www|p:blog|p:post|q:q=1|f:top|

Default ports (80 for http, 443 for https) are omitted.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Collection, Iterable, List, Optional, Sequence
from urllib.parse import urlsplit

from hyphen_edit.logger import logger

__all__: Sequence[str] = (
    "url_to_lru",
    "lru_to_url",
    "is_lru",
    "to_lru",
    "is_http_url",
    "match_status",
    "normalize_status",
    "parse_timestamp",
    "format_timestamp",
    "tag_key",
    "remove_duplicates",
)

_LRU_RE = re.compile(r"^s:[a-z][a-z0-9+.-]*\|")
_DEFAULT_PORTS = {"http": 80, "https": 443}
# ms timestamps are > 2e10, second timestamps below (same cut as pydantic)
_MS_THRESHOLD = 2e10


def url_to_lru(url: str) -> str:
    """Encode *url* into LRU form. Raises ValueError for non-absolute URLs."""
    parsed = urlsplit(url.strip())
    if not parsed.scheme or not parsed.hostname:
        raise ValueError(f"not an absolute URL: {url!r}")

    scheme = parsed.scheme.lower()
    stems = [f"s:{scheme}"]
    port = parsed.port
    if port is not None and _DEFAULT_PORTS.get(scheme) != port:
        stems.append(f"t:{port}")
    stems.extend(f"h:{h}" for h in reversed(parsed.hostname.lower().split(".")) if h)
    segments = parsed.path.split("/")
    # empty segments come from the leading and trailing slashes
    stems.extend(f"p:{seg}" for seg in segments if seg)
    if parsed.query:
        stems.append(f"q:{parsed.query}")
    if parsed.fragment:
        stems.append(f"f:{parsed.fragment}")

    lru = "|".join(stems) + "|"
    logger.debug("url_to_lru: %s -> %s", url, lru)
    return lru


def lru_to_url(lru: str) -> str:
    """Decode an LRU back into a URL."""
    if not is_lru(lru):
        raise ValueError(f"not an LRU: {lru!r}")

    scheme = ""
    port = ""
    hosts: List[str] = []
    paths: List[str] = []
    query = fragment = ""
    for stem in lru.split("|"):
        if not stem:
            continue
        kind, sep, value = stem.partition(":")
        if not sep:
            raise ValueError(f"malformed LRU stem {stem!r} in {lru!r}")
        if kind == "s":
            scheme = value
        elif kind == "t":
            port = value
        elif kind == "h":
            hosts.append(value)
        elif kind == "p":
            paths.append(value)
        elif kind == "q":
            query = value
        elif kind == "f":
            fragment = value
        else:
            raise ValueError(f"unknown LRU stem {stem!r} in {lru!r}")

    url = f"{scheme}://{'.'.join(reversed(hosts))}"
    if port:
        url += f":{port}"
    url += "/" + "/".join(paths)
    if query:
        url += f"?{query}"
    if fragment:
        url += f"#{fragment}"
    return url


def is_lru(value: str) -> bool:
    return bool(_LRU_RE.match(value))


def to_lru(value: str) -> str:
    """Accept a URL or an LRU, return the LRU."""
    value = value.strip()
    return value if is_lru(value) else url_to_lru(value)


def is_http_url(value: str) -> bool:
    """True for absolute http(s) URLs without whitespace."""
    if not value or any(ch.isspace() for ch in value):
        return False
    try:
        parsed = urlsplit(value)
        return parsed.scheme in ("http", "https") and bool(parsed.hostname)
    except ValueError:
        return False


def match_status(value: Any, vocabulary: Iterable[str]) -> Optional[str]:
    """Return the canonical vocabulary entry matching *value* case-insensitively."""
    if not isinstance(value, str) or not value.strip():
        return None
    wanted = value.strip().upper()
    for status in vocabulary:
        if status.upper() == wanted:
            return status
    return None


def normalize_status(value: Any, vocabulary: Iterable[str], default: str) -> str:
    """Like :func:`match_status`, falling back to *default* for unknown values."""
    return match_status(value, vocabulary) or default


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse epoch milliseconds/seconds (int or digit string) or ISO-8601."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        value = int(value.strip())
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = value / 1000 if abs(value) > _MS_THRESHOLD else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.strip())
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValueError(f"unsupported timestamp: {value!r}")


def format_timestamp(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else ""


def tag_key(value: str) -> str:
    """Comparison key for tag values: trimmed, case-insensitive."""
    return value.strip().casefold()


def remove_duplicates(items: Collection[str]) -> List[str]:
    """Удаляет дубликаты из списка, сохраняя порядок."""
    unique = list(dict.fromkeys(items))
    removed = len(items) - len(unique)
    if removed:
        logger.debug("Removed %d duplicate entries", removed)
    return unique
