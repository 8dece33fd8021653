# hyphen_edit/sync/client.py
"""
Backend client: load, mutation and status-vocabulary interfaces of the
web-entity store, with an aiohttp implementation.
"""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence

from aiohttp import ClientError, ClientSession, ClientTimeout

from hyphen_edit.config import EditorConfig
from hyphen_edit.errors import NetworkError, NotFoundError
from hyphen_edit.logger import get_logger

__all__ = ("Backend", "HttpBackend")

log = get_logger("client")


class Backend(ABC):
    """Interface consumed by the engine. Implementations own the transport."""

    async def __aenter__(self) -> Backend:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        return None

    @abstractmethod
    async def load_entity(self, entity_id: str) -> Mapping[str, Any]:
        """Return the serialized entity. Raises NotFoundError or NetworkError."""

    @abstractmethod
    async def patch_entity(self, entity_id: str, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        """Send one mutation; returns ``{accepted,...}`` or ``{rejected, reason}``."""

    @abstractmethod
    async def fetch_statuses(self) -> List[str]:
        """Return the status vocabulary. Raises NotFoundError when unavailable."""


class HttpBackend(Backend):
    """aiohttp client with retry/backoff for idempotent reads only."""

    _RETRY_STATUS: Sequence[int] = tuple(range(500, 600)) + (429,)
    _REJECT_STATUS: Sequence[int] = (400, 404, 409, 412, 422)

    def __init__(
        self,
        config: EditorConfig,
        session: Optional[ClientSession] = None,
        *,
        backoff: float = 0.5,
    ) -> None:
        self.config = config
        self.session = session
        self.backoff = backoff
        self._owns_session = session is None

    async def __aenter__(self) -> HttpBackend:
        if self.session is None:
            self.session = ClientSession(
                timeout=ClientTimeout(total=self.config.timeout),
                headers={"User-Agent": self.config.user_agent, "Accept": "application/json"},
                raise_for_status=False,
            )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()
        if self._owns_session:
            self.session = None

    def _url(self, *parts: str) -> str:
        return "/".join([self.config.base_url, *parts])

    def _require_session(self) -> ClientSession:
        if not self.session:
            raise RuntimeError("Session not initialized")
        return self.session

    async def _get_json(self, url: str) -> Any:
        session = self._require_session()
        attempts = 0
        while True:
            try:
                async with session.get(url) as resp:
                    if resp.status == 404:
                        raise NotFoundError(f"not found: {url}")
                    if resp.status in self._RETRY_STATUS:
                        raise ClientError(f"retryable status {resp.status}")
                    if resp.status != 200:
                        raise NetworkError(f"GET {url} -> HTTP {resp.status}")
                    try:
                        return await resp.json(content_type=None)
                    except ValueError as exc:
                        raise NetworkError(f"GET {url} returned a non-JSON body") from exc
            except (ClientError, asyncio.TimeoutError) as exc:
                attempts += 1
                if attempts > self.config.retry_times:
                    log.warning("Failed %s: %s", url, exc)
                    raise NetworkError(f"GET {url} failed: {exc or type(exc).__name__}") from exc
                delay = min(60.0, self.backoff * 2 ** (attempts - 1))
                log.debug("Retry %d/%d for %s after %.2f s", attempts, self.config.retry_times, url, delay)
                await asyncio.sleep(delay)

    async def load_entity(self, entity_id: str) -> Mapping[str, Any]:
        try:
            data = await self._get_json(self._url("webentities", entity_id))
        except NotFoundError:
            raise NotFoundError(f"web entity {entity_id!r} not found") from None
        if not isinstance(data, dict):
            raise NetworkError(f"unexpected payload for {entity_id!r}: {type(data).__name__}")
        return data

    async def fetch_statuses(self) -> List[str]:
        data = await self._get_json(self._url("statuses"))
        if isinstance(data, dict):
            data = data.get("statuses", [])
        if not isinstance(data, list) or not data:
            raise NotFoundError("status vocabulary unavailable")
        return [str(s) for s in data]

    async def patch_entity(self, entity_id: str, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        # Mutations are not idempotent: a single attempt, no retry.
        session = self._require_session()
        url = self._url("webentities", entity_id)
        try:
            async with session.patch(url, json=dict(payload)) as resp:
                body = await self._safe_json(resp)
                if resp.status == 200:
                    return body or {"accepted": True}
                if resp.status in self._REJECT_STATUS:
                    reason = body.get("reason") if body else None
                    return {"rejected": True, "reason": reason or f"HTTP {resp.status}"}
                raise NetworkError(f"PATCH {url} -> HTTP {resp.status}")
        except (ClientError, asyncio.TimeoutError) as exc:
            log.warning("PATCH %s failed: %s", url, exc)
            raise NetworkError(f"PATCH {url} failed: {exc or type(exc).__name__}") from exc

    @staticmethod
    async def _safe_json(resp) -> Dict[str, Any]:
        try:
            data = await resp.json(content_type=None)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}
