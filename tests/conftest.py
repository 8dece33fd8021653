# File: tests/conftest.py
import asyncio
import copy
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Tuple

import pytest
import pytest_asyncio

from hyphen_edit.config import EditorConfig
from hyphen_edit.errors import NotFoundError
from hyphen_edit.model.store import EntityStore
from hyphen_edit.sync.client import Backend
from hyphen_edit.sync.coordinator import SyncCoordinator
from hyphen_edit.utils import to_lru

STATUSES = ["UNDECIDED", "IN", "OUT", "DISCOVERED"]


class MemoryBackend(Backend):
    """
    In-memory store with controllable timing.

    * ``gates[entity_id]`` – asyncio.Event that PATCH requests of that entity
      wait on (closed gate = request in flight).
    * ``load_gates[entity_id]`` – same for GET of one entity.
    * ``replies`` – scripted PATCH outcomes, consumed in order: a mapping is
      returned as-is, an exception is raised. Empty → ``{"accepted": True}``.
    * ``events`` – ("start"|"end", entity_id, payload) in the order they happen.
    """

    def __init__(self, entities: Mapping[str, Dict[str, Any]], statuses: Optional[List[str]] = None) -> None:
        self.entities = copy.deepcopy(dict(entities))
        self.statuses = statuses
        self.gates: Dict[str, asyncio.Event] = {}
        self.load_gates: Dict[str, asyncio.Event] = {}
        self.replies: List[Any] = []
        self.events: List[Tuple[str, str, Dict[str, Any]]] = []
        self.loads: List[str] = []

    @property
    def patches(self) -> List[Tuple[str, Dict[str, Any]]]:
        return [(eid, payload) for kind, eid, payload in self.events if kind == "start"]

    def hold(self, entity_id: str) -> asyncio.Event:
        gate = self.gates[entity_id] = asyncio.Event()
        return gate

    def hold_load(self, entity_id: str) -> asyncio.Event:
        gate = self.load_gates[entity_id] = asyncio.Event()
        return gate

    async def load_entity(self, entity_id: str) -> Mapping[str, Any]:
        self.loads.append(entity_id)
        gate = self.load_gates.get(entity_id)
        if gate is not None:
            await gate.wait()
        if entity_id not in self.entities:
            raise NotFoundError(f"web entity {entity_id!r} not found")
        return copy.deepcopy(self.entities[entity_id])

    async def patch_entity(self, entity_id: str, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        self.events.append(("start", entity_id, dict(payload)))
        gate = self.gates.get(entity_id)
        if gate is not None:
            await gate.wait()
        self.events.append(("end", entity_id, dict(payload)))
        if self.replies:
            reply = self.replies.pop(0)
            if isinstance(reply, BaseException):
                raise reply
            return reply
        self._persist(entity_id, payload)
        return {"accepted": True}

    def _persist(self, entity_id: str, payload: Mapping[str, Any]) -> None:
        """Keep accepted field and prefix changes so a reload sees them."""
        stored = self.entities.get(entity_id)
        if stored is None:
            return
        if "field" in payload:
            stored[payload["field"]] = payload["value"]
        elif "prefix" in payload:
            lru = to_lru(payload["prefix"]["value"])
            prefixes = [to_lru(p) for p in stored.get("lru_prefixes", [])]
            if payload["prefix"]["op"] == "add":
                prefixes.append(lru)
            else:
                prefixes = [p for p in prefixes if p != lru]
            stored["lru_prefixes"] = prefixes

    async def fetch_statuses(self) -> List[str]:
        if not self.statuses:
            raise NotFoundError("status vocabulary unavailable")
        return list(self.statuses)


async def settle(rounds: int = 5) -> None:
    """Let queued worker tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture()
def config() -> EditorConfig:
    return EditorConfig(api_url="http://backend.test/api", tag_categories=["Type"], retry_times=0)


@pytest.fixture()
def payloads() -> Dict[str, Dict[str, Any]]:
    """
    E1 (focal) -> E2, E3; E2 -> E1 (cycle back to the root); E3 is a leaf.
    """
    return {
        "E1": {
            "id": "E1",
            "name": "Example",
            "homepage": "http://example.org/",
            "status": "in",
            "lru_prefixes": ["s:http|h:org|h:example|", "s:http|h:org|h:example|p:blog|"],
            "tags": {
                "USER": {"Type": ["Blog"], "Language": ["fr"]},
                "CORE": {"crawl": ["done"]},
            },
            "creation_date": "1356994800000",
            "last_modification_date": 1357081200000,
            "children": ["E2", "E3"],
        },
        "E2": {
            "id": "E2",
            "name": "Example blog",
            "status": "DISCOVERED",
            "lru_prefixes": ["s:http|h:org|h:example|h:blog|"],
            "children": ["E1"],
        },
        "E3": {
            "id": "E3",
            "name": "",
            "status": "whatever",
            "lru_prefixes": ["http://shop.example.org/"],
        },
    }


@pytest.fixture()
def backend(payloads) -> MemoryBackend:
    return MemoryBackend(payloads, statuses=STATUSES)


@pytest_asyncio.fixture
async def store(backend, config) -> EntityStore:
    store = EntityStore(backend, config, focal_id="E1", statuses=STATUSES)
    await store.load("E1")
    return store


@pytest_asyncio.fixture
async def coordinator(store, backend) -> AsyncIterator[SyncCoordinator]:
    coordinator = SyncCoordinator(store, backend)
    yield coordinator
    await coordinator.close()
