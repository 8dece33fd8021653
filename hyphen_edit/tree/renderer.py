# hyphen_edit/tree/renderer.py
"""
Content tree: the focal web entity and the sub-entities it subsumes.

The tree is rebuilt from the store's id references on every :meth:`render`,
which is cheap; the HTML of each node is cached and only re-rendered when the
node's own inputs or one of its children's fragments changed. Expansion state
lives here, independent of the fragments, so it survives edits.

Traversal keeps a visited set: a child id seen before is not descended into
again (it is listed in :attr:`TreeNode.cycles` instead), so cyclic ``children``
references terminate and every entity appears at most once.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from jinja2 import Environment

from hyphen_edit.errors import EditorError, NotFoundError
from hyphen_edit.logger import get_logger
from hyphen_edit.model.store import Change, EntityStore
from hyphen_edit.view.environment import make_environment

__all__ = ("TreeNode", "ContentTreeRenderer")

log = get_logger("tree")


@dataclass(slots=True)
class TreeNode:
    entity_id: str
    name: str
    depth: int
    focal: bool = False
    status: str = ""
    expanded: bool = False
    loaded: bool = True
    has_children: bool = False
    error: Optional[str] = None
    children: List[TreeNode] = field(default_factory=list)
    cycles: List[str] = field(default_factory=list)

    def walk(self) -> Iterator[TreeNode]:
        yield self
        for child in self.children:
            yield from child.walk()


class ContentTreeRenderer:
    template_name = "tree_node.html.j2"

    def __init__(
        self,
        store: EntityStore,
        env: Optional[Environment] = None,
        *,
        root_id: Optional[str] = None,
    ) -> None:
        self.store = store
        self.env = env or make_environment()
        self.root_id = root_id or store.focal_id
        if self.root_id is None:
            raise ValueError("content tree needs a root entity id")
        self.render_count = 0
        self._expanded: Set[str] = {self.root_id}
        self._generation: Dict[str, int] = {}
        self._errors: Dict[str, str] = {}
        self._dirty: Set[str] = set()
        self._fragments: Dict[str, Tuple[tuple, str]] = {}
        self._unsubscribe = store.subscribe(self._on_change)

    def close(self) -> None:
        self._unsubscribe()

    # ------------------------------------------------------------------ #
    # Expansion state                                                    #
    # ------------------------------------------------------------------ #

    def is_expanded(self, entity_id: str) -> bool:
        return entity_id in self._expanded

    def _bump(self, entity_id: str) -> int:
        gen = self._generation.get(entity_id, 0) + 1
        self._generation[entity_id] = gen
        return gen

    async def expand(self, entity_id: str) -> bool:
        """Expand a node, fetching children missing from the store.

        Returns False when a later collapse/expand superseded this call; the
        fetched entities are then dropped without touching the store.
        """
        if entity_id not in self.store:
            raise NotFoundError(f"web entity {entity_id!r} is not loaded")
        self._expanded.add(entity_id)
        gen = self._bump(entity_id)

        missing = [c for c in self.store.get(entity_id).children if c not in self.store]
        if not missing:
            return True
        log.debug("Fetching %d child(ren) of %s", len(missing), entity_id)
        results = await asyncio.gather(
            *(self.store.fetch(child_id) for child_id in missing), return_exceptions=True
        )
        if self._generation.get(entity_id) != gen or entity_id not in self._expanded:
            log.debug("Discarding superseded child fetch of %s", entity_id)
            return False

        for child_id, result in zip(missing, results):
            if isinstance(result, EditorError):
                log.warning("Could not load sub-entity %s: %s", child_id, result)
                self._errors[child_id] = str(result)
                continue
            if isinstance(result, BaseException):
                raise result
            self._errors.pop(child_id, None)
            if result.id not in self.store:
                self.store.insert(result)
        return True

    def collapse(self, entity_id: str) -> None:
        self._expanded.discard(entity_id)
        self._bump(entity_id)

    async def toggle(self, entity_id: str) -> bool:
        if self.is_expanded(entity_id):
            self.collapse(entity_id)
            return False
        return await self.expand(entity_id)

    # ------------------------------------------------------------------ #
    # Building & rendering                                               #
    # ------------------------------------------------------------------ #

    def build(self) -> TreeNode:
        return self._build(self.root_id, 0, set())

    def _build(self, entity_id: str, depth: int, visited: Set[str]) -> TreeNode:
        visited.add(entity_id)
        if entity_id not in self.store:
            return TreeNode(entity_id, "", depth, loaded=False, error=self._errors.get(entity_id))

        entity = self.store.get(entity_id)
        node = TreeNode(
            entity_id,
            entity.name,
            depth,
            focal=entity_id == self.root_id,
            status=entity.status,
            expanded=entity_id in self._expanded,
            has_children=bool(entity.children),
        )
        if not node.expanded:
            return node
        for child_id in entity.children:
            if child_id in visited:
                node.cycles.append(child_id)
                continue
            node.children.append(self._build(child_id, depth + 1, visited))
        return node

    def render(self) -> str:
        return self._render_node(self.build())

    def _render_node(self, node: TreeNode) -> str:
        children_html = tuple(self._render_node(child) for child in node.children)
        signature = (
            node.name,
            node.depth,
            node.focal,
            node.status,
            node.expanded,
            node.loaded,
            node.has_children,
            node.error,
            tuple(node.cycles),
            children_html,
        )
        cached = self._fragments.get(node.entity_id)
        if cached is not None and cached[0] == signature and node.entity_id not in self._dirty:
            return cached[1]

        html = self.env.get_template(self.template_name).render(node=node, children=children_html)
        self.render_count += 1
        self._fragments[node.entity_id] = (signature, html)
        self._dirty.discard(node.entity_id)
        return html

    def _on_change(self, change: Change) -> None:
        self._dirty.add(change.entity_id)
