# hyphen_edit/view/bindings.py
"""
Declarative binding of model fields to named mount points.

A mount point is a named HTML fragment of the page (``identity``,
``prefixes``, ``content_tree`` ...). Each one is registered with the model
fields it depends on; when the store reports a :class:`Change`, only the
mount points bound to the changed fields are re-rendered.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence

from jinja2 import Environment

from hyphen_edit.logger import get_logger
from hyphen_edit.model.entity import EDITABLE_FIELDS
from hyphen_edit.model.serialize import prefix_rows, tag_rows
from hyphen_edit.model.store import Change, EntityStore, Op

if TYPE_CHECKING:
    from hyphen_edit.editing.field_editor import InlineFieldEditor
    from hyphen_edit.editing.tags import TagManager
    from hyphen_edit.tree.renderer import ContentTreeRenderer

__all__ = ("MOUNT_POINTS", "Binding", "BindingMap", "PageView", "build_bindings")

log = get_logger("view")

MOUNT_POINTS: Sequence[str] = (
    "title",
    "identity",
    "status",
    "prefixes",
    "tags_user",
    "tags_other",
    "content_tree",
)

MountRenderer = Callable[[], str]


@dataclass(frozen=True, slots=True)
class Binding:
    mount: str
    render: MountRenderer
    fields: FrozenSet[str]
    # content tree shows sub-entities too
    any_entity: bool = False


class BindingMap:
    """field name -> mount points, in registration order."""

    def __init__(self) -> None:
        self._bindings: Dict[str, Binding] = {}

    def mount(self, name: str, render: MountRenderer, *, fields: Iterable[str], any_entity: bool = False) -> None:
        self._bindings[name] = Binding(name, render, frozenset(fields), any_entity)

    def __getitem__(self, name: str) -> Binding:
        return self._bindings[name]

    def __iter__(self):
        return iter(self._bindings.values())

    def names(self) -> List[str]:
        return list(self._bindings)

    def mounts_for(self, fields: Iterable[str], *, focal: bool = True) -> List[str]:
        wanted = frozenset(fields)
        return [
            b.mount
            for b in self._bindings.values()
            if b.fields & wanted and (focal or b.any_entity)
        ]


class PageView:
    """Holds the current HTML of every mount point and keeps it in sync."""

    def __init__(self, bindings: BindingMap, store: EntityStore, env: Environment) -> None:
        self.bindings = bindings
        self.store = store
        self.env = env
        self.fragments: Dict[str, str] = {}
        self.render_log: List[str] = []
        self._unsubscribe = store.subscribe(self._on_change)

    def close(self) -> None:
        self._unsubscribe()

    def render_all(self) -> Dict[str, str]:
        self.refresh(*self.bindings.names())
        return self.fragments

    def refresh(self, *names: str) -> None:
        for name in names:
            self.fragments[name] = self.bindings[name].render()
            self.render_log.append(name)
        if names:
            log.debug("Re-rendered %s", ", ".join(names))

    def refresh_fields(self, *fields: str) -> None:
        self.refresh(*self.bindings.mounts_for(fields))

    def _on_change(self, change: Change) -> None:
        focal = change.entity_id == self.store.focal_id
        self.refresh(*self.bindings.mounts_for(change.fields, focal=focal))

    def page(self, *, error: Optional[str] = None, notices: Sequence[str] = ()) -> str:
        mounts = {name: self.fragments.get(name, "") for name in MOUNT_POINTS}
        return self.env.get_template("page.html.j2").render(mounts=mounts, error=error, notices=notices)


def build_bindings(
    env: Environment,
    store: EntityStore,
    editor: InlineFieldEditor,
    tags: TagManager,
    tree: ContentTreeRenderer,
) -> BindingMap:
    """Standard mount points of the web-entity edit page."""

    def _editor_view() -> Dict[str, Dict[str, Any]]:
        view = {}
        for field in EDITABLE_FIELDS:
            s = editor.session(field)
            view[field] = {
                "state": s.state.value,
                "value": editor.display_value(field),
                "error": s.error,
                "notice": s.notice,
            }
        return view

    def _render(template: str, **context: Any) -> str:
        return env.get_template(template).render(entity=store.focal, **context)

    def title() -> str:
        return _render("title.html.j2")

    def identity() -> str:
        return _render("identity.html.j2", editor=_editor_view())

    def status() -> str:
        return _render("status.html.j2", editor=_editor_view())

    def prefixes() -> str:
        return _render("prefixes.html.j2", rows=prefix_rows(store.focal))

    def tags_user() -> str:
        editable, _ = tags.categories()
        pending: Dict[str, List[str]] = {}
        for p in tags.pending():
            if p.op is Op.ADD:
                pending.setdefault(p.category, []).append(p.value)
        return _render("tags_user.html.j2", categories=tag_rows(editable), pending=pending)

    def tags_other() -> str:
        _, readonly = tags.categories()
        return _render("tags_other.html.j2", categories=tag_rows(readonly))

    bindings = BindingMap()
    bindings.mount("title", title, fields={"name"})
    bindings.mount(
        "identity",
        identity,
        fields={"name", "homepage", "id", "creation_date", "last_modified_date"},
    )
    bindings.mount("status", status, fields={"status", "last_crawl_date"})
    bindings.mount("prefixes", prefixes, fields={"prefixes"})
    bindings.mount("tags_user", tags_user, fields={"categories", "tags"})
    bindings.mount("tags_other", tags_other, fields={"categories"})
    bindings.mount("content_tree", tree.render, fields={"name", "status", "children", "id"}, any_entity=True)
    return bindings
