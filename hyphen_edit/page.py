# File: hyphen_edit/page.py
"""hyphen_edit.page: фасад страницы редактирования одной веб-сущности.

Связывает хранилище, координатор синхронизации, редактор полей, менеджер
тегов, дерево содержимого и привязки представления. Состояние страницы
(текущая сущность, пользователь) передаётся явно через :class:`PageContext`.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional

from jinja2 import Environment

from hyphen_edit.config import EditorConfig
from hyphen_edit.editing import InlineFieldEditor, TagManager
from hyphen_edit.errors import EditorError, NetworkError, NotFoundError, ValidationError
from hyphen_edit.logger import logger
from hyphen_edit.model.store import EntityStore, Op
from hyphen_edit.sync import Backend, HttpBackend, Mutation, SyncCoordinator
from hyphen_edit.sync.mutations import Accepted
from hyphen_edit.tree import ContentTreeRenderer
from hyphen_edit.view import PageView, build_bindings, make_environment

__all__ = ["PageContext", "EditPage", "open_page"]


@dataclass(frozen=True, slots=True)
class PageContext:
    """Явный контекст страницы вместо глобального состояния."""

    entity_id: str
    user: Optional[str] = None


class EditPage:
    """Фасад для CLI и тестов: загрузка сущности, правки и отрисовка."""

    def __init__(
        self,
        context: PageContext,
        config: EditorConfig,
        backend: Backend,
        *,
        env: Optional[Environment] = None,
    ) -> None:
        """Инициализирует страницу; загрузка выполняется в :meth:`open`."""
        self.context = context
        self.config = config
        self.backend = backend
        self.env = env or make_environment(config.template_dir)
        self.state = "new"
        self.error: Optional[EditorError] = None
        self.last_error: Optional[EditorError] = None
        self.notices: List[str] = []

        self.store: Optional[EntityStore] = None
        self.coordinator: Optional[SyncCoordinator] = None
        self.editor: Optional[InlineFieldEditor] = None
        self.tags: Optional[TagManager] = None
        self.tree: Optional[ContentTreeRenderer] = None
        self.view: Optional[PageView] = None

    async def __aenter__(self) -> EditPage:
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Жизненный цикл                                                     #
    # ------------------------------------------------------------------ #

    async def _statuses(self) -> List[str]:
        try:
            return await self.backend.fetch_statuses()
        except (NotFoundError, NetworkError) as exc:
            logger.info("Status vocabulary unavailable (%s), using configured one", exc)
            return list(self.config.statuses)

    async def open(self) -> bool:
        """Загружает сущность и строит компоненты. False — ошибка уровня страницы."""
        entity_id = self.context.entity_id
        logger.info("Opening web entity %s", entity_id)
        statuses = await self._statuses()
        self.store = EntityStore(self.backend, self.config, focal_id=entity_id, statuses=statuses)
        self.coordinator = SyncCoordinator(self.store, self.backend)
        try:
            await self.store.load(entity_id)
            self.tree = ContentTreeRenderer(self.store, self.env)
            await self.tree.expand(entity_id)
        except EditorError as exc:
            logger.error("Cannot open web entity %s: %s", entity_id, exc)
            self.error = exc
            self.state = "error"
            await self.coordinator.close()
            if self.tree is not None:
                self.tree.close()
                self.tree = None
            return False

        self.editor = InlineFieldEditor(self.store, self.coordinator)
        self.tags = TagManager(self.store, self.coordinator)
        bindings = build_bindings(self.env, self.store, self.editor, self.tags, self.tree)
        self.view = PageView(bindings, self.store, self.env)
        self.view.render_all()
        self.state = "ready"
        return True

    async def close(self) -> None:
        """Уход со страницы: незавершённые правки отбрасываются."""
        if self.state == "closed":
            return
        if self.coordinator is not None:
            await self.coordinator.close()
        if self.view is not None:
            self.view.close()
        if self.tree is not None:
            self.tree.close()
        self.state = "closed"

    def _require_ready(self) -> None:
        if self.state != "ready":
            raise RuntimeError(f"page is {self.state}")

    def _record(self, exc: EditorError) -> None:
        self.last_error = exc
        if not isinstance(exc, ValidationError):
            self.notices.append(str(exc))

    # ------------------------------------------------------------------ #
    # Действия пользователя                                              #
    # ------------------------------------------------------------------ #

    async def edit_field(self, field: str, value: str) -> bool:
        """Правка поля «на месте»: активация, ввод и подтверждение."""
        self._require_ready()
        try:
            self.editor.activate(field)
            await self.editor.confirm(field, value)
        except EditorError as exc:
            self._record(exc)
            return False
        finally:
            self.view.refresh_fields(field)
        return True

    async def add_tag(self, category: str, value: str) -> bool:
        return await self._tag_call(self.tags.add(category, value))

    async def remove_tag(self, category: str, value: str) -> bool:
        return await self._tag_call(self.tags.remove(category, value))

    async def rename_tag(self, category: str, old: str, new: str) -> bool:
        return await self._tag_call(self.tags.rename(category, old, new))

    async def _tag_call(self, call) -> bool:
        self._require_ready()
        try:
            await call
        except EditorError as exc:
            self._record(exc)
            return False
        finally:
            self.view.refresh("tags_user")
        return True

    async def add_prefix(self, value: str) -> bool:
        return await self._prefix_call(Op.ADD, value)

    async def remove_prefix(self, value: str) -> bool:
        return await self._prefix_call(Op.REMOVE, value)

    async def _prefix_call(self, op: Op, value: str) -> bool:
        self._require_ready()
        try:
            self.store.validate_prefix(self.store.focal, op, value)
            ticket = self.coordinator.submit(Mutation.prefix(self.context.entity_id, op, value))
            result = await ticket
            if not isinstance(result, Accepted):
                raise result.to_error()
        except EditorError as exc:
            self._record(exc)
            return False
        return True

    async def expand(self, entity_id: str) -> bool:
        self._require_ready()
        try:
            done = await self.tree.expand(entity_id)
        except EditorError as exc:
            self._record(exc)
            return False
        self.view.refresh("content_tree")
        return done

    def collapse(self, entity_id: str) -> None:
        self._require_ready()
        self.tree.collapse(entity_id)
        self.view.refresh("content_tree")

    # ------------------------------------------------------------------ #
    # Отрисовка                                                          #
    # ------------------------------------------------------------------ #

    def render(self) -> str:
        """HTML всех точек монтирования, собранный в разметку страницы."""
        if self.view is None:
            error = str(self.error) if self.error else None
            return self.env.get_template("page.html.j2").render(mounts={}, error=error, notices=self.notices)
        return self.view.page(notices=self.notices)


@asynccontextmanager
async def open_page(
    config: EditorConfig,
    entity_id: str,
    *,
    backend: Optional[Backend] = None,
    user: Optional[str] = None,
) -> AsyncIterator[EditPage]:
    """Открывает страницу поверх HttpBackend (или переданного backend)."""
    async with (backend or HttpBackend(config)) as transport:
        async with EditPage(PageContext(entity_id, user), config, transport) as page:
            yield page
