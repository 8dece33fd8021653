# File: tests/test_view.py
"""Тесты привязок представления: перерисовываются только точки
монтирования, зависящие от изменённых полей."""
from __future__ import annotations

import asyncio

import pytest
from bs4 import BeautifulSoup

from hyphen_edit.editing import InlineFieldEditor, TagManager
from hyphen_edit.errors import ValidationError
from hyphen_edit.model.store import Op
from hyphen_edit.sync import Mutation
from hyphen_edit.tree import ContentTreeRenderer
from hyphen_edit.view import MOUNT_POINTS, PageView, build_bindings, make_environment

from conftest import settle


@pytest.fixture()
def view(store, coordinator):
    env = make_environment()
    editor = InlineFieldEditor(store, coordinator)
    tags = TagManager(store, coordinator)
    tree = ContentTreeRenderer(store, env)
    page = PageView(build_bindings(env, store, editor, tags, tree), store, env)
    page.editor = editor
    page.tags = tags
    page.render_all()
    page.render_log.clear()
    yield page
    page.close()
    tree.close()


def soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


@pytest.mark.asyncio()
async def test_all_mount_points_rendered(view):
    assert set(view.fragments) == set(MOUNT_POINTS)
    title = soup(view.fragments["title"])
    assert title.h1.span.get_text() == "Example"
    identity = soup(view.fragments["identity"])
    assert identity.select_one("a#name").get_text() == "Example"
    assert "editable-viewing" in identity.select_one("a#homepage")["class"]
    status = soup(view.fragments["status"])
    assert status.select_one("a#status").get_text() == "IN"
    other = soup(view.fragments["tags_other"])
    assert [d.get_text() for d in other.select("#tags_Other .tag")] == ["CORE:crawl=done"]


@pytest.mark.asyncio()
async def test_prefix_removal_rerenders_prefix_table(view, coordinator):
    rows = soup(view.fragments["prefixes"]).select("table#lru_prefixes tr")
    assert [r.a.get_text() for r in rows] == ["http://example.org/", "http://example.org/blog"]

    await coordinator.submit(Mutation.prefix("E1", Op.REMOVE, "http://example.org/blog/"))

    rows = soup(view.fragments["prefixes"]).select("table#lru_prefixes tr")
    assert len(rows) == 1
    assert rows[0]["data-lru"] == "s:http|h:org|h:example|"
    assert rows[0].a.get_text() == "http://example.org/"
    assert view.render_log == ["prefixes"]


@pytest.mark.asyncio()
async def test_name_edit_touches_only_bound_mounts(view):
    view.editor.activate("name")
    await view.editor.confirm("name", "Example Org")
    assert set(view.render_log) == {"title", "identity", "content_tree"}
    assert soup(view.fragments["title"]).h1.span.get_text() == "Example Org"


@pytest.mark.asyncio()
async def test_tag_add_rerenders_user_tags(view):
    await view.tags.add("Type", "Shop")
    assert set(view.render_log) == {"tags_user", "tags_other"}
    row = soup(view.fragments["tags_user"]).select_one('tr[data-category="Type"]')
    assert [s.get_text() for s in row.select("span.tag")] == ["Blog", "Shop"]


@pytest.mark.asyncio()
async def test_pending_tag_rendered_as_pending(view, backend):
    gate = backend.hold("E1")
    task = asyncio.create_task(view.tags.add("Type", "Shop"))
    await settle()
    view.refresh("tags_user")
    pending = soup(view.fragments["tags_user"]).select("span.tag-pending")
    assert [s.get_text() for s in pending] == ["Shop"]
    gate.set()
    await task


@pytest.mark.asyncio()
async def test_validation_error_shown_inline(view):
    view.editor.activate("homepage")
    with pytest.raises(ValidationError):
        await view.editor.confirm("homepage", "nope")
    view.refresh_fields("homepage")
    identity = soup(view.fragments["identity"])
    link = identity.select_one("a#homepage")
    assert "editable-editing" in link["class"]
    assert link.get_text() == "nope"
    assert identity.select_one("span.text-error") is not None


@pytest.mark.asyncio()
async def test_page_composes_mounts(view):
    page = soup(view.page(notices=["saved"]))
    assert page.select_one("#contentTree div.stack")["data-id"] == "E1"
    assert page.select_one("tbody#tags_User") is not None
    assert page.select_one("div.alert").get_text().strip() == "saved"
