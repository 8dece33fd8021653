# File: tests/test_field_editor.py
"""Тесты InlineFieldEditor и машины состояний EditSession."""
from __future__ import annotations

import asyncio

import pytest

from hyphen_edit.editing import EditSession, EditState, IllegalTransition, InlineFieldEditor
from hyphen_edit.errors import NetworkError, SyncRejected, ValidationError
from hyphen_edit.model.store import EntityStore

from conftest import STATUSES, settle


@pytest.fixture()
def editor(store, coordinator) -> InlineFieldEditor:
    return InlineFieldEditor(store, coordinator)


@pytest.mark.asyncio()
async def test_confirm_commits_and_returns_to_viewing(editor, backend, store):
    editor.activate("name")
    assert editor.state("name") is EditState.EDITING
    editor.update("name", "  Example Org ")
    entity = await editor.confirm("name")

    assert entity.name == "Example Org"
    assert editor.state("name") is EditState.VIEWING
    assert editor.display_value("name") == "Example Org"
    assert backend.patches == [("E1", {"field": "name", "value": "Example Org"})]
    assert editor.session("name").history == [
        EditState.VIEWING,
        EditState.EDITING,
        EditState.COMMITTING,
    ]


@pytest.mark.asyncio()
async def test_invalid_homepage_stays_editing_without_request(editor, backend, store):
    editor.activate("homepage")
    with pytest.raises(ValidationError) as excinfo:
        await editor.confirm("homepage", "not a url")

    assert excinfo.value.field == "homepage"
    session = editor.session("homepage")
    assert session.state is EditState.EDITING
    assert session.error
    assert session.pending_value == "not a url"
    assert backend.patches == []
    assert store.focal.homepage == "http://example.org/"

    # correcting the value clears the error and commits
    await editor.confirm("homepage", "https://example.org/home")
    assert session.error is None
    assert store.focal.homepage == "https://example.org/home"


@pytest.mark.asyncio()
async def test_status_is_matched_case_insensitively(editor, store):
    editor.activate("status")
    await editor.confirm("status", "out")
    assert store.focal.status == "OUT"


@pytest.mark.asyncio()
async def test_unchanged_value_is_not_sent(editor, backend):
    editor.activate("name")
    await editor.confirm("name", "Example")
    assert editor.state("name") is EditState.VIEWING
    assert backend.patches == []


@pytest.mark.asyncio()
async def test_activation_while_committing_is_ignored(editor, backend):
    gate = backend.hold("E1")
    editor.activate("name")
    commit = asyncio.create_task(editor.confirm("name", "Renamed"))
    await settle()
    assert editor.state("name") is EditState.COMMITTING
    assert editor.display_value("name") == "Renamed"

    session = editor.activate("name")
    assert session.state is EditState.COMMITTING
    assert session.pending_value == "Renamed"

    gate.set()
    await commit
    assert editor.state("name") is EditState.VIEWING


@pytest.mark.asyncio()
async def test_rejected_commit_reverts(editor, backend, store):
    backend.replies.append({"rejected": True, "reason": "name already taken"})
    editor.activate("name")
    with pytest.raises(SyncRejected):
        await editor.confirm("name", "Taken")

    session = editor.session("name")
    assert session.state is EditState.VIEWING
    assert session.notice == "name already taken"
    assert EditState.REVERTING in session.history
    assert editor.display_value("name") == "Example"
    assert store.focal.name == "Example"


@pytest.mark.asyncio()
async def test_cancel_commit_reverts_and_ignores_late_response(editor, backend, store):
    gate = backend.hold("E1")
    editor.activate("name")
    commit = asyncio.create_task(editor.confirm("name", "Renamed"))
    await settle()

    assert editor.cancel_commit("name")
    with pytest.raises(SyncRejected):
        await commit
    assert editor.state("name") is EditState.VIEWING

    gate.set()
    await editor.coordinator.join()
    assert store.focal.name == "Example"


@pytest.mark.asyncio()
async def test_fields_are_independent(editor, backend):
    gate = backend.hold("E1")
    editor.activate("name")
    commit = asyncio.create_task(editor.confirm("name", "Renamed"))
    await settle()

    editor.activate("status")
    assert editor.state("status") is EditState.EDITING
    editor.cancel("status")
    assert editor.state("status") is EditState.VIEWING

    gate.set()
    await commit


@pytest.mark.asyncio()
async def test_confirm_requires_editing(editor):
    with pytest.raises(IllegalTransition):
        await editor.confirm("name", "x")


@pytest.mark.asyncio()
async def test_non_editable_field(editor):
    with pytest.raises(ValidationError):
        editor.activate("id")


def test_session_transitions():
    session = EditSession("name", original_value="A")
    with pytest.raises(IllegalTransition):
        session.begin_commit("B")
    session.activate("A")
    session.update("B")
    assert session.display_value == "B"
    session.cancel()
    assert session.display_value == "A"
    assert session.state is EditState.VIEWING
    with pytest.raises(IllegalTransition):
        session.update("C")


@pytest.mark.asyncio()
@pytest.mark.parametrize(
    "field,value,expected",
    [
        ("name", "Example Org", "Example Org"),
        ("homepage", "https://example.org/home", "https://example.org/home"),
        ("homepage", "", None),
        ("status", "undecided", "UNDECIDED"),
    ],
)
async def test_committed_value_survives_reload(editor, backend, config, field, value, expected):
    editor.activate(field)
    await editor.confirm(field, value)

    fresh = EntityStore(backend, config, focal_id="E1", statuses=STATUSES)
    entity = await fresh.load("E1")
    assert entity.value_of(field) == expected


@pytest.mark.asyncio()
async def test_backend_crash_reverts_and_field_stays_editable(editor, backend, store):
    backend.replies.append(RuntimeError("boom"))
    editor.activate("name")
    with pytest.raises(NetworkError, match="boom"):
        await editor.confirm("name", "Renamed")

    session = editor.session("name")
    assert session.state is EditState.VIEWING
    assert session.notice == "boom"
    assert store.focal.name == "Example"

    editor.activate("name")
    assert (await editor.confirm("name", "Renamed")).name == "Renamed"
