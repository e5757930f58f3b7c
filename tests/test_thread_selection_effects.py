from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from nexalink.store.derived_state import build_derived_state
from nexalink.store.models import ConnectedProject, ConnectionState, ConnectionStatus
from nexalink.threads.selection_effects import ThreadSelectionSideEffects

from tests.utils import FakeSession, make_connection, make_thread


def _status(connection_id: str) -> ConnectionStatus:
    return ConnectionStatus(
        id=connection_id,
        name=connection_id,
        host="127.0.0.1",
        port="9281",
        is_enabled=True,
        color_hex="#4A8DFF",
        state=ConnectionState.CONNECTED,
    )


def _merged_thread(thread_id: str = "t1", title: str = "Refactor"):
    session = FakeSession(lambda: None)
    session.threads = [make_thread(thread_id, title=title)]
    return build_derived_state([make_connection("c1")], {"c1": session}).merged_threads[0]


def test_begin_new_thread_selection() -> None:
    assert ThreadSelectionSideEffects().begin_new_thread_selection("c1::/repo") == ("c1::/repo", None, True)


def test_merged_threads_update_prunes_missing_ids() -> None:
    effects = ThreadSelectionSideEffects()
    thread = _merged_thread()

    assert effects.merged_threads_update([thread], "c1::t1", {"c1::t1", "c1::gone"}) == ("c1::t1", {"c1::t1"})
    assert effects.merged_threads_update([], "c1::t1", {"c1::t1"}) == (None, set())


def test_connection_statuses_update_drops_removed_connections() -> None:
    effects = ThreadSelectionSideEffects()
    projects = [
        ConnectedProject(id="c1::/a", connection_id="c1", project_path="/a"),
        ConnectedProject(id="c2::/b", connection_id="c2", project_path="/b"),
    ]

    kept, selected, modes = effects.connection_statuses_update(
        [_status("c1")], projects, "c2::/b", {"c1::/a", "c2::/b", "unparseable"}
    )

    assert kept == projects[:1]
    assert selected is None
    assert modes == {"c1::/a"}


def test_connection_statuses_update_keeps_unparseable_selection() -> None:
    _, selected, _ = ThreadSelectionSideEffects().connection_statuses_update([], [], "weird", set())
    assert selected == "weird"


def test_selected_thread_change() -> None:
    effects = ThreadSelectionSideEffects()

    assert effects.selected_thread_change("c1::t1", "c1::/repo") == (None, True, "c1::t1")
    assert effects.selected_thread_change(None, "c1::/repo") == ("c1::/repo", True, None)


@pytest.mark.asyncio
async def test_archive_success_calls_callback() -> None:
    effects = ThreadSelectionSideEffects()
    store = Mock()
    store.archive_thread = AsyncMock(return_value=(True, None))
    on_archived = Mock(return_value=None)

    await effects.archive_thread(_merged_thread(), store, on_archived)

    store.archive_thread.assert_awaited_once_with("c1::t1")
    on_archived.assert_called_once_with()
    assert effects.archiving_thread_ids == set()
    assert effects.archive_error_message is None


@pytest.mark.asyncio
async def test_archive_failure_sets_error_message() -> None:
    effects = ThreadSelectionSideEffects()
    store = Mock()
    store.archive_thread = AsyncMock(return_value=(False, None))
    on_archived = AsyncMock()

    await effects.archive_thread(_merged_thread(title="Refactor"), store, on_archived)
    assert effects.archive_error_message == 'Could not archive "Refactor".'
    on_archived.assert_not_called()

    store.archive_thread = AsyncMock(return_value=(False, "server said no"))
    await effects.archive_thread(_merged_thread(), store, on_archived)
    assert effects.archive_error_message == "server said no"

    effects.clear_archive_error()
    assert effects.archive_error_message is None


@pytest.mark.asyncio
async def test_archive_ignores_duplicate_in_flight_requests() -> None:
    effects = ThreadSelectionSideEffects()
    release = asyncio.Event()
    calls: list[str] = []

    class SlowStore:
        async def archive_thread(self, merged_thread_id: str):
            calls.append(merged_thread_id)
            await release.wait()
            return True, None

    thread = _merged_thread()
    first = asyncio.create_task(effects.archive_thread(thread, SlowStore(), lambda: None))
    await asyncio.sleep(0)
    await effects.archive_thread(thread, SlowStore(), lambda: None)
    release.set()
    await first

    assert calls == ["c1::t1"]
