from __future__ import annotations

from nexalink.store.derived_state import build_derived_state, merged_id, parse_merged_id
from nexalink.store.models import ConnectionState

from tests.utils import FakeSession, make_connection, make_task, make_thread


def _session(state: ConnectionState = ConnectionState.CONNECTED) -> FakeSession:
    session = FakeSession(lambda: None)
    session.state = state
    return session


def test_merged_id_round_trip_and_invalid_ids() -> None:
    assert merged_id("c1", "t1") == "c1::t1"
    assert parse_merged_id("c1::t1") == ("c1", "t1")
    assert parse_merged_id("c1") is None
    assert parse_merged_id("::t1") is None


def test_threads_from_enabled_connections_sorted_newest_first() -> None:
    first = _session()
    first.threads = [make_thread("old", minutes_ago=30), make_thread("new", minutes_ago=1)]
    first.running_tasks = [make_task("task-a", "old", minutes_ago=5)]
    second = _session(ConnectionState.FAILED)
    second.threads = [make_thread("mid", minutes_ago=10)]
    disabled = _session()
    disabled.threads = [make_thread("hidden")]

    state = build_derived_state(
        [make_connection("c1"), make_connection("c2"), make_connection("c3", enabled=False)],
        {"c1": first, "c2": second, "c3": disabled},
    )

    assert [t.id for t in state.merged_threads] == ["c1::new", "c2::mid", "c1::old"]
    assert state.merged_thread_lookup["c2::mid"] == ("c2", "mid")
    assert "c3::hidden" not in state.merged_thread_lookup
    assert [(t.id, t.merged_thread_id) for t in state.merged_running_tasks] == [("c1::task-a", "c1::old")]
    assert state.enabled_count == 2
    assert state.connected_enabled_count == 1


def test_missing_server_reports_disconnected_status() -> None:
    state = build_derived_state([make_connection("c1", name="Lab")], {})

    (status,) = state.statuses
    assert status.state is ConnectionState.DISCONNECTED
    assert status.state_label == "Disconnected"
    assert status.name == "Lab"
    assert state.merged_threads == []
