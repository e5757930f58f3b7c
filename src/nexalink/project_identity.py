"""Project identifiers: a connection id paired with a canonical working directory."""

from __future__ import annotations

import posixpath

UNKNOWN_PROJECT_PATH = "__unknown_project__"
UNKNOWN_PROJECT_TITLE = "Unknown Project"
SELECTION_SEPARATOR = "::"


def canonical_project_path(raw_path: str) -> str:
    """Normalize a thread/project cwd so equivalent spellings group together.

    Paths are treated as POSIX paths reported by the remote server; relative
    paths are anchored at ``/``. Blank input maps to ``UNKNOWN_PROJECT_PATH``.
    """

    trimmed = raw_path.strip()
    if not trimmed:
        return UNKNOWN_PROJECT_PATH
    if trimmed == UNKNOWN_PROJECT_PATH:
        return trimmed
    anchored = trimmed if trimmed.startswith("/") else "/" + trimmed
    standardized = posixpath.normpath(anchored)
    # normpath keeps a leading "//" per POSIX; collapse it.
    if standardized.startswith("//"):
        standardized = "/" + standardized.lstrip("/")
    return standardized or UNKNOWN_PROJECT_PATH


def project_selection_id(connection_id: str, project_path: str) -> str:
    return f"{connection_id}{SELECTION_SEPARATOR}{canonical_project_path(project_path)}"


def parse_project_selection_id(value: str) -> tuple[str, str] | None:
    connection_id, sep, project_path = value.partition(SELECTION_SEPARATOR)
    if not sep or not connection_id or not project_path:
        return None
    return connection_id, project_path


def project_title(project_path: str) -> str:
    if project_path == UNKNOWN_PROJECT_PATH:
        return UNKNOWN_PROJECT_TITLE
    normalized = project_path.strip()
    if not normalized:
        return UNKNOWN_PROJECT_TITLE
    basename = posixpath.basename(normalized.rstrip("/")).strip()
    return basename or normalized
