"""Group merged threads into per-project sidebar sections."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Mapping, Sequence

from nexalink.project_identity import (
    UNKNOWN_PROJECT_PATH,
    canonical_project_path,
    parse_project_selection_id,
    project_selection_id,
    project_title,
)
from nexalink.store.models import ConnectedProject, ConnectionStatus, MergedThread


@dataclass(frozen=True)
class ProjectSection:
    id: str
    connection_id: str
    project_path: str
    title: str
    subtitle: str | None
    connection_name: str
    connection_color_hex: str
    threads: tuple[MergedThread, ...]
    latest_updated_at: datetime


def build_project_sections(
    connected_projects: Sequence[ConnectedProject],
    merged_threads: Sequence[MergedThread],
    connection_status_by_id: Mapping[str, ConnectionStatus],
) -> list[ProjectSection]:
    """Connected projects come first (in order), then projects seen only via threads.

    Sections for connections without a status are dropped. When two sections
    on one connection would share a title, the full path becomes the subtitle.
    """

    # dicts keep insertion order, which is the section order.
    grouped: dict[str, list[MergedThread]] = {}
    for project in connected_projects:
        grouped.setdefault(project.id, [])
    for thread in merged_threads:
        key = project_selection_id(thread.connection_id, canonical_project_path(thread.cwd))
        grouped.setdefault(key, []).append(thread)

    title_counts: dict[tuple[str, str], int] = {}
    for key in grouped:
        parsed = parse_project_selection_id(key)
        if parsed is None:
            continue
        connection_id, path = parsed
        title_key = (connection_id, project_title(path))
        title_counts[title_key] = title_counts.get(title_key, 0) + 1

    sections: list[ProjectSection] = []
    for key, threads in grouped.items():
        parsed = parse_project_selection_id(key)
        if parsed is None:
            continue
        connection_id, path = parsed
        status = connection_status_by_id.get(connection_id)
        if status is None:
            continue

        ordered = sorted(threads, key=lambda t: t.updated_at, reverse=True)
        title = project_title(path)
        subtitle = None
        if path != UNKNOWN_PROJECT_PATH and title_counts.get((connection_id, title), 0) > 1:
            subtitle = path

        sections.append(
            ProjectSection(
                id=key,
                connection_id=connection_id,
                project_path=path,
                title=title,
                subtitle=subtitle,
                connection_name=status.name,
                connection_color_hex=status.color_hex,
                threads=tuple(ordered),
                latest_updated_at=ordered[0].updated_at if ordered else datetime.min,
            )
        )
    return sections
