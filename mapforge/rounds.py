from __future__ import annotations

from typing import Any, Dict, List, Optional

from .errors import RoundNotFoundError, RowNotFoundError
from .paths import canonical_row_text
from .project import STATUSES, MappingRow, Project, Round, new_row

EDITABLE_ROW_FIELDS = ('source', 'destination', 'status', 'comment')


def find_round(project: Project, round_id: Optional[str]) -> Round:
    for round_ in project.rounds:
        if round_.id == round_id:
            return round_
    raise RoundNotFoundError(round_id)


def active_round(project: Project) -> Round:
    return find_round(project, project.active_round_id)


def next_round_id(project: Project) -> str:
    existing = {r.id for r in project.rounds}
    n = len(project.rounds) + 1
    while f"R{n:02d}" in existing:
        n += 1
    return f"R{n:02d}"


def _with_round_rows(project: Project, round_id: str, rows: List[MappingRow]) -> Project:
    find_round(project, round_id)
    rounds = [
        r.model_copy(update={'rows': rows}) if r.id == round_id else r
        for r in project.rounds
    ]
    return project.model_copy(update={'rounds': rounds})


def add_row(project: Project, rubric: Optional[str] = None, destination: str = '') -> Project:
    """Append a blank row to the active round."""
    round_ = active_round(project)
    row = new_row(destination=canonical_row_text(destination), rubric=rubric)
    return _with_round_rows(project, round_.id, [*round_.rows, row])


def add_rubric_row(project: Project, rubric: str, destination: str = '') -> Project:
    return add_row(project, rubric=rubric, destination=destination)


def update_row(project: Project, row_id: str, **changes: Any) -> Project:
    """Patch one row of the active round.

    Only source, destination, status and comment can change. Path-like source
    and destination values are canonicalized, free text is only trimmed.
    """
    unknown = set(changes) - set(EDITABLE_ROW_FIELDS)
    if unknown:
        raise ValueError(f"Not editable: {', '.join(sorted(unknown))}")
    if 'status' in changes and changes['status'] not in STATUSES:
        raise ValueError(f"Unknown status: {changes['status']}")

    patch: Dict[str, Any] = {}
    for key, value in changes.items():
        value = '' if value is None else str(value)
        if key in ('source', 'destination'):
            value = canonical_row_text(value)
        patch[key] = value

    round_ = active_round(project)
    if not any(r.id == row_id for r in round_.rows):
        raise RowNotFoundError(row_id)
    rows = [r.model_copy(update=patch) if r.id == row_id else r for r in round_.rows]
    return _with_round_rows(project, round_.id, rows)


def delete_row(project: Project, row_id: str) -> Project:
    round_ = active_round(project)
    rows = [r for r in round_.rows if r.id != row_id]
    if len(rows) == len(round_.rows):
        raise RowNotFoundError(row_id)
    return _with_round_rows(project, round_.id, rows)


def replace_round_rows(project: Project, round_id: str, rows: List[MappingRow]) -> Project:
    return _with_round_rows(project, round_id, list(rows))


def add_round(project: Project, title: str = '') -> Project:
    """Append an empty round and make it the active one."""
    round_id = next_round_id(project)
    rounds = [*project.rounds, Round(id=round_id, rows=[], title=title)]
    return project.model_copy(update={'rounds': rounds, 'active_round_id': round_id})


def switch_round(project: Project, round_id: str) -> Project:
    find_round(project, round_id)
    return project.model_copy(update={'active_round_id': round_id})


def remove_round(project: Project, round_id: str) -> Project:
    """Remove a round; the last remaining round cannot be removed."""
    find_round(project, round_id)
    if len(project.rounds) <= 1:
        return project
    rounds = [r for r in project.rounds if r.id != round_id]
    active = project.active_round_id
    if active == round_id:
        active = rounds[0].id
    return project.model_copy(update={'rounds': rounds, 'active_round_id': active})
