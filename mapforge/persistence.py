"""Project persistence: storage slots, JSON project files and spreadsheet imports.

Storage is reached through the `SlotStorage` port so the core never touches an
ambient store. Every channel validates through `project.validate_project`; a
document that fails validation is never written over the current project.
"""
from __future__ import annotations

import logging
import os
import re
import tempfile
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple
from urllib.parse import quote

from .errors import MapForgeError, RoundNotFoundError
from .project import (
    Project,
    make_empty_project,
    now_iso,
    project_key,
    project_to_json,
    storage_key,
    validate_project,
)
from .rounds import find_round, replace_round_rows
from .spreadsheet import ImportedSheet

logger = logging.getLogger(__name__)

_UNSAFE_FILENAME_CHARS = re.compile(r'[^A-Za-z0-9_.-]')


class SlotStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self, items: Optional[Dict[str, str]] = None):
        self.items: Dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> Optional[str]:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value

    def remove_item(self, key: str) -> None:
        self.items.pop(key, None)


class FileStorage:
    """One JSON file per slot key inside a directory."""

    def __init__(self, root: os.PathLike | str):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        return self.root / f"{quote(key, safe='')}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding='utf-8')

    def set_item(self, key: str, value: str) -> None:
        self.root.mkdir(parents=True, exist_ok=True)
        target = self._path(key)
        fd, tmp = tempfile.mkstemp(dir=self.root, suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(value)
            os.replace(tmp, target)
        except OSError:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()


# --- storage slot ----------------------------------------------------------


def load_project(storage: SlotStorage, key: str) -> Optional[Project]:
    """Stored project for a key, or None when absent or unreadable."""
    raw = storage.get_item(key)
    if raw is None:
        return None
    try:
        return validate_project(raw)
    except MapForgeError as exc:
        logger.warning("Discarding stored project %s: %s", key, exc)
        return None


def load_or_create(storage: SlotStorage, system_id: str, direction: str, message_id: str) -> Project:
    loaded = load_project(storage, storage_key(system_id, direction, message_id))
    if loaded is not None:
        return loaded
    return make_empty_project(system_id, direction, message_id)


def save_project(storage: SlotStorage, project: Project) -> Project:
    """Write the whole document to its slot with a fresh updatedAt; last write wins."""
    saved = project.model_copy(update={'updated_at': now_iso()})
    storage.set_item(project_key(saved), project_to_json(saved))
    return saved


def clear_project(storage: SlotStorage, system_id: str, direction: str, message_id: str) -> None:
    storage.remove_item(storage_key(system_id, direction, message_id))


# --- JSON project file -----------------------------------------------------


def safe_filename_part(value: str) -> str:
    return _UNSAFE_FILENAME_CHARS.sub('_', value or '')


def export_json_filename(project: Project, today: Optional[date] = None) -> str:
    today = today or date.today()
    parts = [
        'MapForge',
        safe_filename_part(project.system_id),
        project.direction,
        safe_filename_part(project.message_id),
        today.isoformat(),
    ]
    return '_'.join(parts) + '.json'


def export_project_json(project: Project, today: Optional[date] = None) -> Tuple[str, str]:
    return export_json_filename(project, today), project_to_json(project)


def import_project_json(text: str, current: Project) -> Project:
    """Replace the current project's content with a validated JSON project file.

    The slot identity (system, direction, message) of `current` is kept. Raises
    ProjectFormatError / ProjectValidationError and leaves `current` alone on
    failure.
    """
    imported = validate_project(text)
    if (imported.system_id, imported.direction, imported.message_id) != (
        current.system_id, current.direction, current.message_id
    ):
        logger.info(
            "Importing project of %s/%s/%s into %s/%s/%s",
            imported.system_id, imported.direction, imported.message_id,
            current.system_id, current.direction, current.message_id,
        )
    return current.model_copy(update={
        'source_catalog': imported.source_catalog,
        'destination_catalog': imported.destination_catalog,
        'rubric_enabled': imported.rubric_enabled,
        'rounds': imported.rounds,
        'active_round_id': imported.active_round_id,
        'meta': imported.meta,
    })


# --- spreadsheet import ----------------------------------------------------


@dataclass(frozen=True)
class ImportSummary:
    sheet_name: str
    round_id: str
    row_count: int

    def message(self) -> str:
        return f"Import OK: {self.sheet_name} ({self.row_count} rows) -> {self.round_id}"


def apply_imported_sheet(
    project: Project,
    sheets: List[ImportedSheet],
    sheet_name: Optional[str] = None,
    round_id: Optional[str] = None,
) -> Tuple[Project, ImportSummary]:
    """Replace the rows of one round with one decoded sheet.

    Defaults to the first importable sheet and the active round.
    """
    if not sheets:
        raise ValueError("No importable sheets.")
    if sheet_name is None:
        sheet = sheets[0]
    else:
        sheet = next((s for s in sheets if s.sheet_name == sheet_name), None)
        if sheet is None:
            raise ValueError(f"Sheet not found: {sheet_name}")
    target = round_id or project.active_round_id
    find_round(project, target)

    updated = replace_round_rows(project, target, sheet.rows)
    summary = ImportSummary(sheet_name=sheet.sheet_name, round_id=target, row_count=len(sheet.rows))
    logger.info("%s", summary.message())
    return updated, summary


def apply_sheet_assignments(
    project: Project,
    sheets: List[ImportedSheet],
    assignments: Dict[str, str],
) -> Tuple[Project, List[ImportSummary]]:
    """Apply several decoded sheets, each to the round the user picked for it."""
    for round_id in assignments.values():
        if not any(r.id == round_id for r in project.rounds):
            raise RoundNotFoundError(round_id)
    summaries: List[ImportSummary] = []
    for sheet_name, round_id in assignments.items():
        project, summary = apply_imported_sheet(project, sheets, sheet_name, round_id)
        summaries.append(summary)
    return project, summaries
