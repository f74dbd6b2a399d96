from __future__ import annotations

import logging
import os
import tempfile
from typing import Any, List, Optional

import gradio as gr

from .errors import MapForgeError
from .flattening import analysis_payload_from_project
from .io_utils import read_bytes_content, read_text_content, upload_name
from .paths import canonical_row_text
from .persistence import (
    apply_imported_sheet,
    export_project_json,
    import_project_json,
    load_or_create,
    safe_filename_part,
    save_project,
)
from .project import STATUS_LABELS, STATUSES, MappingRow, Project, editable_side, new_row_id
from .reconcile import RUBRICS, disable_rubric, destination_candidates, enable_rubric
from .rounds import active_round, add_round, add_row, delete_row, remove_round, replace_round_rows, switch_round
from .spreadsheet import decode_workbook, encode_analysis, encode_project, map_status

logger = logging.getLogger(__name__)

GRID_HEADERS = ["ID", "Rubric", "Source", "Destination", "Status", "Comment"]
NO_PROJECT = "Open a project first."


def project_to_grid(project: Optional[Project]) -> List[List[str]]:
    if project is None:
        return []
    return [
        [row.id, row.rubric or "", row.source, row.destination, row.status, row.comment]
        for row in active_round(project).rows
    ]


def _table_records(table) -> List[list]:
    if table is None:
        return []
    try:
        return table.values.tolist()
    except AttributeError:
        return [list(r) for r in table]


def _cell(record: list, idx: int) -> str:
    if idx >= len(record) or record[idx] is None:
        return ""
    value = record[idx]
    # pandas hands back NaN for cleared cells
    if isinstance(value, float) and value != value:
        return ""
    return str(value)


def grid_to_rows(table) -> List[MappingRow]:
    """Mapping rows from the editable grid; missing or repeated ids get fresh ones."""
    rows: List[MappingRow] = []
    seen = set()
    for record in _table_records(table):
        row_id, rubric, source, destination, status, comment = (_cell(record, i) for i in range(6))
        if not any((row_id, source, destination, comment)):
            continue
        rubric = rubric.strip() or None
        if not row_id or row_id in seen:
            row_id = new_row_id(rubric.lower() if rubric else "row")
        seen.add(row_id)
        if status not in STATUSES:
            status = map_status(status)
        rows.append(
            MappingRow(
                id=row_id,
                source=canonical_row_text(source),
                destination=canonical_row_text(destination),
                status=status,
                comment=comment,
                rubric=rubric,
            )
        )
    return rows


def apply_grid(project: Project, table) -> Project:
    if table is None:
        return project
    return replace_round_rows(project, project.active_round_id, grid_to_rows(table))


def catalog_text(project: Optional[Project]) -> str:
    if project is None:
        return ""
    side = editable_side(project.direction)
    catalog = project.source_catalog if side == "source" else project.destination_catalog
    return "\n".join(catalog)


def project_view(project: Optional[Project], message: str):
    """(project, grid, round selector, rubric selector, catalog text, status) outputs."""
    if project is None:
        return None, [], gr.update(choices=[], value=None), gr.update(value=[]), "", message
    rounds_update = gr.update(choices=[r.id for r in project.rounds], value=project.active_round_id)
    rubric_update = gr.update(
        choices=[(f"{r.code} - {r.label}", r.code) for r in RUBRICS.values()],
        value=list(project.rubric_enabled),
        interactive=project.direction == "inbound",
    )
    return project, project_to_grid(project), rounds_update, rubric_update, catalog_text(project), message


def _commit(storage, project: Project) -> Project:
    return save_project(storage, project)


def open_project_handler(system_id, direction, message_id, storage):
    system_id = (system_id or "").strip()
    message_id = (message_id or "").strip()
    if not system_id or not message_id:
        return project_view(None, "System and message are required.")
    try:
        project = load_or_create(storage, system_id, direction, message_id)
    except ValueError as e:
        return project_view(None, f"Could not open project: {str(e)}")
    total = sum(len(r.rows) for r in project.rounds)
    return project_view(project, f"Loaded {system_id} / {direction} / {message_id}: {len(project.rounds)} rounds, {total} rows.")


def save_grid_handler(project, table, storage):
    if project is None:
        return project_view(None, NO_PROJECT)
    project = _commit(storage, apply_grid(project, table))
    return project_view(project, f"Saved {len(active_round(project).rows)} rows in {project.active_round_id}.")


def add_row_handler(project, table, storage):
    if project is None:
        return project_view(None, NO_PROJECT)
    project = _commit(storage, add_row(apply_grid(project, table)))
    return project_view(project, "Row added.")


def delete_row_handler(project, table, row_id, storage):
    if project is None:
        return project_view(None, NO_PROJECT)
    current = apply_grid(project, table)
    try:
        updated = delete_row(current, (row_id or "").strip())
    except MapForgeError as e:
        return project_view(current, str(e))
    return project_view(_commit(storage, updated), "Row deleted.")


def add_round_handler(project, table, storage):
    if project is None:
        return project_view(None, NO_PROJECT)
    project = _commit(storage, add_round(apply_grid(project, table)))
    return project_view(project, f"Round {project.active_round_id} added.")


def switch_round_handler(project, table, round_id, storage):
    if project is None:
        return project_view(None, NO_PROJECT)
    if not round_id or round_id == project.active_round_id:
        return project_view(project, "")
    current = apply_grid(project, table)
    try:
        updated = switch_round(current, round_id)
    except MapForgeError as e:
        return project_view(current, str(e))
    return project_view(_commit(storage, updated), f"Switched to {round_id}.")


def remove_round_handler(project, round_id, storage):
    if project is None:
        return project_view(None, NO_PROJECT)
    if len(project.rounds) <= 1:
        return project_view(project, "The last round cannot be removed.")
    target = round_id or project.active_round_id
    try:
        updated = remove_round(project, target)
    except MapForgeError as e:
        return project_view(project, str(e))
    return project_view(_commit(storage, updated), f"Round {target} removed.")


def toggle_rubrics_handler(project, table, selected_codes, fixed_fields, storage):
    """Enable newly selected rubrics and disable deselected ones.

    Disabling deletes the rubric's rows from every round.
    """
    if project is None:
        return project_view(None, NO_PROJECT)
    if project.direction != "inbound":
        return project_view(project, "Rubrics apply to inbound projects only.")

    selected = list(selected_codes or [])
    current = apply_grid(project, table)
    messages = []
    try:
        for code in [c for c in current.rubric_enabled if c not in selected]:
            current = disable_rubric(current, code)
            messages.append(f"{code} disabled, its rows were removed.")
        candidates = destination_candidates(current, fixed_fields or [])
        for code in [c for c in selected if c not in current.rubric_enabled]:
            before = len(active_round(current).rows)
            current = enable_rubric(current, code, candidates)
            added = len(active_round(current).rows) - before
            messages.append(f"{code} enabled, {added} rows added.")
    except MapForgeError as e:
        logger.warning("Rubric toggle rejected: %s", e)
        return project_view(project, str(e))
    return project_view(_commit(storage, current), " ".join(messages))


# --- JSON / spreadsheet import & export -------------------------------------------


def _write_temp(file_name: str, content: Any) -> str:
    path = os.path.join(tempfile.gettempdir(), file_name)
    mode = "wb" if isinstance(content, bytes) else "w"
    kwargs = {} if isinstance(content, bytes) else {"encoding": "utf-8"}
    with open(path, mode, **kwargs) as f:
        f.write(content)
    return path


def export_json_handler(project):
    if project is None:
        return None, NO_PROJECT
    file_name, text = export_project_json(project)
    try:
        path = _write_temp(file_name, text)
    except OSError as e:
        return None, f"Error during export: {str(e)}"
    return path, f"Export successful! Saved to {path}"


def import_json_handler(project, file_obj, storage):
    if project is None:
        return project_view(None, NO_PROJECT)
    if file_obj is None:
        return project_view(project, "No file uploaded.")
    try:
        updated = import_project_json(read_text_content(file_obj), project)
    except (MapForgeError, UnicodeDecodeError, OSError) as e:
        logger.warning("JSON import of %s failed: %s", upload_name(file_obj), e)
        return project_view(project, f"Import failed: the file is not a valid project document ({str(e)}).")
    updated = _commit(storage, updated)
    return project_view(updated, f"Imported {upload_name(file_obj)}: {len(updated.rounds)} rounds.")


def _xlsx_name(project: Project, kind: str) -> str:
    return f"MapForge_{kind}_{safe_filename_part(project.system_id)}_{safe_filename_part(project.message_id)}.xlsx"


def export_xlsx_handler(project):
    if project is None:
        return None, NO_PROJECT
    try:
        path = _write_temp(_xlsx_name(project, "Mapping"), encode_project(project))
    except OSError as e:
        return None, f"Error during export: {str(e)}"
    return path, f"Export successful! Saved to {path}"


def export_analysis_handler(project):
    if project is None:
        return None, NO_PROJECT
    try:
        path = _write_temp(_xlsx_name(project, "Analyse"), encode_analysis(analysis_payload_from_project(project)))
    except OSError as e:
        return None, f"Error during export: {str(e)}"
    return path, f"Export successful! Saved to {path}"


def import_xlsx_handler(project, file_obj, storage):
    """Decode a workbook and apply its first importable sheet to the active round.

    Returns the project view plus the decoded sheets and a sheet selector so the
    user can apply another sheet.
    """
    if project is None:
        return (*project_view(None, NO_PROJECT), [], gr.update(choices=[], value=None))
    if file_obj is None:
        return (*project_view(project, "No file uploaded."), [], gr.update(choices=[], value=None))
    try:
        sheets = decode_workbook(read_bytes_content(file_obj))
    except (MapForgeError, OSError) as e:
        logger.warning("Spreadsheet import of %s failed: %s", upload_name(file_obj), e)
        return (*project_view(project, f"Excel import failed: {str(e)}"), [], gr.update(choices=[], value=None))

    if not sheets:
        message = "No matching data found in the workbook (header: Source/Destination/Status/Comment)."
        return (*project_view(project, message), [], gr.update(choices=[], value=None))

    updated, summary = apply_imported_sheet(project, sheets)
    updated = _commit(storage, updated)
    message = summary.message()
    if len(sheets) > 1:
        message += f" {len(sheets) - 1} more sheets available, pick one to apply it to the active round."
    names = [s.sheet_name for s in sheets]
    return (*project_view(updated, message), sheets, gr.update(choices=names, value=names[0]))


def apply_sheet_handler(project, sheets, sheet_name, storage):
    if project is None:
        return project_view(None, NO_PROJECT)
    if not sheets:
        return project_view(project, "Import a workbook first.")
    try:
        updated, summary = apply_imported_sheet(project, sheets, sheet_name)
    except (MapForgeError, ValueError) as e:
        return project_view(project, str(e))
    return project_view(_commit(storage, updated), summary.message())


def status_legend() -> str:
    return ", ".join(f"{code} = {label}" for code, label in STATUS_LABELS.items())
