"""xlsx encode/decode for mapping projects.

Workbooks are plain: no formulas, no merged cells and no data
validation, so they survive a round trip through other spreadsheet tools.
Header text and column order are what the decoder relies on; widths, fills and
borders are cosmetic.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from io import BytesIO
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union
from zipfile import BadZipFile

from openpyxl import Workbook, load_workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from .errors import SpreadsheetError
from .flattening import (
    ANALYSIS_COLUMNS,
    MAPPING_COLUMNS,
    AnalysisPayload,
    flatten_analysis_round,
    flatten_round_for_export,
)
from .project import MappingRow, Project, new_row

logger = logging.getLogger(__name__)

META_SHEET = '01_Allgemein'
BANNER_TITLE = 'MapForge – Mapping Analyse (Source ↔ Destination)'

TITLE_FILL = PatternFill(fill_type='solid', fgColor='FF1F4E79')
HEADER_FILL = PatternFill(fill_type='solid', fgColor='FF305496')
INPUT_FILL = PatternFill(fill_type='solid', fgColor='FFD9E1F2')
_THIN = Side(style='thin', color='FF9E9E9E')
THIN_BORDER = Border(top=_THIN, left=_THIN, bottom=_THIN, right=_THIN)
HEADER_FONT = Font(bold=True, color='FFFFFFFF')

MAPPING_WIDTHS = (40, 40, 14, 50)
ANALYSIS_WIDTHS = (6, 30, 26, 30, 26, 34)

HEADER_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    'source': ('source', 'src', 'quelle'),
    'destination': ('destination', 'dest', 'ziel'),
    'status': ('status',),
    'comment': ('comment', 'kommentar', 'note'),
}

STATUS_SYNONYMS: Dict[str, Tuple[str, ...]] = {
    'done': ('done', 'fertig'),
    'clarified': ('clarified', 'geklärt', 'geklaert'),
    'in_review': ('in_review', 'review', 'in review'),
}

_INVALID_SHEET_CHARS = re.compile(r'[\[\]:*?/\\]')


@dataclass
class ImportedSheet:
    sheet_name: str
    rows: List[MappingRow] = field(default_factory=list)


# --- encode ----------------------------------------------------------------


def _cell_value(value: Any) -> Any:
    # worksheets reject control characters other than tab, LF and CR
    if isinstance(value, str):
        return ILLEGAL_CHARACTERS_RE.sub('', value)
    return value


def _sheet_title(name: str) -> str:
    cleaned = _INVALID_SHEET_CHARS.sub('_', _cell_value(name or '')).strip("'")
    return (cleaned or 'Sheet')[:31]


def _style_header_row(ws, row_idx: int, n_cols: int):
    for col in range(1, n_cols + 1):
        cell = ws.cell(row=row_idx, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = THIN_BORDER
        cell.alignment = Alignment(vertical='center', horizontal='center', wrap_text=True)


def _style_body_row(ws, row_idx: int, n_cols: int, centered_first: bool = False):
    for col in range(1, n_cols + 1):
        cell = ws.cell(row=row_idx, column=col)
        cell.border = THIN_BORDER
        horizontal = 'center' if centered_first and col == 1 else 'left'
        cell.alignment = Alignment(vertical='top', horizontal=horizontal, wrap_text=True)


def _set_widths(ws, widths: Sequence[int]):
    for idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width


def _banner(ws, text: str, size: int):
    cell = ws.cell(row=1, column=1, value=_cell_value(text))
    cell.font = Font(bold=True, size=size, color='FFFFFFFF')
    cell.fill = TITLE_FILL


def _write_key_values(ws, start_row: int, pairs: Sequence[Tuple[str, Any]]) -> int:
    row_idx = start_row
    for label, value in pairs:
        key_cell = ws.cell(row=row_idx, column=1, value=label)
        key_cell.font = Font(bold=True)
        value_cell = ws.cell(row=row_idx, column=2, value='' if value is None else _cell_value(value))
        value_cell.fill = INPUT_FILL
        for cell in (key_cell, value_cell):
            cell.border = THIN_BORDER
            cell.alignment = Alignment(vertical='center', wrap_text=True)
        row_idx += 1
    return row_idx


def _write_meta_sheet(ws, pairs: Sequence[Tuple[str, Any]]):
    ws.title = META_SHEET
    ws.sheet_view.showGridLines = False
    _set_widths(ws, (30, 55))
    _banner(ws, BANNER_TITLE, 16)
    ws.cell(row=3, column=1, value='Feld')
    ws.cell(row=3, column=2, value='Wert')
    _style_header_row(ws, 3, 2)
    _write_key_values(ws, 4, pairs)


def _write_table(ws, header_row: int, columns: Sequence[str], rows: List[list], centered_first: bool = False):
    for col, title in enumerate(columns, start=1):
        ws.cell(row=header_row, column=col, value=title)
    _style_header_row(ws, header_row, len(columns))
    for offset, values in enumerate(rows, start=1):
        for col, value in enumerate(values, start=1):
            ws.cell(row=header_row + offset, column=col, value=_cell_value(value))
        _style_body_row(ws, header_row + offset, len(columns), centered_first)
    last_col = get_column_letter(len(columns))
    ws.auto_filter.ref = f"A{header_row}:{last_col}{header_row}"
    ws.freeze_panes = f"A{header_row + 1}"


def _to_bytes(wb: Workbook) -> bytes:
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def encode_project(project: Project) -> bytes:
    """Mapping workbook: metadata sheet plus one four-column sheet per round."""
    wb = Workbook()
    wb.properties.creator = 'MapForge'
    _write_meta_sheet(wb.active, [
        ('System', project.system_id),
        ('Richtung', project.direction),
        ('Message', project.message_id),
        ('Aktive Runde', project.active_round_id),
        ('Rubriken', ', '.join(project.rubric_enabled)),
        ('Letztes Update', project.updated_at),
    ])

    for round_ in project.rounds:
        ws = wb.create_sheet(_sheet_title(round_.id))
        _set_widths(ws, MAPPING_WIDTHS)
        _write_table(ws, 1, MAPPING_COLUMNS, flatten_round_for_export(round_))

    logger.info("Encoded mapping workbook for %s with %d rounds", project.message_id, len(project.rounds))
    return _to_bytes(wb)


def encode_analysis(payload: Union[AnalysisPayload, Dict[str, Any]]) -> bytes:
    """Analysis workbook: metadata sheet plus one six-column `Runde_<id>` sheet per round."""
    if not isinstance(payload, AnalysisPayload):
        payload = AnalysisPayload.model_validate(payload)
    meta = payload.meta

    wb = Workbook()
    wb.properties.creator = 'MapForge'
    _write_meta_sheet(wb.active, [
        ('Projekt/Case', meta.project_case),
        ('Source Partner/System', meta.source_system),
        ('Source Format', meta.source_format),
        ('Source Spezifikation/Version', meta.source_version),
        ('Destination Partner/System', meta.destination_system),
        ('Destination Format', meta.destination_format),
        ('Destination Spezifikation/Version', meta.destination_version),
        ('Analyse Owner', meta.owner),
        ('Letztes Update', meta.last_update),
    ])

    for round_ in payload.rounds:
        ws = wb.create_sheet(_sheet_title(f"Runde_{round_.round_id}"))
        ws.sheet_view.showGridLines = False
        _set_widths(ws, ANALYSIS_WIDTHS)
        title = f"Analyse-Runde – {round_.round_id}"
        if round_.title:
            title += f" – {round_.title}"
        _banner(ws, title, 14)
        next_row = _write_key_values(ws, 3, [
            ('Runden-ID', round_.round_id),
            ('Datum', round_.date),
            ('Status', round_.status),
            ('Input Datei/Artefakt', round_.input_artifact),
            ('Scope/Annahmen', round_.scope),
        ])
        _write_table(ws, next_row + 1, ANALYSIS_COLUMNS, flatten_analysis_round(round_), centered_first=True)

    logger.info("Encoded analysis workbook with %d rounds", len(payload.rounds))
    return _to_bytes(wb)


# --- decode ----------------------------------------------------------------


def _cell_text(value: Any) -> str:
    return '' if value is None else str(value)


def _normalize_header(value: Any) -> str:
    return _cell_text(value).strip().lower()


def map_status(text: Optional[str]) -> str:
    s = (text or '').strip().lower()
    for status, synonyms in STATUS_SYNONYMS.items():
        if s in synonyms:
            return status
    return 'open'


def locate_columns(header: Sequence[Any]) -> Dict[str, int]:
    """Index of each logical column in a header row, -1 when absent."""
    normalized = [_normalize_header(h) for h in header]
    located = {}
    for name, synonyms in HEADER_SYNONYMS.items():
        located[name] = next((i for i, h in enumerate(normalized) if h in synonyms), -1)
    return located


def decode_rows(grid: List[List[str]]) -> List[MappingRow]:
    """Mapping rows of one sheet grid; the first row is the header."""
    if not grid:
        return []
    columns = locate_columns(grid[0])

    def pick(row: List[str], name: str) -> str:
        idx = columns[name]
        if idx < 0 or idx >= len(row):
            return ''
        return row[idx]

    rows: List[MappingRow] = []
    for raw in grid[1:]:
        source = pick(raw, 'source')
        destination = pick(raw, 'destination')
        comment = pick(raw, 'comment')
        status_raw = pick(raw, 'status')
        if not (source or destination or comment or status_raw):
            continue
        rows.append(new_row(source=source, destination=destination, status=map_status(status_raw), comment=comment))
    return rows


def read_grids(data: bytes) -> List[Tuple[str, List[List[str]]]]:
    """(sheet name, string grid) for every worksheet of an xlsx file."""
    try:
        wb = load_workbook(BytesIO(data), data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, ValueError, OSError) as exc:
        raise SpreadsheetError(f"Could not read workbook: {exc}") from exc
    try:
        return [
            (ws.title, [[_cell_text(v) for v in row] for row in ws.iter_rows(values_only=True)])
            for ws in wb.worksheets
        ]
    finally:
        wb.close()


def decode_workbook(data: bytes) -> List[ImportedSheet]:
    """Decode every sheet that yields at least one mapping row."""
    result: List[ImportedSheet] = []
    for name, grid in read_grids(data):
        rows = decode_rows(grid)
        if rows:
            result.append(ImportedSheet(sheet_name=name, rows=rows))
    logger.info("Decoded workbook: %d importable sheets", len(result))
    return result
