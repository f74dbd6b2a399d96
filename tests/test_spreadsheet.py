from io import BytesIO

import pytest
from openpyxl import load_workbook

from mapforge.errors import SpreadsheetError
from mapforge.flattening import analysis_payload_from_project, flatten_analysis_round, flatten_round_for_export
from mapforge.project import MappingRow, new_row
from mapforge.rounds import add_round, replace_round_rows
from mapforge.spreadsheet import (
    META_SHEET,
    decode_rows,
    decode_workbook,
    encode_analysis,
    encode_project,
    locate_columns,
    map_status,
    read_grids,
)


@pytest.fixture
def two_round_project(inbound_project):
    """R01 holds one finished row, R02 is empty."""
    row = MappingRow(id="r1", source="A", destination="B", status="done", comment="x")
    project = replace_round_rows(inbound_project, "R01", [row])
    return add_round(project)


def test_round_trip_keeps_the_single_row(two_round_project):
    sheets = decode_workbook(encode_project(two_round_project))
    assert len(sheets) == 1
    assert sheets[0].sheet_name == "R01"
    [row] = sheets[0].rows
    assert (row.source, row.destination, row.status, row.comment) == ("A", "B", "done", "x")


def test_mapping_workbook_layout(two_round_project):
    wb = load_workbook(BytesIO(encode_project(two_round_project)))
    assert wb.sheetnames == [META_SHEET, "R01", "R02"]
    ws = wb["R01"]
    assert [c.value for c in ws[1]] == ["Source", "Destination", "Status", "Comment"]
    assert ws.freeze_panes == "A2"
    assert ws.auto_filter.ref == "A1:D1"
    assert wb[META_SHEET]["B4"].value == "translogica"


def test_blank_rows_are_not_exported(inbound_project):
    rows = [
        MappingRow(id="blank", source=" ", destination="", status="open", comment=""),
        MappingRow(id="note", source="", destination="", status="open", comment="ask partner"),
    ]
    project = replace_round_rows(inbound_project, "R01", rows)
    assert flatten_round_for_export(project.rounds[0]) == [["", "", "open", "ask partner"]]

    grids = dict(read_grids(encode_project(project)))
    assert len(grids["R01"]) == 2


@pytest.mark.parametrize(
    "text, expected",
    [
        ("done", "done"),
        (" Fertig ", "done"),
        ("Geklärt", "clarified"),
        ("geklaert", "clarified"),
        ("In Review", "in_review"),
        ("review", "in_review"),
        ("", "open"),
        ("whatever", "open"),
        (None, "open"),
    ],
)
def test_status_synonyms(text, expected):
    assert map_status(text) == expected


def test_header_synonyms_are_case_insensitive():
    assert locate_columns(["QUELLE", "Ziel", " status ", "Note"]) == {
        "source": 0,
        "destination": 1,
        "status": 2,
        "comment": 3,
    }


def test_decode_rows_keeps_status_only_rows():
    grid = [
        ["Quelle", "Ziel", "Status", "Kommentar"],
        ["a", "b", "Fertig", ""],
        ["", "", "Geklärt", ""],
        ["", "", "", ""],
        ["c", "", "weird", ""],
    ]
    rows = decode_rows(grid)
    assert [(r.source, r.status) for r in rows] == [("a", "done"), ("", "clarified"), ("c", "open")]
    assert len({r.id for r in rows}) == 3


def test_missing_columns_yield_empty_strings():
    rows = decode_rows([["src", "Note"], ["a", "n"]])
    assert len(rows) == 1
    assert (rows[0].source, rows[0].destination, rows[0].comment, rows[0].status) == ("a", "", "n", "open")


def test_unreadable_workbook_raises():
    with pytest.raises(SpreadsheetError):
        decode_workbook(b"definitely not a zip")


def test_analysis_workbook_layout():
    payload = {
        "meta": {"projectCase": "DESADV onboarding", "owner": "EDI Team"},
        "rounds": [
            {
                "roundId": "R01",
                "title": "Erste",
                "rows": [{"destinationField": "D", "sourceField": "S"}, {}],
            }
        ],
    }
    wb = load_workbook(BytesIO(encode_analysis(payload)))
    assert wb.sheetnames == [META_SHEET, "Runde_R01"]

    meta = wb[META_SHEET]
    assert meta["A4"].value == "Projekt/Case"
    assert meta["B4"].value == "DESADV onboarding"
    assert meta["A1"].fill.fgColor.rgb == "FF1F4E79"

    ws = wb["Runde_R01"]
    assert ws["A1"].value == "Analyse-Runde – R01 – Erste"
    assert ws["A3"].value == "Runden-ID"
    assert [c.value for c in ws[9]] == [
        "Nr.",
        "Destination Feld",
        "EDI Team Kommentar",
        "Source Feld",
        "TMS-IT Kommentar",
        "Allgemeine Kommentare",
    ]
    assert (ws["A10"].value, ws["B10"].value, ws["D10"].value) == (1, "D", "S")
    assert ws["A11"].value is None
    assert ws.freeze_panes == "A10"
    assert ws.auto_filter.ref == "A9:F9"


def test_analysis_workbook_is_not_importable(two_round_project):
    data = encode_analysis(analysis_payload_from_project(two_round_project))
    assert decode_workbook(data) == []


def test_analysis_payload_numbers_non_empty_rows(inbound_project):
    rows = [new_row(), new_row(source="S1"), new_row(destination="D2", comment="c")]
    payload = analysis_payload_from_project(replace_round_rows(inbound_project, "R01", rows))
    [round_] = payload.rounds
    assert flatten_analysis_round(round_) == [
        [1, "", "", "S1", "", ""],
        [2, "D2", "", "", "", "c"],
    ]
    assert payload.meta.last_update == inbound_project.updated_at[:10]


def test_control_characters_are_stripped_on_export(inbound_project):
    """Test that pasted control characters do not break the workbook."""
    row = MappingRow(id="r1", source="A\x0b", destination="B", status="open", comment="line1\x0bline2")
    project = replace_round_rows(inbound_project, "R01", [row])
    [sheet] = decode_workbook(encode_project(project))
    assert (sheet.rows[0].source, sheet.rows[0].comment) == ("A", "line1line2")

    payload = {"rounds": [{"roundId": "R01", "title": "x\x01", "rows": [{"generalComment": "a\x1fb"}]}]}
    ws = load_workbook(BytesIO(encode_analysis(payload)))["Runde_R01"]
    assert ws["A1"].value == "Analyse-Runde – R01 – x"
    assert ws["F10"].value == "ab"
