from __future__ import annotations

from typing import Iterable, List

from pydantic import BaseModel, ConfigDict, Field

from .project import MappingRow, Project, ProjectMeta, Round

MAPPING_COLUMNS = ['Source', 'Destination', 'Status', 'Comment']
ANALYSIS_COLUMNS = [
    'Nr.',
    'Destination Feld',
    'EDI Team Kommentar',
    'Source Feld',
    'TMS-IT Kommentar',
    'Allgemeine Kommentare',
]


class _Payload(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)


class AnalysisRow(_Payload):
    """One analysis table row; the `Nr.` column is numbered at export time."""

    destination_field: str = Field(default='', alias='destinationField')
    edi_comment: str = Field(default='', alias='ediComment')
    source_field: str = Field(default='', alias='sourceField')
    tms_it_comment: str = Field(default='', alias='tmsItComment')
    general_comment: str = Field(default='', alias='generalComment')


class AnalysisRound(_Payload):
    round_id: str = Field(alias='roundId')
    title: str = ''
    date: str = ''
    status: str = ''
    input_artifact: str = Field(default='', alias='inputArtifact')
    scope: str = ''
    rows: List[AnalysisRow] = Field(default_factory=list)


class AnalysisPayload(_Payload):
    """Export shape of the analysis workbook: header metadata plus named rounds."""

    meta: ProjectMeta = Field(default_factory=ProjectMeta)
    rounds: List[AnalysisRound] = Field(default_factory=list)


def _has_text(*values) -> bool:
    return any(str(v or '').strip() for v in values)


def non_empty_rows(rows: Iterable[MappingRow]) -> List[MappingRow]:
    """Rows with at least one non-blank free-text field; status does not count."""
    return [r for r in rows if _has_text(r.source, r.destination, r.comment)]


def non_empty_analysis_rows(rows: Iterable[AnalysisRow]) -> List[AnalysisRow]:
    return [
        r for r in rows
        if _has_text(r.destination_field, r.edi_comment, r.source_field, r.tms_it_comment, r.general_comment)
    ]


def flatten_round_for_export(round_: Round) -> List[List[str]]:
    """Cell values of the four-column mapping table, header excluded."""
    return [
        [row.source, row.destination, row.status, row.comment]
        for row in non_empty_rows(round_.rows)
    ]


def flatten_analysis_round(round_: AnalysisRound) -> List[list]:
    """Cell values of the six-column analysis table, numbered from 1."""
    return [
        [
            nr,
            row.destination_field,
            row.edi_comment,
            row.source_field,
            row.tms_it_comment,
            row.general_comment,
        ]
        for nr, row in enumerate(non_empty_analysis_rows(round_.rows), start=1)
    ]


def analysis_payload_from_project(project: Project) -> AnalysisPayload:
    rounds = []
    for round_ in project.rounds:
        rows = [
            AnalysisRow(
                destination_field=row.destination,
                source_field=row.source,
                general_comment=row.comment,
            )
            for row in non_empty_rows(round_.rows)
        ]
        rounds.append(
            AnalysisRound(
                round_id=round_.id,
                title=round_.title,
                date=round_.date,
                status=round_.state,
                input_artifact=round_.input_artifact,
                scope=round_.scope,
                rows=rows,
            )
        )
    meta = project.meta.model_copy()
    if not meta.last_update:
        meta.last_update = project.updated_at[:10]
    return AnalysisPayload(meta=meta, rounds=rounds)
