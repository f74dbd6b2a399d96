"""Versioned project document: one mapping project per (system, direction, message).

The document is persisted verbatim as JSON with camelCase keys. Only the
current version is accepted; older or newer documents are rejected rather than
migrated.
"""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Literal, Optional, Union
from urllib.parse import quote
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ProjectFormatError, ProjectValidationError

PROJECT_VERSION = 3
STORAGE_NAMESPACE = 'mapforge'
FIRST_ROUND_ID = 'R01'

MappingStatus = Literal['open', 'in_review', 'clarified', 'done']
Direction = Literal['inbound', 'outbound']

STATUSES = ('open', 'in_review', 'clarified', 'done')
DIRECTIONS = ('inbound', 'outbound')

STATUS_LABELS = {
    'open': 'Open',
    'in_review': 'In Review',
    'clarified': 'Clarified',
    'done': 'Done',
}


class _Document(BaseModel):
    model_config = ConfigDict(extra='ignore', populate_by_name=True)


class MappingRow(_Document):
    id: str = Field(min_length=1)
    source: str
    destination: str
    status: MappingStatus
    comment: str = ''
    rubric: Optional[str] = None


class Round(_Document):
    id: str = Field(min_length=1)
    rows: List[MappingRow]
    title: str = ''
    date: str = ''
    state: str = Field(default='', alias='roundStatus')
    input_artifact: str = Field(default='', alias='inputArtifact')
    scope: str = ''


class ProjectMeta(_Document):
    """Free-text analysis header printed on the spreadsheet's first sheet."""

    project_case: str = Field(default='', alias='projectCase')
    source_system: str = Field(default='', alias='sourceSystem')
    source_format: str = Field(default='', alias='sourceFormat')
    source_version: str = Field(default='', alias='sourceVersion')
    destination_system: str = Field(default='', alias='destinationSystem')
    destination_format: str = Field(default='', alias='destinationFormat')
    destination_version: str = Field(default='', alias='destinationVersion')
    owner: str = ''
    last_update: str = Field(default='', alias='lastUpdate')


class Project(_Document):
    version: int
    updated_at: str = Field(alias='updatedAt')
    system_id: str = Field(alias='systemId', min_length=1)
    direction: Direction
    message_id: str = Field(alias='messageId', min_length=1)
    source_catalog: List[str] = Field(alias='sourceCatalog')
    destination_catalog: List[str] = Field(alias='destinationCatalog')
    rubric_enabled: List[str] = Field(default_factory=list, alias='rubricEnabled')
    rounds: List[Round] = Field(min_length=1)
    active_round_id: str = Field(alias='activeRoundId', min_length=1)
    meta: ProjectMeta = Field(default_factory=ProjectMeta)

    @field_validator('version', mode='before')
    @classmethod
    def _exact_version(cls, value: Any) -> Any:
        if isinstance(value, bool) or value != PROJECT_VERSION:
            raise ValueError(f"unsupported document version {value!r}, expected {PROJECT_VERSION}")
        return value

    @model_validator(mode='after')
    def _check_references(self) -> 'Project':
        # ProjectValidationError is not a ValueError, so pydantic lets it propagate.
        seen_rounds = set()
        for r_idx, round_ in enumerate(self.rounds):
            if round_.id in seen_rounds:
                raise ProjectValidationError(f"duplicate round id {round_.id!r}", f"rounds.{r_idx}.id")
            seen_rounds.add(round_.id)
            seen_rows = set()
            for idx, row in enumerate(round_.rows):
                if row.id in seen_rows:
                    raise ProjectValidationError(
                        f"duplicate row id {row.id!r}", f"rounds.{r_idx}.rows.{idx}.id"
                    )
                seen_rows.add(row.id)
        if self.active_round_id not in seen_rounds:
            raise ProjectValidationError(
                f"unknown round {self.active_round_id!r}", 'activeRoundId'
            )
        return self


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def new_row_id(prefix: str = 'row') -> str:
    return f"{prefix}-{uuid4().hex}"


def new_row(
    source: str = '',
    destination: str = '',
    status: str = 'open',
    comment: str = '',
    rubric: Optional[str] = None,
) -> MappingRow:
    prefix = rubric.lower() if rubric else 'row'
    return MappingRow(
        id=new_row_id(prefix),
        source=source,
        destination=destination,
        status=status,
        comment=comment,
        rubric=rubric,
    )


def fixed_side(direction: str) -> str:
    """The side whose fields come from the internal interface definition."""
    return 'source' if direction == 'outbound' else 'destination'


def editable_side(direction: str) -> str:
    return 'destination' if direction == 'outbound' else 'source'


def storage_key(system_id: str, direction: str, message_id: str) -> str:
    parts = [quote(str(p), safe='') for p in (system_id, direction, message_id)]
    return ':'.join([STORAGE_NAMESPACE, f"v{PROJECT_VERSION}", *parts])


def project_key(project: Project) -> str:
    return storage_key(project.system_id, project.direction, project.message_id)


def make_empty_project(system_id: str, direction: str, message_id: str) -> Project:
    return Project(
        version=PROJECT_VERSION,
        updated_at=now_iso(),
        system_id=system_id,
        direction=direction,
        message_id=message_id,
        source_catalog=[],
        destination_catalog=[],
        rubric_enabled=[],
        rounds=[Round(id=FIRST_ROUND_ID, rows=[])],
        active_round_id=FIRST_ROUND_ID,
    )


def validate_project(raw: Union[str, bytes, Dict[str, Any]]) -> Project:
    """Validate a raw document (dict or JSON text) against the current schema.

    Raises ProjectFormatError for unparseable JSON and ProjectValidationError
    naming the first offending field otherwise.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ProjectFormatError(f"Not a JSON document: {exc}") from exc
    try:
        return Project.model_validate(raw)
    except ValidationError as exc:
        first = exc.errors()[0]
        path = '.'.join(str(p) for p in first['loc'])
        raise ProjectValidationError(first['msg'], path) from exc


def project_to_dict(project: Project) -> Dict[str, Any]:
    return project.model_dump(mode='json', by_alias=True, exclude_none=True)


def project_to_json(project: Project) -> str:
    return json.dumps(project_to_dict(project), indent=2, ensure_ascii=False)
