"""Merge field information into a project without discarding user work.

Catalog replacement never touches mapping rows. Rubrics are template blocks of
destination fields: enabling one appends its rows to the active round,
disabling it removes every row tagged with its code from all rounds.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .errors import RubricConflictError, UnknownRubricError
from .paths import canonical_path, canonical_paths
from .project import MappingRow, Project, Round, new_row

logger = logging.getLogger(__name__)

QUALIFIER_SOURCE_PREFIX = 'FIX:'


@dataclass(frozen=True)
class RubricDef:
    code: str
    label: str
    default_destinations: Tuple[str, ...]
    qualifier: Optional[str] = None


def _address_rubric(code: str, label: str) -> RubricDef:
    return RubricDef(
        code=code,
        label=label,
        default_destinations=tuple(f"{code}/{f}" for f in ('Name', 'Strasse', 'PLZ', 'Ort', 'Land')),
        qualifier=f"{code}/Qualifier",
    )


# Inbound address areas.
RUBRICS: Dict[str, RubricDef] = {
    r.code: r
    for r in (
        _address_rubric('CZ', 'Auftraggeber'),
        _address_rubric('CN', 'Empfänger'),
        RubricDef(code='XE', label='EDI Adresse', default_destinations=('XE/EDI-Adresse',), qualifier='XE/Qualifier'),
        _address_rubric('SU', 'Absender'),
        _address_rubric('IV', 'Rechnungsempfänger'),
        _address_rubric('PU', 'Abholadresse'),
    )
}


def get_rubric(code: str) -> RubricDef:
    try:
        return RUBRICS[code]
    except KeyError:
        raise UnknownRubricError(code) from None


def parse_catalog_text(text: Optional[str]) -> List[str]:
    """Manual catalog entry: one path per line, blank lines ignored."""
    if not text:
        return []
    return [line.strip() for line in text.splitlines() if line.strip()]


def set_catalog(project: Project, side: str, paths: Iterable[str]) -> Project:
    if side not in ('source', 'destination'):
        raise ValueError(f"Unknown catalog side: {side}")
    catalog = canonical_paths(paths)
    field_name = 'source_catalog' if side == 'source' else 'destination_catalog'
    logger.info("Catalog %s of %s replaced with %d paths", side, project.message_id, len(catalog))
    return project.model_copy(update={field_name: list(catalog)})


def destination_candidates(project: Project, fixed_fields: Iterable[str]) -> List[str]:
    """Destination fields valid for the project's interface."""
    if project.direction == 'inbound':
        return canonical_paths(fixed_fields)
    return canonical_paths(project.destination_catalog)


def rubric_rows(round_: Round, code: str) -> List[MappingRow]:
    return [r for r in round_.rows if r.rubric == code]


def ungrouped_rows(round_: Round) -> List[MappingRow]:
    return [r for r in round_.rows if not r.rubric]


def _rubric_template_rows(rubric: RubricDef, existing: List[MappingRow], candidates: Iterable[str]) -> List[MappingRow]:
    available = set(canonical_paths(candidates))
    used = {canonical_path(r.destination) for r in existing}
    added: List[MappingRow] = []

    if rubric.qualifier:
        qualifier = canonical_path(rubric.qualifier)
        if qualifier in available and qualifier not in used:
            added.append(
                new_row(
                    source=f"{QUALIFIER_SOURCE_PREFIX}{rubric.code}",
                    destination=qualifier,
                    status='done',
                    rubric=rubric.code,
                )
            )
            used.add(qualifier)

    for dest in rubric.default_destinations:
        dest = canonical_path(dest)
        if dest not in available or dest in used:
            continue
        added.append(new_row(destination=dest, rubric=rubric.code))
        used.add(dest)
    return added


def enable_rubric(project: Project, code: str, candidate_destinations: Iterable[str]) -> Project:
    """Enable a rubric and append its template rows to the active round.

    Raises RubricConflictError when the rubric is already enabled; the project
    is left as it was.
    """
    rubric = get_rubric(code)
    if code in project.rubric_enabled:
        raise RubricConflictError(code)

    candidates = list(candidate_destinations or [])
    rounds: List[Round] = []
    added_count = 0
    for round_ in project.rounds:
        if round_.id != project.active_round_id:
            rounds.append(round_)
            continue
        added = _rubric_template_rows(rubric, rubric_rows(round_, code), candidates)
        added_count = len(added)
        rounds.append(round_.model_copy(update={'rows': [*round_.rows, *added]}))

    logger.info("Rubric %s enabled, %d template rows added to %s", code, added_count, project.active_round_id)
    return project.model_copy(update={
        'rubric_enabled': [*project.rubric_enabled, code],
        'rounds': rounds,
    })


def disable_rubric(project: Project, code: str) -> Project:
    """Disable a rubric and delete every row tagged with it, in every round.

    Rows the user edited inside the rubric block are deleted too.
    """
    rounds = [
        round_.model_copy(update={'rows': [r for r in round_.rows if r.rubric != code]})
        for round_ in project.rounds
    ]
    removed = sum(len(a.rows) - len(b.rows) for a, b in zip(project.rounds, rounds))
    logger.info("Rubric %s disabled, %d rows removed", code, removed)
    return project.model_copy(update={
        'rubric_enabled': [c for c in project.rubric_enabled if c != code],
        'rounds': rounds,
    })
