from __future__ import annotations

from typing import Optional


class MapForgeError(Exception):
    """Base class for every error the core raises back to the UI layer."""


class ExtractionError(MapForgeError):
    """An imported schema file could not be parsed."""


class ProjectFormatError(MapForgeError):
    """A project document is not parseable JSON."""


class ProjectValidationError(MapForgeError):
    """A project document does not match the current document schema.

    `path` names the offending field (dot-joined, e.g. `rounds.0.rows.1.status`),
    or is empty when the problem concerns the document as a whole.
    """

    def __init__(self, message: str, path: str = ''):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path
        self.reason = message


class SpreadsheetError(MapForgeError):
    """A workbook could not be read."""


class RubricConflictError(MapForgeError):
    def __init__(self, code: str):
        super().__init__(f"Rubric {code} is already enabled.")
        self.code = code


class UnknownRubricError(MapForgeError):
    def __init__(self, code: str):
        super().__init__(f"Unknown rubric: {code}")
        self.code = code


class RoundNotFoundError(MapForgeError):
    def __init__(self, round_id: Optional[str]):
        super().__init__(f"Round not found: {round_id}")
        self.round_id = round_id


class RowNotFoundError(MapForgeError):
    def __init__(self, row_id: str):
        super().__init__(f"Row not found: {row_id}")
        self.row_id = row_id
