from __future__ import annotations

import logging
from typing import Any, Dict, List

from .errors import MapForgeError
from .io_utils import read_bytes_content, upload_name
from .paths import canonical_paths
from .persistence import save_project
from .project import Project, editable_side
from .reconcile import parse_catalog_text, set_catalog
from .schema_utils import build_tree_from_keys
from .xml_paths import InterfaceDefinition, Segment, count_elements, extract_paths_from_file, load_interface_definition

logger = logging.getLogger(__name__)


def catalog_tree(paths: List[str]) -> Dict[str, Any]:
    return build_tree_from_keys(paths or [])


def _editable_catalog(project: Project) -> List[str]:
    side = editable_side(project.direction)
    return project.source_catalog if side == "source" else project.destination_catalog


def _catalog_outputs(project: Project, message: str):
    catalog = _editable_catalog(project)
    return project, "\n".join(catalog), catalog_tree(catalog), message


def load_schema_paths(file_obj):
    """Extract catalog paths from an uploaded schema file.

    Returns (paths, error message); an empty path list without an error means
    nothing could be derived from the file.
    """
    if file_obj is None:
        return [], "No file uploaded."
    name = upload_name(file_obj)
    try:
        return extract_paths_from_file(name, read_bytes_content(file_obj)), ""
    except (MapForgeError, OSError) as e:
        logger.warning("Schema import of %s failed: %s", name, e)
        return [], f"Error parsing {name}: {str(e)}"


def import_schema_handler(project, file_obj, storage):
    """Replace the editable side's catalog with the fields of an uploaded schema."""
    if project is None:
        return None, "", {}, "Open a project first."
    paths, error = load_schema_paths(file_obj)
    if error:
        return _catalog_outputs(project, error)
    if not paths:
        message = (
            f"No fields could be derived from {upload_name(file_obj)} "
            "(schema too complex for the parser). Please enter the fields manually."
        )
        return _catalog_outputs(project, message)

    side = editable_side(project.direction)
    project = save_project(storage, set_catalog(project, side, paths))
    return _catalog_outputs(project, f"Imported {len(_editable_catalog(project))} {side} fields from {upload_name(file_obj)}.")


def apply_catalog_text_handler(project, text, storage):
    if project is None:
        return None, "", {}, "Open a project first."
    side = editable_side(project.direction)
    project = save_project(storage, set_catalog(project, side, parse_catalog_text(text)))
    return _catalog_outputs(project, f"Catalog updated: {len(_editable_catalog(project))} {side} fields.")


def clear_catalog_handler(project, storage):
    return apply_catalog_text_handler(project, "", storage)


def _segment_preview(segment: Segment) -> Dict[str, Any]:
    return {
        'segment': segment.description,
        'level': segment.level,
        'fields': [
            {'path': f.path, 'value': f.description, 'status': f.status}
            for f in segment.elements
        ],
        'children': [_segment_preview(child) for child in segment.children],
    }


def interface_preview(definition: InterfaceDefinition) -> Dict[str, Any]:
    """JSON view of an XML interface: segments with field values and M/O status."""
    return {
        'messageType': definition.message_type,
        'guideline': definition.guideline,
        'fieldCount': count_elements(definition),
        'segments': [_segment_preview(s) for s in definition.segments],
    }


def load_fixed_fields_handler(file_obj):
    """Fields of the internal interface definition (the fixed side).

    Returns (fields, preview, status message). XML instance files are previewed
    as their segment tree, everything else as the flat path tree.
    """
    paths, error = load_schema_paths(file_obj)
    if error:
        return [], {}, error
    name = upload_name(file_obj)
    if not paths:
        return [], {}, f"No fields could be derived from {name}."
    fields = canonical_paths(paths)
    definition = load_interface_definition(name, read_bytes_content(file_obj))
    preview = interface_preview(definition) if definition is not None else catalog_tree(fields)
    return fields, preview, f"Loaded {len(fields)} fixed interface fields from {name}."
