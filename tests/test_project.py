import json

import pytest

from mapforge.errors import ProjectFormatError, ProjectValidationError
from mapforge.project import (
    FIRST_ROUND_ID,
    PROJECT_VERSION,
    editable_side,
    fixed_side,
    make_empty_project,
    new_row,
    project_key,
    project_to_dict,
    project_to_json,
    storage_key,
    validate_project,
)


def _document(**overrides):
    doc = project_to_dict(make_empty_project("sys", "inbound", "MSG"))
    doc.update(overrides)
    return doc


def test_empty_project_shape():
    project = make_empty_project("sys", "outbound", "MSG")
    assert project.version == PROJECT_VERSION
    assert [r.id for r in project.rounds] == [FIRST_ROUND_ID]
    assert project.active_round_id == FIRST_ROUND_ID
    assert project.source_catalog == [] and project.destination_catalog == []
    assert project.rubric_enabled == []


def test_document_uses_camel_case_keys():
    doc = _document()
    assert {"version", "updatedAt", "systemId", "messageId", "sourceCatalog", "activeRoundId"} <= set(doc)


def test_json_round_trip_preserves_project():
    project = make_empty_project("sys", "inbound", "MSG")
    row = new_row(source="A", destination="B", status="done", comment="x", rubric="CZ")
    project = project.model_copy(update={"rounds": [project.rounds[0].model_copy(update={"rows": [row]})]})
    assert project_to_dict(validate_project(project_to_json(project))) == project_to_dict(project)


@pytest.mark.parametrize("version", [2, 4, "3", True, None])
def test_other_versions_are_rejected(version):
    with pytest.raises(ProjectValidationError) as exc:
        validate_project(_document(version=version))
    assert exc.value.path == "version"


def test_missing_version_is_rejected():
    doc = _document()
    del doc["version"]
    with pytest.raises(ProjectValidationError):
        validate_project(doc)


def test_unknown_fields_are_ignored():
    project = validate_project(_document(futureField={"x": 1}))
    assert project.system_id == "sys"


def test_dangling_active_round_is_rejected():
    with pytest.raises(ProjectValidationError) as exc:
        validate_project(_document(activeRoundId="R09"))
    assert exc.value.path == "activeRoundId"


def test_duplicate_round_ids_are_rejected():
    rounds = [{"id": "R01", "rows": []}, {"id": "R01", "rows": []}]
    with pytest.raises(ProjectValidationError) as exc:
        validate_project(_document(rounds=rounds))
    assert exc.value.path == "rounds.1.id"


def test_duplicate_row_ids_are_rejected():
    row = {"id": "r1", "source": "", "destination": "", "status": "open"}
    with pytest.raises(ProjectValidationError) as exc:
        validate_project(_document(rounds=[{"id": "R01", "rows": [row, dict(row)]}]))
    assert exc.value.path == "rounds.0.rows.1.id"


def test_bad_status_names_the_offending_field():
    row = {"id": "r1", "source": "", "destination": "", "status": "finished"}
    with pytest.raises(ProjectValidationError) as exc:
        validate_project(_document(rounds=[{"id": "R01", "rows": [row]}]))
    assert exc.value.path == "rounds.0.rows.0.status"


def test_empty_row_id_is_rejected():
    row = {"id": "", "source": "", "destination": "", "status": "open"}
    with pytest.raises(ProjectValidationError) as exc:
        validate_project(_document(rounds=[{"id": "R01", "rows": [row]}]))
    assert exc.value.path == "rounds.0.rows.0.id"


def test_unparseable_text_is_a_format_error():
    with pytest.raises(ProjectFormatError):
        validate_project("{not json")


def test_json_text_and_bytes_are_accepted():
    text = json.dumps(_document())
    assert project_to_dict(validate_project(text)) == project_to_dict(validate_project(text.encode("utf-8")))


def test_storage_key_is_namespaced_and_escaped():
    assert storage_key("translogica", "inbound", "DESADV") == "mapforge:v3:translogica:inbound:DESADV"
    assert storage_key("a:b", "inbound", "D 96/A") == "mapforge:v3:a%3Ab:inbound:D%2096%2FA"
    project = make_empty_project("translogica", "inbound", "DESADV")
    assert project_key(project) == storage_key("translogica", "inbound", "DESADV")


def test_fixed_and_editable_sides():
    assert fixed_side("inbound") == "destination"
    assert editable_side("inbound") == "source"
    assert fixed_side("outbound") == "source"
    assert editable_side("outbound") == "destination"


def test_new_row_id_prefix_follows_rubric():
    assert new_row(rubric="CZ").id.startswith("cz-")
    assert new_row().id.startswith("row-")
