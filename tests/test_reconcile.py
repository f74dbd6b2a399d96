import pytest

from mapforge.errors import RubricConflictError, UnknownRubricError
from mapforge.paths import canonical_paths
from mapforge.reconcile import (
    destination_candidates,
    disable_rubric,
    enable_rubric,
    parse_catalog_text,
    rubric_rows,
    set_catalog,
    ungrouped_rows,
)
from mapforge.rounds import active_round, add_rubric_row, add_round, add_row, update_row


def test_set_catalog_canonicalizes_without_loss_or_duplicates(inbound_project):
    paths = ["b.a", "a/b", "a.b", "  ", "b/a", "Order.Header.Id"]
    project = set_catalog(inbound_project, "source", paths)
    assert project.source_catalog == ["Order/Header/Id", "a/b", "b/a"]
    assert project.source_catalog == canonical_paths(paths)
    assert project.destination_catalog == []


def test_set_catalog_leaves_rows_alone(inbound_project):
    project = add_row(inbound_project)
    row_id = active_round(project).rows[0].id
    project = update_row(project, row_id, source="Old/Field")
    project = set_catalog(project, "source", ["New/Field"])
    assert active_round(project).rows[0].source == "Old/Field"


def test_set_catalog_rejects_unknown_side(inbound_project):
    with pytest.raises(ValueError):
        set_catalog(inbound_project, "middle", ["a"])


def test_parse_catalog_text_ignores_blank_lines():
    assert parse_catalog_text("a/b\n\n  c.d  \n") == ["a/b", "c.d"]
    assert parse_catalog_text(None) == []


def test_enable_rubric_adds_qualifier_first(inbound_project, cz_candidates):
    project = enable_rubric(inbound_project, "CZ", cz_candidates)
    rows = active_round(project).rows
    assert project.rubric_enabled == ["CZ"]
    assert [r.destination for r in rows] == [
        "CZ/Qualifier",
        "CZ/Name",
        "CZ/Strasse",
        "CZ/PLZ",
        "CZ/Ort",
        "CZ/Land",
    ]
    qualifier = rows[0]
    assert qualifier.source == "FIX:CZ"
    assert qualifier.status == "done"
    assert all(r.rubric == "CZ" for r in rows)
    assert all(r.status == "open" and r.source == "" and r.comment == "" for r in rows[1:])


def test_enable_rubric_twice_reports_conflict(inbound_project, cz_candidates):
    """Test that a second enable is rejected and changes nothing."""
    first = enable_rubric(inbound_project, "CZ", cz_candidates)
    with pytest.raises(RubricConflictError):
        enable_rubric(first, "CZ", cz_candidates)
    assert len(active_round(first).rows) == 6
    assert first.rubric_enabled == ["CZ"]


def test_enable_rubric_only_uses_valid_candidates(inbound_project):
    project = enable_rubric(inbound_project, "CZ", ["CZ.Name", "CZ.Ort", "Other/Field"])
    assert [r.destination for r in active_round(project).rows] == ["CZ/Name", "CZ/Ort"]


def test_enable_rubric_skips_destinations_already_in_block(inbound_project, cz_candidates):
    project = add_rubric_row(inbound_project, "CZ", "CZ.Name")
    project = enable_rubric(project, "CZ", cz_candidates)
    destinations = [r.destination for r in rubric_rows(active_round(project), "CZ")]
    assert destinations.count("CZ/Name") == 1
    assert len(destinations) == 6


def test_enable_unknown_rubric(inbound_project):
    with pytest.raises(UnknownRubricError):
        enable_rubric(inbound_project, "ZZ", [])


def test_disable_rubric_removes_every_tagged_row(inbound_project, cz_candidates):
    project = enable_rubric(add_row(inbound_project), "CZ", cz_candidates)
    edited = rubric_rows(active_round(project), "CZ")[1]
    project = update_row(project, edited.id, source="Partner/Name", comment="checked")
    project = add_round(project)
    project = add_rubric_row(project, "CZ", "CZ/Name")
    project = add_row(project)

    project = disable_rubric(project, "CZ")
    assert project.rubric_enabled == []
    for round_ in project.rounds:
        assert rubric_rows(round_, "CZ") == []
        assert len(ungrouped_rows(round_)) == 1


def test_disable_rubric_keeps_other_rubrics(inbound_project, cz_candidates):
    project = enable_rubric(inbound_project, "CZ", cz_candidates)
    project = enable_rubric(project, "CN", ["CN/Name"])
    project = disable_rubric(project, "CZ")
    assert project.rubric_enabled == ["CN"]
    assert [r.destination for r in active_round(project).rows] == ["CN/Name"]


def test_destination_candidates_by_direction(inbound_project, outbound_project):
    assert destination_candidates(inbound_project, ["CZ.Name", "CZ/Name"]) == ["CZ/Name"]
    outbound = set_catalog(outbound_project, "destination", ["Partner.Id"])
    assert destination_candidates(outbound, ["ignored"]) == ["Partner/Id"]


def test_set_catalog_keeps_backslash_paths_distinct(inbound_project):
    project = set_catalog(inbound_project, "source", ["Root\\Item", "RootItem", "Root\\Item"])
    assert project.source_catalog == ["RootItem", "Root\\Item"]
