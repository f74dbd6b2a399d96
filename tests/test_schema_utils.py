from mapforge.schema_utils import build_tree_from_keys, collect_json_paths, extract_json_paths


SAMPLE = {
    "order": {"id": 7, "lines": [{"sku": "A", "qty": 1}, {"sku": "B", "extra": True}]},
    "tags": [],
    "customer": "ACME",
}


def test_extraction_is_deterministic():
    """Test that extracting twice yields the same sorted, deduplicated list."""
    first = extract_json_paths(SAMPLE)
    second = extract_json_paths(SAMPLE)
    assert first == second
    assert first == sorted(set(first))


def test_arrays_collapse_to_first_element():
    paths = extract_json_paths({"items": [{"a": 1}, {"a": 2}, {"b": 3}]})
    assert paths == ["items[].a"]


def test_empty_array_is_a_leaf():
    assert extract_json_paths({"tags": []}) == ["tags[]"]


def test_branches_emit_no_path_of_their_own():
    paths = extract_json_paths(SAMPLE)
    assert paths == ["customer", "order.id", "order.lines[].qty", "order.lines[].sku", "tags[]"]
    assert "order" not in paths
    assert "order.lines[].extra" not in paths


def test_nested_arrays_and_top_level_array():
    assert extract_json_paths([[{"x": 1}]]) == ["[][].x"]
    assert extract_json_paths({"m": [[1, 2]]}) == ["m[][]"]


def test_top_level_scalar_has_no_paths():
    assert extract_json_paths(42) == []
    assert extract_json_paths(None) == []


def test_keys_with_dots_are_escaped():
    assert collect_json_paths({"v1.2": {"a": 1}}) == ["v1\\.2.a"]


def test_build_tree_from_keys_marks_leaf_and_branch():
    tree = build_tree_from_keys(["a", "a/b", "c.d"])
    assert tree == {"a": {"__self__": "a", "b": "a/b"}, "c": {"d": "c.d"}}
