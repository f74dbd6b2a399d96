from mapforge.paths import (
    canonical_path,
    canonical_row_text,
    canonical_paths,
    escape_path_segment,
    paths_equal,
    split_path,
)


def test_delimiter_variants_are_equal():
    """Test that dotted and slashed spellings canonicalize to the same path."""
    assert canonical_path("Order.Header.CustomerId") == "Order/Header/CustomerId"
    assert paths_equal("Order.Header", "Order/Header")
    assert not paths_equal("order/header", "Order/Header")


def test_canonical_path_trims_and_drops_empty_segments():
    assert canonical_path("  Order//Header/ ") == "Order/Header"
    assert canonical_path(" a . b ") == "a/b"
    assert canonical_path("") == ""
    assert canonical_path(None) == ""


def test_canonical_path_is_idempotent():
    for raw in ["a.b/c", "items[].a", "x\\.y/z", "/lead/trail/"]:
        once = canonical_path(raw)
        assert canonical_path(once) == once


def test_escaped_delimiter_stays_in_segment():
    """Test that an escaped dot does not split a key like 'gpt-3.5'."""
    key = escape_path_segment("gpt-3.5")
    assert key == "gpt-3\\.5"
    assert split_path(f"models.{key}.name") == ["models", "gpt-3.5", "name"]
    assert canonical_path(f"models.{key}") == "models/gpt-3\\.5"


def test_array_marker_becomes_its_own_segment_boundary():
    assert canonical_path("items[].a") == "items[]/a"


def test_canonical_paths_dedupes_and_sorts():
    result = canonical_paths(["b/a", "a.b", "a/b", "", "  ", "b.a"])
    assert result == ["a/b", "b/a"]


def test_plain_backslash_is_kept_literally():
    """Test that a backslash not escaping a delimiter survives canonicalization."""
    assert split_path("Root\\Item") == ["Root\\Item"]
    assert canonical_path("Root\\Item") == "Root\\Item"
    assert canonical_path("Root\\Item") != canonical_path("RootItem")
    assert canonical_path("C:\\data.Name") == "C:\\data/Name"


def test_escaped_backslash_and_trailing_backslash():
    assert split_path("a\\\\/b") == ["a\\", "b"]
    once = canonical_path("dir\\")
    assert split_path(once) == ["dir\\"]
    assert canonical_path(once) == once


def test_canonical_row_text_leaves_prose_alone():
    assert canonical_row_text(" Order.Header.Id ") == "Order/Header/Id"
    assert canonical_row_text("Konstante 1.5") == "Konstante 1.5"
    assert canonical_row_text("  ") == ""
    assert canonical_row_text(None) == ""
