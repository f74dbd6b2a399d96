from __future__ import annotations

from typing import Any, Dict, List, Set

from .paths import escape_path_segment, split_path

ARRAY_MARKER = '[]'


def build_tree_from_keys(keys: List[str]) -> Dict[str, Any]:
    """Convert catalog paths into a nested dictionary tree.

    Leaf nodes are strings (the full path).
    Branch nodes are dictionaries.
    If a node is both a leaf and a branch (e.g. 'a' and 'a/b'),
    the value for 'a' is stored in the dictionary under '__self__'.
    """
    tree: Dict[str, Any] = {}
    for key in sorted(keys):
        parts = split_path(key)
        if not parts:
            continue
        current = tree
        for part in parts[:-1]:
            if part not in current:
                current[part] = {}

            # If we encounter a node that was previously a leaf, convert it to a dict
            if isinstance(current[part], str):
                current[part] = {'__self__': current[part]}

            current = current[part]

        last_part = parts[-1]
        if last_part in current:
            if isinstance(current[last_part], dict):
                current[last_part]['__self__'] = key
        else:
            current[last_part] = key
    return tree


def collect_json_paths(data: Any, prefix: str = '', sep: str = '.') -> List[str]:
    """Walk a JSON value and list the paths of its scalar leaves.

    Arrays are sampled through their first element only; an empty array is
    reported as a leaf '<prefix>[]'. The result may contain duplicates.
    """
    out: List[str] = []

    if isinstance(data, list):
        current = f"{prefix}{ARRAY_MARKER}"
        if not data:
            return [current]
        return collect_json_paths(data[0], current, sep)

    if isinstance(data, dict):
        for k, v in data.items():
            escaped_k = escape_path_segment(k)
            current_key = f"{prefix}{sep}{escaped_k}" if prefix else escaped_k
            if isinstance(v, (dict, list)):
                out.extend(collect_json_paths(v, current_key, sep))
            else:
                out.append(current_key)
        return out

    if prefix:
        out.append(prefix)
    return out


def extract_json_paths(data: Any) -> List[str]:
    """Sorted, deduplicated field paths of a JSON instance document."""
    keys: Set[str] = set(collect_json_paths(data))
    return sorted(keys)
