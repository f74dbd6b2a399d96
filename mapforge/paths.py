from __future__ import annotations

from typing import Iterable, List, NewType, Optional

# Canonical field path: segments joined by '/', literal delimiters escaped.
FieldPath = NewType('FieldPath', str)

DELIMITERS = ('.', '/')
CANONICAL_DELIMITER = '/'
ESCAPE = '\\'

# Characters a backslash can escape; before anything else it is a literal.
_ESCAPABLE = (*DELIMITERS, ESCAPE)


def escape_path_segment(segment: str) -> str:
    """Escape a single key segment for path representation.

    Delimiters ('.' and '/') get a backslash so keys like 'gpt-3.5' remain one
    segment. A backslash is only doubled where it would otherwise read as an
    escape: before a delimiter, before another backslash, or at the end of the
    segment. 'Root\\Item' is left as it is.
    """
    if not isinstance(segment, str):
        segment = str(segment)
    out: List[str] = []
    for idx, ch in enumerate(segment):
        nxt = segment[idx + 1] if idx + 1 < len(segment) else ''
        if ch in DELIMITERS or (ch == ESCAPE and (not nxt or nxt in _ESCAPABLE)):
            out.append(ESCAPE)
        out.append(ch)
    return ''.join(out)


def split_path(path: Optional[str]) -> List[str]:
    """Split a path on unescaped '.' or '/' into unescaped segments.

    `\\.`, `\\/` and `\\\\` stand for the literal character; any other
    backslash is kept. Empty segments are dropped.
    """
    if path is None:
        return []
    text = path if isinstance(path, str) else str(path)

    segments: List[str] = []
    buf: List[str] = []
    idx = 0
    while idx < len(text):
        ch = text[idx]
        nxt = text[idx + 1] if idx + 1 < len(text) else ''
        if ch == ESCAPE and nxt in _ESCAPABLE and nxt:
            buf.append(nxt)
            idx += 2
            continue
        if ch in DELIMITERS:
            segments.append(''.join(buf))
            buf = []
        else:
            buf.append(ch)
        idx += 1
    segments.append(''.join(buf))
    return [seg for seg in segments if seg]


def canonical_path(path: Optional[str]) -> FieldPath:
    """Collapse delimiter variants so 'Order.Header' and 'Order/Header' compare equal.

    Whitespace around the path and around each segment is dropped, as are
    empty segments. The result is idempotent under canonical_path.
    """
    if path is None:
        return FieldPath('')
    segments = [seg.strip() for seg in split_path(str(path).strip())]
    return FieldPath(CANONICAL_DELIMITER.join(escape_path_segment(seg) for seg in segments if seg))


def canonical_row_text(value: Optional[str]) -> str:
    """Row source/destination as stored: path-like text canonicalized, prose trimmed.

    Text with inner whitespace (e.g. 'Konstante 1.5') is free text, not a path.
    """
    text = (value or '').strip()
    if any(ch.isspace() for ch in text):
        return text
    return canonical_path(text)


def canonical_paths(paths: Iterable[str]) -> List[FieldPath]:
    """Canonicalize, drop empties, deduplicate and sort a list of paths."""
    unique = {canonical_path(p) for p in paths or []}
    unique.discard(FieldPath(''))
    return sorted(unique)


def paths_equal(a: str, b: str) -> bool:
    return canonical_path(a) == canonical_path(b)
