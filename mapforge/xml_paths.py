"""Field catalogs from XML instance documents and XSD schemas.

XML instances are turned into an `InterfaceDefinition` tree: elements with
child elements become segments, everything else becomes a field addressed as
`<parent>/<child>`. XSD extraction is best effort and returns an empty list for
schemas it cannot follow; callers report that as "enter the fields manually".
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Dict, Iterator, List, Optional, Set, Union

from lxml import etree

from .errors import ExtractionError
from .schema_utils import extract_json_paths

logger = logging.getLogger(__name__)

XSD_NS = 'http://www.w3.org/2001/XMLSchema'
XSI_NS = 'http://www.w3.org/2001/XMLSchema-instance'

NIL_DESCRIPTION = '(nil)'
STATUS_MANDATORY = 'M'
STATUS_OPTIONAL = 'O'

MAX_TYPE_DEPTH = 3
MAX_ELEMENT_DEPTH = 12


@dataclass
class Field:
    path: str
    description: str = ''
    status: str = STATUS_MANDATORY


@dataclass
class Segment:
    path: str
    description: str
    level: int
    status: str = STATUS_MANDATORY
    elements: List[Field] = field(default_factory=list)
    children: List['Segment'] = field(default_factory=list)


@dataclass
class InterfaceDefinition:
    message_type: str
    version: str
    guideline: str
    guideline_version: str
    segments: List[Segment] = field(default_factory=list)


def _parse_xml(content: Union[str, bytes]) -> etree._Element:
    if isinstance(content, str):
        # lxml refuses str input that carries an encoding declaration.
        content = content.encode('utf-8')
    parser = etree.XMLParser(
        resolve_entities=False,
        no_network=True,
        remove_comments=True,
        remove_pis=True,
    )
    try:
        root = etree.fromstring(content, parser)
    except etree.XMLSyntaxError as exc:
        raise ExtractionError(f"Invalid XML: {exc}") from exc
    if root is None:
        raise ExtractionError("Invalid XML: empty document")
    return root


def _local_name(el: etree._Element) -> str:
    return etree.QName(el).localname


def _child_elements(el: etree._Element) -> List[etree._Element]:
    return [c for c in el if isinstance(c.tag, str)]


def _walk_element(el: etree._Element, parent_path: str, level: int) -> Segment:
    name = _local_name(el)
    full_path = f"{parent_path}/{name}" if parent_path else name
    segment = Segment(path=name, description=full_path, level=level)

    for child in _child_elements(el):
        if _child_elements(child):
            segment.children.append(_walk_element(child, full_path, level + 1))
            continue
        is_nil = child.get(f"{{{XSI_NS}}}nil") == 'true'
        text = (child.text or '').strip()
        segment.elements.append(
            Field(
                path=f"{name}/{_local_name(child)}",
                description=NIL_DESCRIPTION if is_nil else text,
                status=STATUS_OPTIONAL if is_nil else STATUS_MANDATORY,
            )
        )
    return segment


def parse_xml_interface(content: Union[str, bytes], file_name: str = '') -> InterfaceDefinition:
    """Parse an XML instance document into an interface definition tree."""
    root = _parse_xml(content)
    root_segment = _walk_element(root, '', 0)
    if root_segment.children:
        segments = root_segment.children
    elif root_segment.elements:
        segments = [root_segment]
    else:
        segments = []
    return InterfaceDefinition(
        message_type=_local_name(root),
        version='XML',
        guideline=PurePath(file_name).stem if file_name else '',
        guideline_version='1.0',
        segments=segments,
    )


def iter_fields(segments: List[Segment]) -> Iterator[Field]:
    for seg in segments:
        yield from seg.elements
        yield from iter_fields(seg.children)


def count_elements(definition: InterfaceDefinition) -> int:
    return sum(1 for _ in iter_fields(definition.segments))


def extract_xml_paths(content: Union[str, bytes]) -> List[str]:
    """Sorted, deduplicated leaf paths of an XML instance document."""
    root_segment = _walk_element(_parse_xml(content), '', 0)
    return sorted({f.path for f in iter_fields([root_segment])})


# --- XSD -------------------------------------------------------------------


class _SchemaWalker:
    def __init__(self, schema: etree._Element):
        self.elements: Dict[str, etree._Element] = {}
        self.complex_types: Dict[str, etree._Element] = {}
        self.paths: Set[str] = set()
        for child in _child_elements(schema):
            if etree.QName(child).namespace != XSD_NS:
                continue
            name = child.get('name')
            if not name:
                continue
            local = _local_name(child)
            if local == 'element':
                self.elements[name] = child
            elif local == 'complexType':
                self.complex_types[name] = child

    def _resolve_type(self, decl: etree._Element, qname: Optional[str]) -> Optional[etree._Element]:
        if not qname:
            return None
        prefix, _, local = qname.rpartition(':')
        if decl.nsmap.get(prefix or None) == XSD_NS:
            return None
        return self.complex_types.get(local)

    def walk_roots(self) -> List[str]:
        for decl in self.elements.values():
            self.walk_element(decl, '', 0, 0, frozenset())
        return sorted(self.paths)

    def walk_element(self, decl, prefix: str, depth: int, type_depth: int, seen: frozenset):
        ref = decl.get('ref')
        if ref:
            target = self.elements.get(ref.rpartition(':')[2])
            if target is None:
                return
            decl = target
        name = decl.get('name')
        if not name or depth > MAX_ELEMENT_DEPTH:
            return
        path = f"{prefix}.{name}" if prefix else name

        complex_type = decl.find(f"{{{XSD_NS}}}complexType")
        if complex_type is None:
            type_name = decl.get('type')
            complex_type = self._resolve_type(decl, type_name)
            if complex_type is None:
                self.paths.add(path)
                return
            local = type_name.rpartition(':')[2]
            if type_depth >= MAX_TYPE_DEPTH or local in seen:
                return
            type_depth += 1
            seen = seen | {local}

        before = len(self.paths)
        self.walk_complex(complex_type, path, depth, type_depth, seen)
        if len(self.paths) == before:
            # Empty content model: the element itself is the field.
            self.paths.add(path)

    def walk_complex(self, node, path: str, depth: int, type_depth: int, seen: frozenset):
        for child in _child_elements(node):
            local = _local_name(child)
            if local in ('sequence', 'choice', 'all'):
                self.walk_group(child, path, depth, type_depth, seen)
            elif local == 'attribute':
                self.add_attribute(child, path)
            elif local == 'complexContent':
                for derivation in _child_elements(child):
                    if _local_name(derivation) == 'extension':
                        base_name = derivation.get('base')
                        base = self._resolve_type(derivation, base_name)
                        base_local = (base_name or '').rpartition(':')[2]
                        if base is not None and type_depth < MAX_TYPE_DEPTH and base_local not in seen:
                            self.walk_complex(base, path, depth, type_depth + 1, seen | {base_local})
                    self.walk_complex(derivation, path, depth, type_depth, seen)
            elif local == 'simpleContent':
                self.paths.add(path)
                for derivation in _child_elements(child):
                    self.walk_complex(derivation, path, depth, type_depth, seen)

    def walk_group(self, group, path: str, depth: int, type_depth: int, seen: frozenset):
        for child in _child_elements(group):
            local = _local_name(child)
            if local == 'element':
                self.walk_element(child, path, depth + 1, type_depth, seen)
            elif local in ('sequence', 'choice', 'all'):
                self.walk_group(child, path, depth, type_depth, seen)
            # xs:any and xs:group references are not followed

    def add_attribute(self, attr, path: str):
        name = attr.get('name') or (attr.get('ref') or '').rpartition(':')[2]
        if name:
            self.paths.add(f"{path}.@{name}")


def is_xsd_document(root: etree._Element) -> bool:
    return etree.QName(root).namespace == XSD_NS and _local_name(root) == 'schema'


def extract_xsd_paths(content: Union[str, bytes]) -> List[str]:
    """Dotted element/attribute paths declared by an XSD schema.

    An empty result means the schema could not be followed, not that it
    declares no fields.
    """
    root = _parse_xml(content)
    if not is_xsd_document(root):
        logger.info("Document root %s is not an xs:schema", root.tag)
        return []
    return _SchemaWalker(root).walk_roots()


def extract_paths_from_file(file_name: str, content: Union[str, bytes]) -> List[str]:
    """Pick the extractor by file extension and return the catalog paths."""
    suffix = PurePath(file_name or '').suffix.lower()
    if suffix == '.xsd':
        return extract_xsd_paths(content)
    if suffix == '.xml':
        root = _parse_xml(content)
        if is_xsd_document(root):
            return extract_xsd_paths(content)
        return extract_xml_paths(content)

    try:
        if isinstance(content, bytes):
            content = content.decode('utf-8-sig')
        data = json.loads(content)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ExtractionError(f"Invalid JSON: {exc}") from exc
    return extract_json_paths(data)


def load_interface_definition(file_name: str, content: Union[str, bytes]) -> Optional[InterfaceDefinition]:
    """Segment tree of an XML instance file; None for schemas and non-XML files."""
    if PurePath(file_name or '').suffix.lower() != '.xml':
        return None
    if is_xsd_document(_parse_xml(content)):
        return None
    return parse_xml_interface(content, file_name)
