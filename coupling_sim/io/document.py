"""Named-node document tree and the lookup helpers the loader walks it with."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from xml.etree import ElementTree

from coupling_sim.errors import MalformedConfiguration


@dataclass(slots=True)
class DocumentNode:
    name: str
    attributes: dict[str, str] = field(default_factory=dict)
    text: str = ""
    children: list["DocumentNode"] = field(default_factory=list)

    def children_named(self, name: str) -> list["DocumentNode"]:
        return [child for child in self.children if child.name == name]


def parse_xml(text: str) -> DocumentNode:
    try:
        root = ElementTree.fromstring(text)
    except ElementTree.ParseError as exc:
        raise MalformedConfiguration(f"invalid XML syntax: {exc}") from exc
    return _convert(root)


def read_xml(path: str | Path) -> DocumentNode:
    input_path = Path(path)
    if not input_path.exists():
        raise MalformedConfiguration(f"document not found: {path}")
    try:
        text = input_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise MalformedConfiguration(f"cannot read document {path}: {exc}") from exc
    return parse_xml(text)


def _convert(element: ElementTree.Element) -> DocumentNode:
    return DocumentNode(
        name=_local_name(element.tag),
        attributes={_local_name(key): value for key, value in element.attrib.items()},
        text="".join(element.itertext()).strip(),
        children=[_convert(child) for child in element],
    )


def _local_name(tag: str) -> str:
    # drop "{namespace}" prefixes so tags compare by local name
    return tag.rsplit("}", 1)[-1]


def force_node_name(node: DocumentNode, name: str) -> None:
    if node.name != name:
        raise MalformedConfiguration(f"expected tag '{name}' but found tag '{node.name}'")


def find_child(node: DocumentNode, name: str, must_exist: bool = True) -> Optional[DocumentNode]:
    for child in node.children:
        if child.name == name:
            return child
    if must_exist:
        raise MalformedConfiguration(f"required tag '{name}' not found under '{node.name}'")
    return None


def find_child_value(node: DocumentNode, name: str, must_exist: bool = True) -> str:
    child = find_child(node, name, must_exist)
    return child.text if child is not None else ""


def attribute(node: DocumentNode, name: str) -> str:
    if name not in node.attributes:
        raise MalformedConfiguration(f"required attribute '{name}' not found on '{node.name}'")
    return node.attributes[name]
