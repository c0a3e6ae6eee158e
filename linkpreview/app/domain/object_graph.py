"""Keyed-archiver object graph reader.

Payloads are property lists holding an ``$objects`` array in which every
object is stored once and referenced elsewhere by index. Depending on how the
archive was produced, a reference to object N shows up as a ``plistlib.UID``,
as a ``{"CF$UID": N}`` dict, or as a bare integer. ``decode_object_graph`` is
the only place those shapes are recognised: everything downstream sees a
single ``Reference`` node.

All traversal helpers are total. Missing fields, out-of-bounds indices and
reference cycles resolve to ``None``.
"""
from __future__ import annotations

import plistlib
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Union

OBJECTS_KEY = "$objects"
TOP_KEY = "$top"
NULL_SENTINEL = "$null"
UID_KEY = "CF$UID"
# Nested (non-reference) dicts deeper than this make the payload invalid.
MAX_NESTING_DEPTH = 32

ScalarValue = Union[str, int, float, bool, bytes]


class PayloadDecodeError(Exception):
    """Raised when a payload is not a readable keyed archive."""


@dataclass(frozen=True)
class Scalar:
    value: ScalarValue


@dataclass(frozen=True)
class Reference:
    index: int


@dataclass(frozen=True)
class Dict:
    fields: Mapping[str, "Node"] = field(default_factory=dict)

    def get(self, key: str) -> "Node | None":
        return self.fields.get(key)

    def __contains__(self, key: object) -> bool:
        return key in self.fields


Node = Union[Scalar, Dict, Reference]


def _as_reference(value: Any) -> Reference | None:
    """Map every known reference-marker shape onto ``Reference``."""
    if isinstance(value, plistlib.UID):
        return Reference(int(value.data))
    if isinstance(value, dict) and len(value) == 1 and UID_KEY in value:
        uid = value[UID_KEY]
        if isinstance(uid, int) and not isinstance(uid, bool):
            return Reference(uid)
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return Reference(value)
    return None


def _field_node(value: Any, depth: int) -> Node | None:
    ref = _as_reference(value)
    if ref is not None:
        return ref
    if isinstance(value, dict):
        return _dict_node(value, depth + 1)
    if isinstance(value, (str, float, bool, bytes)):
        return Scalar(value)
    # Arrays and dates carry nothing the extractor reads.
    return None


def _dict_node(raw: Mapping[Any, Any], depth: int = 0) -> Dict:
    if depth > MAX_NESTING_DEPTH:
        raise PayloadDecodeError(f"dictionaries nested deeper than {MAX_NESTING_DEPTH} levels")
    fields: dict[str, Node] = {}
    for key, value in raw.items():
        if not isinstance(key, str):
            continue
        node = _field_node(value, depth)
        if node is not None:
            fields[key] = node
    return Dict(fields)


def _object_node(value: Any) -> Node:
    """Top-level ``$objects`` entries: integers here are values, not markers."""
    if isinstance(value, plistlib.UID):
        return Reference(int(value.data))
    if isinstance(value, dict):
        ref = _as_reference(value)
        return ref if ref is not None else _dict_node(value)
    if isinstance(value, (str, int, float, bool, bytes)):
        return Scalar(value)
    return Dict()


@dataclass(frozen=True)
class ObjectGraph:
    nodes: tuple[Node, ...]
    root: int | None = None

    def __len__(self) -> int:
        return len(self.nodes)

    def node_at(self, index: int) -> Node | None:
        if 0 <= index < len(self.nodes):
            return self.nodes[index]
        return None

    def resolve(self, node: Node | None) -> Scalar | Dict | None:
        """Follow references until a concrete node is reached."""
        seen: set[int] = set()
        while isinstance(node, Reference):
            if node.index in seen:
                return None
            seen.add(node.index)
            node = self.node_at(node.index)
        return node

    def resolve_string(self, node: Node | None) -> str | None:
        resolved = self.resolve(node)
        if isinstance(resolved, Scalar) and isinstance(resolved.value, str):
            if resolved.value == NULL_SENTINEL:
                return None
            return resolved.value
        return None

    def resolve_dict(self, node: Node | None) -> Dict | None:
        resolved = self.resolve(node)
        return resolved if isinstance(resolved, Dict) else None

    def iter_dicts(self) -> Iterator[Dict]:
        """Yield every dict node once, breadth-first from the root.

        Dicts unreachable from the root follow in array order.
        """
        visited: set[int] = set()
        queue: deque[int] = deque()
        if self.root is not None and self.node_at(self.root) is not None:
            queue.append(self.root)
        while queue:
            index = queue.popleft()
            if index in visited:
                continue
            visited.add(index)
            node = self.node_at(index)
            if isinstance(node, Reference):
                queue.append(node.index)
            elif isinstance(node, Dict):
                yield node
                for child in _references_in(node):
                    if child not in visited and self.node_at(child) is not None:
                        queue.append(child)
        for index, node in enumerate(self.nodes):
            if index not in visited and isinstance(node, Dict):
                yield node

    def iter_strings(self) -> Iterator[str]:
        for node in self.nodes:
            if isinstance(node, Scalar) and isinstance(node.value, str):
                yield node.value


def _references_in(node: Dict) -> Iterator[int]:
    for value in node.fields.values():
        if isinstance(value, Reference):
            yield value.index
        elif isinstance(value, Dict):
            yield from _references_in(value)


def decode_object_graph(data: bytes) -> ObjectGraph:
    """Decode a keyed-archiver property list (binary or XML) into an ObjectGraph."""
    if not data:
        raise PayloadDecodeError("empty payload")
    try:
        container = plistlib.loads(data)
    except Exception as exc:
        raise PayloadDecodeError(f"payload is not a property list: {exc}") from exc

    if not isinstance(container, dict):
        raise PayloadDecodeError("payload root is not a dictionary")
    objects = container.get(OBJECTS_KEY)
    if not isinstance(objects, list):
        raise PayloadDecodeError(f"payload has no {OBJECTS_KEY} array")

    nodes = tuple(_object_node(value) for value in objects)

    root: int | None = None
    top = container.get(TOP_KEY)
    if isinstance(top, dict):
        marker = _as_reference(top.get("root"))
        if marker is not None and 0 <= marker.index < len(nodes):
            root = marker.index
    return ObjectGraph(nodes=nodes, root=root)
