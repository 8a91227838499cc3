"""Whole-tree persistence as nested, field-named JSON records.

Each node is written as ``{"id", "point", "left", "right", "axis"}`` with
children nested in place and absent children written as ``null``. An empty
tree is the bare ``null`` document. Unknown fields are ignored on load so newer
writers can add fields without breaking older readers.

Trees grown by insertion can be as deep as they are large, so both directions
walk the nesting with an explicit stack. Scalars are still encoded and scanned
by :mod:`json`, and every node record is validated by :class:`NodeRecord` on
its own.
"""

from __future__ import annotations

import json
from json.decoder import scanstring
from typing import Any, BinaryIO, Dict, List, Optional, Tuple, Union

import numpy as np
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from kdtreex import config as kx_config
from kdtreex.core.tree import POINT_DTYPE, KDNode, KDTree
from kdtreex.exceptions import TreeParseError
from kdtreex.logging import get_logger

LOGGER = get_logger("core.persistence")

_WHITESPACE = " \t\n\r"
_SCALAR_DECODER = json.JSONDecoder()


class NodeRecord(BaseModel):
    """Serialized form of one node; `dimension` is accepted as a legacy name for `axis`.

    Children stay as raw mappings here and are validated when the loader
    reaches them.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    point: List[float]
    left: Optional[Dict[str, Any]] = None
    right: Optional[Dict[str, Any]] = None
    axis: int = Field(ge=0, validation_alias=AliasChoices("axis", "dimension"))


def _encode(root: Optional[KDNode], indent: int | None) -> str:
    if root is None:
        return "null"
    colon = ":" if indent is None else ": "
    point_separators = (",", ":") if indent is None else (", ", ": ")

    chunks: List[str] = []
    stack: List[Union[str, Tuple[Optional[KDNode], int]]] = [(root, 0)]
    while stack:
        item = stack.pop()
        if isinstance(item, str):
            chunks.append(item)
            continue
        node, level = item
        if node is None:
            chunks.append("null")
            continue
        if indent is None:
            pad = close = ""
        else:
            pad = "\n" + " " * (indent * (level + 1))
            close = "\n" + " " * (indent * level)
        chunks.append(
            f"{{{pad}\"id\"{colon}{json.dumps(node.id)},"
            f"{pad}\"point\"{colon}{json.dumps(node.point.tolist(), separators=point_separators)},"
            f"{pad}\"left\"{colon}"
        )
        # Popped in reverse: left subtree, right key, right subtree, axis, brace.
        stack.append(f"{close}}}")
        stack.append(f",{pad}\"axis\"{colon}{int(node.axis)}")
        stack.append((node.right, level + 1))
        stack.append(f",{pad}\"right\"{colon}")
        stack.append((node.left, level + 1))
    return "".join(chunks)


def _skip_whitespace(text: str, pos: int) -> int:
    end = len(text)
    while pos < end and text[pos] in _WHITESPACE:
        pos += 1
    return pos


def _read_key(text: str, pos: int) -> Tuple[str, int]:
    if not text.startswith('"', pos):
        raise json.JSONDecodeError("Expecting property name enclosed in double quotes", text, pos)
    key, pos = scanstring(text, pos + 1)
    pos = _skip_whitespace(text, pos)
    if not text.startswith(":", pos):
        raise json.JSONDecodeError("Expecting ':' delimiter", text, pos)
    return key, _skip_whitespace(text, pos + 1)


def _decode(text: str) -> Any:
    """Decode a JSON document with no bound on container nesting."""

    # Each entry is an open container and, for objects, the key awaiting its value.
    stack: List[Tuple[Any, Optional[str]]] = []
    pos = _skip_whitespace(text, 0)
    while True:
        char = text[pos : pos + 1]
        if char == "{":
            pos = _skip_whitespace(text, pos + 1)
            if not text.startswith("}", pos):
                key, pos = _read_key(text, pos)
                stack.append(({}, key))
                continue
            value: Any = {}
            pos += 1
        elif char == "[":
            pos = _skip_whitespace(text, pos + 1)
            if not text.startswith("]", pos):
                stack.append(([], None))
                continue
            value = []
            pos += 1
        else:
            try:
                value, pos = _SCALAR_DECODER.scan_once(text, pos)
            except StopIteration as exc:
                raise json.JSONDecodeError("Expecting value", text, exc.value) from None

        while True:
            if not stack:
                pos = _skip_whitespace(text, pos)
                if pos != len(text):
                    raise json.JSONDecodeError("Extra data", text, pos)
                return value
            container, key = stack[-1]
            if isinstance(container, dict):
                container[key] = value
                closer = "}"
            else:
                container.append(value)
                closer = "]"
            pos = _skip_whitespace(text, pos)
            char = text[pos : pos + 1]
            if char == ",":
                pos = _skip_whitespace(text, pos + 1)
                if isinstance(container, dict):
                    key, pos = _read_key(text, pos)
                    stack[-1] = (container, key)
                break
            if char != closer:
                raise json.JSONDecodeError(f"Expecting ',' or '{closer}' delimiter", text, pos)
            stack.pop()
            value = container
            pos += 1


def _node_from_payload(payload: Any) -> Tuple[KDNode, NodeRecord]:
    try:
        record = NodeRecord.model_validate(payload)
    except ValidationError as exc:
        raise TreeParseError(
            f"persisted node record is malformed ({exc.error_count()} validation errors)"
        ) from exc
    node = KDNode(
        id=record.id,
        point=np.asarray(record.point, dtype=POINT_DTYPE),
        axis=record.axis,
    )
    return node, record


def _build_from_document(document: Any) -> Optional[KDNode]:
    if document is None:
        return None
    root, record = _node_from_payload(document)
    pending: List[Tuple[KDNode, NodeRecord]] = [(root, record)]
    while pending:
        node, record = pending.pop()
        if record.left is not None:
            node.left, left_record = _node_from_payload(record.left)
            pending.append((node.left, left_record))
        if record.right is not None:
            node.right, right_record = _node_from_payload(record.right)
            pending.append((node.right, right_record))
    return root


def dumps(tree: KDTree) -> bytes:
    """Serialize `tree` to UTF-8 JSON bytes."""

    runtime = kx_config.runtime_config()
    return _encode(tree.root, runtime.json_indent).encode("utf-8")


def loads(data: bytes | str) -> KDTree:
    """Parse bytes produced by :func:`dumps` into a new, independent tree.

    Raises :class:`TreeParseError` for malformed or truncated input, and its
    subclass :class:`TreeShapeError` when the decoded nodes disagree on
    dimensionality, carry an out-of-range axis, or break the split partition.
    """

    try:
        text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
        document = _decode(text)
    except ValueError as exc:
        raise TreeParseError(f"persisted tree could not be decoded: {exc}") from exc

    tree = KDTree.from_root(_build_from_document(document))
    if kx_config.runtime_config().validate_on_load:
        tree.validate()
    return tree


def save(tree: KDTree, stream: BinaryIO) -> int:
    """Write the serialized tree to `stream` and flush it; returns the byte count.

    Short writes are retried until every byte is accepted. ``OSError`` raised
    by the stream propagates unchanged.
    """

    data = dumps(tree)
    offset = 0
    while offset < len(data):
        written = stream.write(data[offset:] if offset else data)
        if written is None:
            # Buffered sinks and plain file-likes may not report a count.
            break
        if written <= 0:
            raise OSError(f"stream accepted no bytes after {offset} of {len(data)}")
        offset += written
    flush = getattr(stream, "flush", None)
    if flush is not None:
        flush()
    LOGGER.debug("Saved tree with %d points (%d bytes)", len(tree), len(data))
    return len(data)


def load(stream: Any) -> KDTree:
    """Read `stream` to completion and parse it into a new tree."""

    data = stream.read()
    tree = loads(data)
    LOGGER.debug("Loaded tree with %d points of dimension %s", len(tree), tree.dimension)
    return tree


__all__ = ["NodeRecord", "dumps", "loads", "save", "load"]
