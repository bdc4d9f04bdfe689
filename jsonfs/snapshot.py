# python
"""
jsonfs/snapshot.py
Snapshot codec: converts between the fs.json record list and a NodeStore.

Layout of fs.json:

    [
      {"inode": 0, "type": "dir", "entries": [{"name": "README", "inode": 1}]},
      {"inode": 1, "type": "reg", "name": "README", "data": "hello\\n"}
    ]
"""
from __future__ import annotations

import json
import logging
import os
import tempfile
from collections import deque
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import jsonschema

from .config import Limits
from .errors import FSError, SnapshotError
from .node import ROOT_ID, Node, NodeKind
from .paths import validate_name
from .store import NodeStore

logger = logging.getLogger(__name__)

# file bytes <-> JSON string; undecodable bytes survive as lone surrogates
CONTENT_ENCODING = "utf-8"
CONTENT_ERRORS = "surrogateescape"

ENTRY_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "name": {"type": "string"},
        "inode": {"type": "integer", "minimum": 0},
    },
    "required": ["name", "inode"],
    "additionalProperties": False,
}

RECORD_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "inode": {"type": "integer", "minimum": 0},
        "type": {"type": "string", "enum": [NodeKind.DIRECTORY.value, NodeKind.FILE.value]},
        "name": {"type": "string"},
        "data": {"type": "string"},
        "size": {"type": "integer", "minimum": 0},
        "entries": {"type": "array", "items": ENTRY_SCHEMA},
    },
    "required": ["inode", "type"],
    "additionalProperties": False,
}

SNAPSHOT_SCHEMA: Dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "$id": "jsonfs.snapshot.schema.json",
    "type": "array",
    "items": RECORD_SCHEMA,
    "minItems": 1,
}


def encode_content(content: bytes) -> str:
    return bytes(content).decode(CONTENT_ENCODING, CONTENT_ERRORS)


def decode_content(data: str) -> bytearray:
    return bytearray(data.encode(CONTENT_ENCODING, CONTENT_ERRORS))


def _validate_records(records: Any) -> None:
    try:
        jsonschema.validate(instance=records, schema=SNAPSHOT_SCHEMA)
    except jsonschema.ValidationError as exc:
        location = "/".join(str(p) for p in exc.absolute_path) or "<root>"
        raise SnapshotError(f"invalid snapshot at {location}: {exc.message}") from exc


def _check_id(value: Any, where: str) -> int:
    # jsonschema accepts 1.0 as an integer; ids must be exact ints
    if type(value) is not int:
        raise SnapshotError(f"{where}: inode {value!r} is not an integer")
    return value


def _node_from_record(record: Dict[str, Any], limits: Limits) -> Node:
    node_id = record["inode"]
    _check_id(node_id, "record")
    kind = NodeKind(record["type"])
    if kind is NodeKind.FILE:
        if "entries" in record:
            raise SnapshotError(f"file record {node_id} has entries")
        try:
            content = decode_content(record.get("data", ""))
        except UnicodeEncodeError as exc:
            raise SnapshotError(f"file record {node_id} has unencodable data") from exc
        if len(content) > limits.max_file_size:
            raise SnapshotError(
                f"file record {node_id} holds {len(content)} bytes, limit is {limits.max_file_size}"
            )
        return Node(node_id, kind, record.get("name", ""), content=content)
    if "data" in record:
        raise SnapshotError(f"directory record {node_id} has data")
    entries = [(entry["name"], entry["inode"]) for entry in record.get("entries", [])]
    if len(entries) > limits.max_dir_entries:
        raise SnapshotError(
            f"directory record {node_id} holds {len(entries)} entries, limit is {limits.max_dir_entries}"
        )
    return Node(node_id, kind, record.get("name", ""), entries=entries)


def load_records(records: Any, limits: Optional[Limits] = None) -> NodeStore:
    """
    Build a NodeStore from parsed snapshot records. Ids are taken verbatim;
    a duplicate id is an error, never renumbered. Raises SnapshotError for
    anything that does not describe a single rooted tree.
    """
    limits = limits or Limits()
    _validate_records(records)
    if len(records) > limits.max_objects:
        raise SnapshotError(
            f"snapshot holds {len(records)} objects, limit is {limits.max_objects}"
        )

    nodes: Dict[int, Node] = {}
    for record in records:
        node = _node_from_record(record, limits)
        if node.id in nodes:
            raise SnapshotError(f"duplicate inode {node.id}")
        nodes[node.id] = node

    root = nodes.get(ROOT_ID)
    if root is None:
        raise SnapshotError("snapshot has no root (inode 0)")
    if not root.is_dir:
        raise SnapshotError("inode 0 must be a directory")
    root.name = ""

    # walk from the root so every node is reached exactly once
    seen: Set[int] = {ROOT_ID}
    queue = deque([root])
    while queue:
        directory = queue.popleft()
        names: Set[str] = set()
        for name, child_id in directory.entries:
            _check_id(child_id, f"directory {directory.id}: entry {name!r}")
            try:
                validate_name(name)
            except FSError as exc:
                raise SnapshotError(f"directory {directory.id}: bad entry name {name!r}") from exc
            if name in names:
                raise SnapshotError(f"directory {directory.id}: duplicate entry {name!r}")
            names.add(name)
            child = nodes.get(child_id)
            if child is None:
                raise SnapshotError(f"directory {directory.id}: entry {name!r} points at missing inode {child_id}")
            if child_id in seen:
                raise SnapshotError(f"inode {child_id} is referenced more than once")
            seen.add(child_id)
            if child.name and child.name != name:
                logger.warning(
                    "Record %d is named %r but listed as %r; using the entry name",
                    child_id, child.name, name,
                )
            child.name = name
            if child.is_dir:
                queue.append(child)

    orphans = sorted(set(nodes) - seen)
    if orphans:
        raise SnapshotError(f"unreachable inodes: {orphans[:10]}")

    store = NodeStore(limits)
    for node_id in sorted(nodes):
        store.insert(nodes[node_id])
    return store


def dump_records(store: NodeStore) -> List[Dict[str, Any]]:
    """Return one record per allocated node, in ascending id order."""
    records: List[Dict[str, Any]] = []
    for node in store:
        record: Dict[str, Any] = {"inode": node.id, "type": node.kind.value}
        if node.id != ROOT_ID:
            record["name"] = node.name
        if node.is_file:
            record["data"] = encode_content(node.content)
        else:
            record["entries"] = [{"name": name, "inode": child} for name, child in node.entries]
        records.append(record)
    return records


def read_snapshot(path: Path, limits: Optional[Limits] = None) -> NodeStore:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SnapshotError(f"cannot read snapshot {path}: {exc}") from exc
    try:
        records = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"snapshot {path} is not valid JSON: {exc}") from exc
    store = load_records(records, limits)
    logger.info("Loaded %d nodes from %s", len(store), path)
    return store


def write_snapshot(store: NodeStore, path: Path) -> None:
    """
    Serialize `store` to `path`. The file is written beside the target and
    moved into place, so a crash mid-write leaves the old snapshot intact.
    """
    path = Path(path)
    payload = json.dumps(dump_records(store), indent=2)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(payload + "\n")
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise
    logger.info("Saved %d nodes to %s", len(store), path)
