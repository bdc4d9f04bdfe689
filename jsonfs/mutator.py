# python
"""
jsonfs/mutator.py
TreeMutator: every change to the tree goes through here. Each operation
checks all of its failure conditions before touching the store, so a failed
call leaves no partial state behind.
"""
import logging
from typing import Optional

from .errors import (
    AlreadyExists,
    InvalidArgument,
    IsADirectory,
    NotADirectory,
    NotEmpty,
    NotFound,
    OutOfMemory,
)
from .node import Node, NodeKind
from .paths import validate_name
from .store import NodeStore

logger = logging.getLogger(__name__)


class TreeMutator:
    def __init__(self, store: NodeStore):
        self.store = store

    def _directory(self, node_id: int, path: Optional[str] = None) -> Node:
        node = self.store.get(node_id)
        if not node.is_dir:
            raise NotADirectory(path)
        return node

    def _file(self, node_id: int, path: Optional[str] = None) -> Node:
        node = self.store.get(node_id)
        if node.is_dir:
            raise IsADirectory(path)
        return node

    def lookup(self, parent_id: int, name: str, path: Optional[str] = None) -> int:
        parent = self._directory(parent_id, path)
        idx = parent.find_entry(name)
        if idx is None:
            raise NotFound(path)
        return parent.entries[idx][1]

    def _add_child(self, parent_id: int, name: str, kind: NodeKind, path: Optional[str]) -> int:
        validate_name(name, path)
        parent = self._directory(parent_id, path)
        if parent.find_entry(name) is not None:
            raise AlreadyExists(path)
        self.store.check_dir_capacity(parent, path)
        node_id = self.store.allocate()
        if kind is NodeKind.DIRECTORY:
            node = Node.new_dir(node_id, name)
        else:
            node = Node.new_file(node_id, name)
        try:
            self.store.insert(node)
        except Exception:
            self.store.release(node_id)
            raise
        parent.entries.append((name, node_id))
        logger.debug("Created %s %r as id %d under id %d", kind.value, name, node_id, parent_id)
        return node_id

    def create_file(self, parent_id: int, name: str, path: Optional[str] = None) -> int:
        return self._add_child(parent_id, name, NodeKind.FILE, path)

    def create_dir(self, parent_id: int, name: str, path: Optional[str] = None) -> int:
        return self._add_child(parent_id, name, NodeKind.DIRECTORY, path)

    def remove_entry(
        self, parent_id: int, name: str, expect_kind: NodeKind, path: Optional[str] = None
    ) -> int:
        """
        Destroy the child `name` of `parent_id` and drop its entry. The child
        must be of `expect_kind`; a directory must also be empty.
        Returns the freed id.
        """
        parent = self._directory(parent_id, path)
        idx = parent.find_entry(name)
        if idx is None:
            raise NotFound(path)
        child_id = parent.entries[idx][1]
        target = self.store.get(child_id)
        if expect_kind is NodeKind.DIRECTORY:
            if not target.is_dir:
                raise NotADirectory(path)
            if target.entries:
                raise NotEmpty(path)
        elif target.is_dir:
            raise IsADirectory(path)
        self.store.remove(child_id)
        del parent.entries[idx]
        logger.debug("Removed %s %r (id %d) from id %d", target.kind.value, name, child_id, parent_id)
        return child_id

    def write(self, file_id: int, offset: int, data: bytes, path: Optional[str] = None) -> int:
        """
        Write `data` at `offset`. Writing past the end grows the file to
        exactly offset + len(data), zero-filling any gap.
        """
        node = self._file(file_id, path)
        if offset < 0:
            raise InvalidArgument(path, "negative offset")
        end = offset + len(data)
        self.store.check_file_size(end, path)
        content = node.content
        if end > len(content):
            try:
                content.extend(bytes(end - len(content)))
            except MemoryError:
                raise OutOfMemory(path) from None
        content[offset:end] = data
        return len(data)

    def truncate(self, file_id: int, new_size: int, path: Optional[str] = None) -> None:
        node = self._file(file_id, path)
        if new_size < 0:
            raise InvalidArgument(path, "negative size")
        self.store.check_file_size(new_size, path)
        content = node.content
        if new_size > len(content):
            try:
                content.extend(bytes(new_size - len(content)))
            except MemoryError:
                raise OutOfMemory(path) from None
        else:
            del content[new_size:]
