# python
"""
jsonfs/node.py
Node records held by the NodeStore.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

ROOT_ID = 0


class NodeKind(Enum):
    DIRECTORY = "dir"
    FILE = "reg"


@dataclass
class Node:
    id: int
    kind: NodeKind
    name: str = ""
    content: Optional[bytearray] = field(default=None, repr=False)
    entries: Optional[List[Tuple[str, int]]] = field(default=None, repr=False)

    def __post_init__(self):
        # a file never has entries, a directory never has content
        if self.kind is NodeKind.FILE:
            if self.content is None:
                self.content = bytearray()
            self.entries = None
        else:
            if self.entries is None:
                self.entries = []
            self.content = None

    @classmethod
    def new_file(cls, node_id: int, name: str, data: bytes = b"") -> "Node":
        return cls(node_id, NodeKind.FILE, name, content=bytearray(data))

    @classmethod
    def new_dir(cls, node_id: int, name: str = "") -> "Node":
        return cls(node_id, NodeKind.DIRECTORY, name, entries=[])

    @property
    def is_dir(self) -> bool:
        return self.kind is NodeKind.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.kind is NodeKind.FILE

    @property
    def size(self) -> int:
        return len(self.content) if self.is_file else 0

    def find_entry(self, name: str) -> Optional[int]:
        """Return the index of `name` in entries, first match wins."""
        for idx, (entry_name, _) in enumerate(self.entries or ()):
            if entry_name == name:
                return idx
        return None
