# python
"""
jsonfs/store.py
NodeStore: owns every Node, hands out inode numbers and enforces the
capacity ceilings.
"""
import heapq
import logging
from typing import Dict, Iterator, List, Optional

from .config import Limits
from .errors import AlreadyExists, FileTooLarge, InvalidArgument, NotFound, ResourceExhausted
from .node import ROOT_ID, Node

logger = logging.getLogger(__name__)


class NodeStore:
    """
    Arena of nodes keyed by id. Directories refer to children by id only, so
    the store is the single owner of every Node.

    Freed ids go on a min-heap and are handed out again (smallest first)
    before the id space grows.
    """

    def __init__(self, limits: Optional[Limits] = None):
        self.limits = limits or Limits()
        self._nodes: Dict[int, Node] = {}
        self._free: List[int] = []
        self._next_id = ROOT_ID

    @classmethod
    def with_root(cls, limits: Optional[Limits] = None) -> "NodeStore":
        store = cls(limits)
        store.insert(Node.new_dir(store.allocate()))
        return store

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self._nodes

    def __iter__(self) -> Iterator[Node]:
        for node_id in sorted(self._nodes):
            yield self._nodes[node_id]

    @property
    def root(self) -> Node:
        return self.get(ROOT_ID)

    def allocate(self) -> int:
        """
        Return an id not held by any allocated node. Nothing is reserved when
        the object ceiling has been reached.
        """
        self.check_capacity()
        while self._free:
            node_id = heapq.heappop(self._free)
            if node_id not in self._nodes:
                return node_id
        node_id = self._next_id
        self._next_id += 1
        return node_id

    def release(self, node_id: int) -> None:
        """Give back an id from allocate() that never made it into the store."""
        if node_id not in self._nodes:
            heapq.heappush(self._free, node_id)

    def get(self, node_id: int) -> Node:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise NotFound(message=f"no node with id {node_id}") from None

    def insert(self, node: Node) -> None:
        if node.id in self._nodes:
            raise AlreadyExists(message=f"id {node.id} is already allocated")
        self.check_capacity()
        self._nodes[node.id] = node
        if node.id >= self._next_id:
            self._next_id = node.id + 1

    def remove(self, node_id: int) -> Node:
        if node_id == ROOT_ID:
            raise InvalidArgument("/", "the root directory cannot be removed")
        node = self.get(node_id)
        del self._nodes[node_id]
        heapq.heappush(self._free, node_id)
        logger.debug("Freed id %d (%s)", node_id, node.kind.value)
        return node

    def check_capacity(self) -> None:
        if len(self._nodes) >= self.limits.max_objects:
            raise ResourceExhausted(
                message=f"object limit of {self.limits.max_objects} reached"
            )

    def check_file_size(self, size: int, path: Optional[str] = None) -> None:
        if size > self.limits.max_file_size:
            raise FileTooLarge(
                path, f"{size} bytes exceeds the {self.limits.max_file_size} byte file limit"
            )

    def check_dir_capacity(self, directory: Node, path: Optional[str] = None) -> None:
        if len(directory.entries) >= self.limits.max_dir_entries:
            raise ResourceExhausted(
                path, f"directory limit of {self.limits.max_dir_entries} entries reached"
            )

    def total_bytes(self) -> int:
        return sum(node.size for node in self._nodes.values())
