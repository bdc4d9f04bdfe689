# python
"""
jsonfs/fs.py
JsonFS: the filesystem call surface. This is the only object a mount
adapter (or the telnet shell) talks to.

Signatures follow fusepy's Operations so the class can be handed to
fuse.FUSE() unchanged:

    fs = JsonFS("fs.json")
    fuse.FUSE(fs, mountpoint, foreground=True)

Errors are raised as jsonfs.errors.FSError, an OSError whose errno is the
code the kernel should see.
chmod, chown and utimens succeed without effect; operations outside the
supported set (rename, symlink, link, xattrs) fail with ENOSYS.
"""
import logging
import stat
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import Limits
from .errors import InvalidArgument, IsADirectory, NotADirectory, NotSupported
from .mutator import TreeMutator
from .node import Node, NodeKind
from .paths import NAME_MAX, resolve, split_parent
from .snapshot import read_snapshot, write_snapshot
from .store import NodeStore

logger = logging.getLogger(__name__)

DIR_MODE = stat.S_IFDIR | 0o755
FILE_MODE = stat.S_IFREG | 0o644
DIR_SIZE = 4096

NOOP_OPS = frozenset({
    "access", "chmod", "chown", "flush", "fsync", "fsyncdir",
    "opendir", "release", "releasedir", "utimens",
})


class JsonFS:
    def __init__(
        self,
        snapshot_path: Optional[Path] = None,
        limits: Optional[Limits] = None,
        create_missing: bool = False,
        store: Optional[NodeStore] = None,
    ):
        self.snapshot_path = Path(snapshot_path) if snapshot_path else None
        self.limits = limits or (store.limits if store else Limits())
        self.create_missing = create_missing
        self._lock = threading.RLock()
        self._store = store or NodeStore.with_root(self.limits)
        self._mutator = TreeMutator(self._store)

    def __call__(self, op: str, *args: Any) -> Any:
        # fusepy dispatches through __call__; mode and time changes are
        # accepted and ignored, as in fusepy's Operations base
        if op in NOOP_OPS:
            return 0
        handler = getattr(self, op, None)
        if handler is None or op.startswith("_"):
            raise NotSupported(message=f"operation {op!r} is not supported")
        return handler(*args)

    # lifecycle hooks

    def init(self, path: str = "/") -> None:
        """
        Load the snapshot into a fresh store. SnapshotError is fatal: the
        caller must not serve requests after it.
        """
        if self.snapshot_path is None:
            logger.info("No snapshot configured; starting from an empty root")
            return
        if not self.snapshot_path.exists() and self.create_missing:
            logger.info("Snapshot %s does not exist; starting from an empty root", self.snapshot_path)
            store = NodeStore.with_root(self.limits)
        else:
            store = read_snapshot(self.snapshot_path, self.limits)
        with self._lock:
            self._store = store
            self._mutator = TreeMutator(store)

    def destroy(self, path: str = "/") -> bool:
        """
        Write the tree back to the snapshot. Failures are logged, never
        raised; returns whether the snapshot was written.
        """
        if self.snapshot_path is None:
            return True
        with self._lock:
            try:
                write_snapshot(self._store, self.snapshot_path)
            except Exception:
                logger.exception(
                    "Failed to save snapshot %s; in-memory changes are lost", self.snapshot_path
                )
                return False
        return True

    # helpers; callers hold the lock

    def _node(self, path: str) -> Node:
        return self._store.get(resolve(self._store, path))

    def _file(self, path: str) -> Node:
        node = self._node(path)
        if node.is_dir:
            raise IsADirectory(path)
        return node

    def _parent(self, path: str) -> Tuple[int, str]:
        parent_path, name = split_parent(path)
        return resolve(self._store, parent_path), name

    # filesystem calls

    def getattr(self, path: str, fh: Optional[int] = None) -> Dict[str, Any]:
        with self._lock:
            node = self._node(path)
            if node.is_dir:
                return {"st_ino": node.id, "st_mode": DIR_MODE, "st_nlink": 2, "st_size": DIR_SIZE}
            return {"st_ino": node.id, "st_mode": FILE_MODE, "st_nlink": 1, "st_size": node.size}

    def readdir(self, path: str, fh: Optional[int] = None) -> List[str]:
        with self._lock:
            node = self._node(path)
            if not node.is_dir:
                raise NotADirectory(path)
            return [".", ".."] + [name for name, _ in node.entries]

    def open(self, path: str, flags: int = 0) -> int:
        # no handle table: read/write re-resolve the path on every call
        with self._lock:
            self._file(path)
        return 0

    def read(self, path: str, size: int, offset: int, fh: Optional[int] = None) -> bytes:
        with self._lock:
            content = self._file(path).content
            if offset < 0:
                raise InvalidArgument(path, "negative offset")
            if offset >= len(content) or size <= 0:
                return b""
            return bytes(content[offset : offset + size])

    def write(self, path: str, data: bytes, offset: int, fh: Optional[int] = None) -> int:
        with self._lock:
            node = self._file(path)
            return self._mutator.write(node.id, offset, data, path)

    def truncate(self, path: str, length: int, fh: Optional[int] = None) -> None:
        with self._lock:
            node = self._file(path)
            self._mutator.truncate(node.id, length, path)

    def create(self, path: str, mode: int = 0o644, fi: Any = None) -> int:
        with self._lock:
            parent_id, name = self._parent(path)
            self._mutator.create_file(parent_id, name, path)
        return 0

    def mkdir(self, path: str, mode: int = 0o755) -> None:
        with self._lock:
            parent_id, name = self._parent(path)
            self._mutator.create_dir(parent_id, name, path)

    def unlink(self, path: str) -> None:
        with self._lock:
            parent_id, name = self._parent(path)
            self._mutator.remove_entry(parent_id, name, NodeKind.FILE, path)

    def rmdir(self, path: str) -> None:
        with self._lock:
            parent_id, name = self._parent(path)
            self._mutator.remove_entry(parent_id, name, NodeKind.DIRECTORY, path)

    def statfs(self, path: str = "/") -> Dict[str, int]:
        with self._lock:
            used = len(self._store)
        return {
            "f_bsize": 1,
            "f_frsize": 1,
            "f_files": self.limits.max_objects,
            "f_ffree": max(self.limits.max_objects - used, 0),
            "f_favail": max(self.limits.max_objects - used, 0),
            "f_namemax": NAME_MAX,
        }

    def usage(self) -> Dict[str, int]:
        """Object and byte counts against the configured ceilings."""
        with self._lock:
            return {
                "objects": len(self._store),
                "bytes": self._store.total_bytes(),
                "max_objects": self.limits.max_objects,
                "max_file_size": self.limits.max_file_size,
                "max_dir_entries": self.limits.max_dir_entries,
            }
