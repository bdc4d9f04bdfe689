# python
"""
jsonfs/paths.py
Path parsing and resolution of slash-separated paths to node ids.
"""
from typing import Iterator, Optional, Tuple

from .errors import InvalidArgument, NameTooLong, NotFound
from .node import ROOT_ID
from .store import NodeStore

NAME_MAX = 255
_RESERVED_NAMES = (".", "..")


def validate_name(name: str, path: Optional[str] = None) -> str:
    """
    Check `name` against the entry-name contract: a non-empty string with no
    '/' or NUL, not '.' or '..', at most NAME_MAX bytes once UTF-8 encoded.
    """
    if not isinstance(name, str) or not name:
        raise InvalidArgument(path, "empty entry name")
    if "/" in name or "\x00" in name:
        raise InvalidArgument(path, f"invalid character in entry name {name!r}")
    if name in _RESERVED_NAMES:
        raise InvalidArgument(path, f"reserved entry name {name!r}")
    try:
        encoded = name.encode("utf-8", "surrogateescape")
    except UnicodeEncodeError:
        raise InvalidArgument(path, f"unencodable entry name {name!r}") from None
    if len(encoded) > NAME_MAX:
        raise NameTooLong(path)
    return name


def iter_segments(path: str) -> Iterator[str]:
    """
    Yield the components of an absolute path one at a time. Empty components
    are skipped, so "/a//b/" yields "a" then "b".
    """
    if not isinstance(path, str) or not path.startswith("/"):
        raise InvalidArgument(path if isinstance(path, str) else None, "path must be absolute")
    for segment in path.split("/"):
        if segment:
            yield validate_name(segment, path)


def split_parent(path: str) -> Tuple[str, str]:
    """
    Split `path` into (parent path, final component).

        >>> split_parent("/a/b/")
        ('/a', 'b')
    """
    segments = list(iter_segments(path))
    if not segments:
        raise InvalidArgument(path, "the root has no parent")
    return "/" + "/".join(segments[:-1]), segments[-1]


def resolve(store: NodeStore, path: str) -> int:
    """
    Walk `path` from the root and return the id it names. Raises NotFound if
    a component is missing or an intermediate component is a file.
    """
    if path == "/":
        return ROOT_ID
    current = store.root
    for segment in iter_segments(path):
        if not current.is_dir:
            raise NotFound(path)
        idx = current.find_entry(segment)
        if idx is None:
            raise NotFound(path)
        current = store.get(current.entries[idx][1])
    return current.id
