# python
"""
jsonfs/errors.py
Error taxonomy for filesystem calls. Every FSError is an OSError carrying the
errno a FUSE binding would hand back to the kernel.
"""
import errno
import os
from typing import Optional


class FSError(OSError):
    code = errno.EIO

    def __init__(self, path: Optional[str] = None, message: Optional[str] = None):
        super().__init__(self.code, message or os.strerror(self.code), path)


class NotFound(FSError):
    code = errno.ENOENT


class NotADirectory(FSError):
    code = errno.ENOTDIR


class IsADirectory(FSError):
    code = errno.EISDIR


class NotEmpty(FSError):
    code = errno.ENOTEMPTY


class AlreadyExists(FSError):
    code = errno.EEXIST


class ResourceExhausted(FSError):
    """A capacity ceiling (object count, file size, directory entries) was hit."""

    code = errno.ENOSPC


class FileTooLarge(ResourceExhausted):
    code = errno.EFBIG


class OutOfMemory(FSError):
    code = errno.ENOMEM


class InvalidArgument(FSError):
    code = errno.EINVAL


class NameTooLong(InvalidArgument):
    code = errno.ENAMETOOLONG


class NotSupported(FSError):
    code = errno.ENOSYS


class SnapshotError(Exception):
    """
    The snapshot file is unreadable or does not describe a valid tree.
    Raised only while loading; callers treat it as fatal.
    """
