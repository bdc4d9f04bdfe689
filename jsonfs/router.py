# python
"""
jsonfs/router.py
Command router for the telnet shell. Every command is translated into
JsonFS calls; nothing touches the tree directly.
"""
import logging
import shlex
import stat
from typing import Callable, Dict, List, Tuple

from .errors import FSError
from .fs import JsonFS
from .session import Session

logger = logging.getLogger(__name__)

DEFAULT_OWNER = "user"
DEFAULT_GROUP = "user"
DEFAULT_TIMESTAMP = "Jan 01 00:00"


def _format_ls_entry(attrs: dict, name: str) -> str:
    perms = stat.filemode(attrs["st_mode"])
    return (
        f"{perms} {attrs['st_nlink']:>3} {DEFAULT_OWNER} {DEFAULT_GROUP} "
        f"{attrs['st_size']:>8} {DEFAULT_TIMESTAMP} {name}"
    )


def _error(cmd: str, target: str, exc: FSError) -> str:
    return f"{cmd}: {target}: {exc.strerror}"


class Router:
    def __init__(self, fs: JsonFS, max_output: int = 16_384):
        self.fs = fs
        self.max_output = int(max_output)
        self._commands: Dict[str, Callable[[Session, List[str]], str]] = {
            "pwd": self._handle_pwd,
            "cd": self._handle_cd,
            "ls": self._handle_ls,
            "cat": self._handle_cat,
            "stat": self._handle_stat,
            "touch": self._handle_touch,
            "mkdir": self._handle_mkdir,
            "rm": self._handle_rm,
            "rmdir": self._handle_rmdir,
            "write": self._handle_write,
            "append": self._handle_write,
            "truncate": self._handle_truncate,
            "df": self._handle_df,
            "history": self._handle_history,
        }

    async def dispatch(self, session: Session, line: str) -> Tuple[str, bool]:
        """
        Dispatch a single input line and return (output, truncated_flag).
        """
        line = (line or "").strip()
        if not line:
            return ("", False)

        try:
            argv: List[str] = shlex.split(line)
        except ValueError:
            # unbalanced quotes; fall back to a naive split
            argv = line.split()

        cmd = argv[0] if argv else ""
        handler = self._commands.get(cmd)
        if handler is None:
            return (f"sh: {cmd}: command not found", False)
        out = handler(session, argv)
        truncated = len(out.encode()) > self.max_output
        return (out[: self.max_output], truncated)

    def _absolute(self, session: Session, target: str) -> str:
        """
        Join `target` onto the session cwd and fold '.' and '..' away. '..'
        at the root stays at the root.
        """
        target = (target or "").strip()
        base = [] if target.startswith("/") else [pt for pt in session.cwd.split("/") if pt]
        parts: List[str] = list(base)
        for entry in target.split("/"):
            if not entry or entry == ".":
                continue
            if entry == "..":
                if parts:
                    parts.pop()
                continue
            parts.append(entry)
        return "/" + "/".join(parts)

    def _paths(self, session: Session, argv: List[str]) -> List[Tuple[str, str]]:
        """Operands of argv; options are skipped up to a "--" marker."""
        targets: List[Tuple[str, str]] = []
        options = True
        for arg in argv[1:]:
            if options and arg == "--":
                options = False
                continue
            if options and arg.startswith("-") and arg != "-":
                continue
            targets.append((arg, self._absolute(session, arg)))
        return targets

    def _handle_pwd(self, session: Session, argv: List[str]) -> str:
        return session.cwd

    def _handle_cd(self, session: Session, argv: List[str]) -> str:
        display = argv[1] if len(argv) > 1 else "/"
        path = self._absolute(session, display)
        try:
            self.fs.readdir(path)
        except FSError as exc:
            return _error("cd", display, exc)
        session.cwd = path
        return ""

    def _handle_ls(self, session: Session, argv: List[str]) -> str:
        targets = self._paths(session, argv) or [(".", session.cwd)]
        blocks: List[str] = []
        for display, path in targets:
            try:
                attrs = self.fs.getattr(path)
                if not stat.S_ISDIR(attrs["st_mode"]):
                    blocks.append(_format_ls_entry(attrs, display))
                    continue
                lines = []
                for name in self.fs.readdir(path):
                    child = path if name == "." else self._absolute(session, f"{path}/{name}")
                    lines.append(_format_ls_entry(self.fs.getattr(child), name))
            except FSError as exc:
                blocks.append(f"ls: cannot access '{display}': {exc.strerror}")
                continue
            if len(targets) > 1:
                lines.insert(0, f"{display}:")
            blocks.append("\n".join(lines))
        return "\n".join(blocks)

    def _handle_cat(self, session: Session, argv: List[str]) -> str:
        chunks: List[str] = []
        for display, path in self._paths(session, argv):
            try:
                size = self.fs.getattr(path)["st_size"]
                self.fs.open(path)
                data = self.fs.read(path, size, 0)
            except FSError as exc:
                chunks.append(_error("cat", display, exc))
                continue
            chunks.append(data.decode("utf-8", errors="replace").rstrip("\n"))
        return "\n".join(chunks)

    def _handle_stat(self, session: Session, argv: List[str]) -> str:
        lines: List[str] = []
        for display, path in self._paths(session, argv):
            try:
                attrs = self.fs.getattr(path)
            except FSError as exc:
                lines.append(_error("stat", display, exc))
                continue
            kind = "directory" if stat.S_ISDIR(attrs["st_mode"]) else "regular file"
            lines.append(
                f"  File: {display}\n"
                f"  Size: {attrs['st_size']}\tInode: {attrs['st_ino']}\tLinks: {attrs['st_nlink']}\t{kind}\n"
                f"Access: ({stat.S_IMODE(attrs['st_mode']):04o}/{stat.filemode(attrs['st_mode'])})"
            )
        return "\n".join(lines)

    def _handle_touch(self, session: Session, argv: List[str]) -> str:
        errors: List[str] = []
        for display, path in self._paths(session, argv):
            try:
                self.fs.getattr(path)
                continue
            except FSError:
                pass
            try:
                self.fs.create(path)
            except FSError as exc:
                errors.append(_error("touch", display, exc))
        return "\n".join(errors)

    def _run_each(
        self, cmd: str, op: Callable[[str], object], session: Session, argv: List[str]
    ) -> str:
        targets = self._paths(session, argv)
        if not targets:
            return f"{cmd}: missing operand"
        errors: List[str] = []
        for display, path in targets:
            try:
                op(path)
            except FSError as exc:
                errors.append(_error(cmd, display, exc))
        return "\n".join(errors)

    def _handle_mkdir(self, session: Session, argv: List[str]) -> str:
        return self._run_each("mkdir", self.fs.mkdir, session, argv)

    def _handle_rm(self, session: Session, argv: List[str]) -> str:
        return self._run_each("rm", self.fs.unlink, session, argv)

    def _handle_rmdir(self, session: Session, argv: List[str]) -> str:
        return self._run_each("rmdir", self.fs.rmdir, session, argv)

    def _handle_write(self, session: Session, argv: List[str]) -> str:
        """
        write PATH TEXT...   replace the file content with TEXT and a newline
        append PATH TEXT...  add TEXT and a newline at the end of the file
        The file is created when missing.
        """
        cmd = argv[0]
        if len(argv) < 2:
            return f"{cmd}: missing operand"
        display = argv[1]
        path = self._absolute(session, display)
        data = (" ".join(argv[2:]) + "\n").encode("utf-8")
        try:
            try:
                size = self.fs.getattr(path)["st_size"]
            except FSError:
                self.fs.create(path)
                size = 0
            self.fs.open(path)
            if cmd == "write":
                # write first so a failed write leaves the old content in place
                self.fs.write(path, data, 0)
                self.fs.truncate(path, len(data))
            else:
                self.fs.write(path, data, size)
        except FSError as exc:
            return _error(cmd, display, exc)
        return ""

    def _handle_truncate(self, session: Session, argv: List[str]) -> str:
        if len(argv) < 3:
            return "truncate: usage: truncate PATH SIZE"
        display, raw_size = argv[1], argv[2]
        try:
            size = int(raw_size)
        except ValueError:
            return f"truncate: invalid number: '{raw_size}'"
        try:
            self.fs.truncate(self._absolute(session, display), size)
        except FSError as exc:
            return _error("truncate", display, exc)
        return ""

    def _handle_df(self, session: Session, argv: List[str]) -> str:
        usage = self.fs.usage()
        return (
            "Objects  Limit    Bytes\n"
            f"{usage['objects']:<8} {usage['max_objects']:<8} {usage['bytes']}"
        )

    def _handle_history(self, session: Session, argv: List[str]) -> str:
        return "\n".join(f"{i:>5}  {cmd}" for i, cmd in enumerate(session.history, 1))
