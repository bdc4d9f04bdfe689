# python
"""
tests/test_router_fs.py
Unit tests for the shell commands, all backed by a JsonFS loaded from a snapshot.
"""
from pathlib import Path
import asyncio
import json

from jsonfs.config import Limits
from jsonfs.fs import JsonFS
from jsonfs.router import Router
from jsonfs.session import Session, iso_ts

SNAPSHOT = [
    {"inode": 0, "type": "dir", "entries": [
        {"name": "README.txt", "inode": 1},
        {"name": "bin", "inode": 2},
        {"name": "logs", "inode": 3},
    ]},
    {"inode": 1, "type": "reg", "name": "README.txt", "data": "welcome\n"},
    {"inode": 2, "type": "dir", "name": "bin", "entries": []},
    {"inode": 3, "type": "dir", "name": "logs", "entries": [
        {"name": "system.log", "inode": 4},
        {"name": "auth.log", "inode": 5},
    ]},
    {"inode": 4, "type": "reg", "name": "system.log", "data": "boot ok\n"},
    {"inode": 5, "type": "reg", "name": "auth.log", "data": ""},
]


def _entry_names(output: str):
    return [line.split()[-1] for line in output.splitlines() if line.strip()]


def _make_session(tmp_path: Path) -> Session:
    return Session(
        session_id="test-session",
        remote_ip="127.0.0.1",
        remote_port=12345,
        started_ts=iso_ts(),
        tty_path=str(tmp_path / "tty.log"),
        _events_file=str(tmp_path / "events.jsonl"),
    )


def _make_router(tmp_path: Path) -> Router:
    snapshot = tmp_path / "fs.json"
    snapshot.write_text(json.dumps(SNAPSHOT), encoding="utf-8")
    fs = JsonFS(snapshot)
    fs.init()
    return Router(fs)


def _dispatch(router: Router, session: Session, cmd: str):
    return asyncio.run(router.dispatch(session, cmd))


def test_pwd_starts_at_root(tmp_path: Path) -> None:
    output, truncated = _dispatch(_make_router(tmp_path), _make_session(tmp_path), "pwd")
    assert not truncated
    assert output == "/"


def test_ls_lists_in_insertion_order(tmp_path: Path) -> None:
    session = _make_session(tmp_path)
    router = _make_router(tmp_path)
    output, truncated = _dispatch(router, session, "ls -la")
    assert not truncated
    assert _entry_names(output) == [".", "..", "README.txt", "bin", "logs"]
    lines = output.splitlines()
    assert lines[0].startswith("drwxr-xr-x")
    assert lines[2].startswith("-rw-r--r--")
    assert lines[2].split()[4] == "8"


def test_ls_file_target(tmp_path: Path) -> None:
    output, _ = _dispatch(_make_router(tmp_path), _make_session(tmp_path), "ls README.txt")
    assert _entry_names(output) == ["README.txt"]


def test_ls_missing(tmp_path: Path) -> None:
    output, _ = _dispatch(_make_router(tmp_path), _make_session(tmp_path), "ls nope")
    assert output == "ls: cannot access 'nope': No such file or directory"


def test_cd_and_relative_paths(tmp_path: Path) -> None:
    session = _make_session(tmp_path)
    router = _make_router(tmp_path)
    out, _ = _dispatch(router, session, "cd logs")
    assert out == ""
    assert session.cwd == "/logs"
    output, _ = _dispatch(router, session, "cat system.log")
    assert output == "boot ok"
    output, _ = _dispatch(router, session, "ls ../bin")
    assert _entry_names(output) == [".", ".."]
    _dispatch(router, session, "cd ../..")
    assert session.cwd == "/"


def test_cd_into_file_fails(tmp_path: Path) -> None:
    session = _make_session(tmp_path)
    out, _ = _dispatch(_make_router(tmp_path), session, "cd README.txt")
    assert out == "cd: README.txt: Not a directory"
    assert session.cwd == "/"


def test_mkdir_touch_write_and_cat(tmp_path: Path) -> None:
    session = _make_session(tmp_path)
    router = _make_router(tmp_path)
    assert _dispatch(router, session, "mkdir /data")[0] == ""
    assert _dispatch(router, session, "touch /data/empty")[0] == ""
    assert _dispatch(router, session, 'write /data/note "hello there"')[0] == ""
    assert _dispatch(router, session, "append /data/note again")[0] == ""
    assert _dispatch(router, session, "cat /data/note")[0] == "hello there\nagain"
    assert _dispatch(router, session, "write /data/note short")[0] == ""
    assert _dispatch(router, session, "cat /data/note")[0] == "short"
    output, _ = _dispatch(router, session, "ls /data")
    assert _entry_names(output) == [".", "..", "empty", "note"]


def test_mkdir_twice_reports_exists(tmp_path: Path) -> None:
    session = _make_session(tmp_path)
    router = _make_router(tmp_path)
    _dispatch(router, session, "mkdir /a")
    out, _ = _dispatch(router, session, "mkdir /a")
    assert out == "mkdir: /a: File exists"


def test_rm_and_rmdir(tmp_path: Path) -> None:
    session = _make_session(tmp_path)
    router = _make_router(tmp_path)
    assert _dispatch(router, session, "rmdir logs")[0] == "rmdir: logs: Directory not empty"
    assert _dispatch(router, session, "rm logs")[0] == "rm: logs: Is a directory"
    assert _dispatch(router, session, "rm logs/system.log logs/auth.log")[0] == ""
    assert _dispatch(router, session, "rmdir logs")[0] == ""
    assert _dispatch(router, session, "rm logs/system.log")[0] == "rm: logs/system.log: No such file or directory"
    assert _dispatch(router, session, "rm")[0] == "rm: missing operand"


def test_truncate_and_stat(tmp_path: Path) -> None:
    session = _make_session(tmp_path)
    router = _make_router(tmp_path)
    assert _dispatch(router, session, "truncate README.txt 3")[0] == ""
    assert _dispatch(router, session, "cat README.txt")[0] == "wel"
    output, _ = _dispatch(router, session, "stat README.txt")
    assert "Size: 3" in output
    assert "Inode: 1" in output
    assert "regular file" in output
    assert _dispatch(router, session, "truncate README.txt x")[0] == "truncate: invalid number: 'x'"
    assert _dispatch(router, session, "truncate bin 0")[0] == "truncate: bin: Is a directory"


def test_df_counts_objects(tmp_path: Path) -> None:
    output, _ = _dispatch(_make_router(tmp_path), _make_session(tmp_path), "df")
    assert output.splitlines()[1].split()[0] == "6"


def test_unknown_command(tmp_path: Path) -> None:
    output, truncated = _dispatch(_make_router(tmp_path), _make_session(tmp_path), "frobnicate")
    assert output == "sh: frobnicate: command not found"
    assert not truncated


def test_output_is_truncated(tmp_path: Path) -> None:
    session = _make_session(tmp_path)
    router = _make_router(tmp_path)
    router.max_output = 4
    output, truncated = _dispatch(router, session, "cat README.txt")
    assert truncated
    assert output == "welc"


def test_double_dash_reaches_dash_names(tmp_path: Path) -> None:
    session = _make_session(tmp_path)
    router = _make_router(tmp_path)
    assert _dispatch(router, session, "touch -- -x")[0] == ""
    output, _ = _dispatch(router, session, "ls -l -- -x")
    assert _entry_names(output) == ["-x"]
    assert _dispatch(router, session, "rm -- -x")[0] == ""
    output, _ = _dispatch(router, session, "ls -la")
    assert "-x" not in _entry_names(output)


def test_oversized_write_keeps_old_content(tmp_path: Path) -> None:
    session = _make_session(tmp_path)
    router = Router(JsonFS(limits=Limits(max_file_size=8)))
    assert _dispatch(router, session, "write /f abc")[0] == ""
    out, _ = _dispatch(router, session, "write /f much too long")
    assert out.startswith("write: /f: ")
    assert _dispatch(router, session, "cat /f")[0] == "abc"
    assert _dispatch(router, session, "write /f xy")[0] == ""
    assert _dispatch(router, session, "cat /f")[0] == "xy"
