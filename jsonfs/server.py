# python
"""
jsonfs/server.py
Asyncio telnet shell over a JsonFS tree, using telnetlib3.

The server brackets the filesystem's lifetime: the snapshot is loaded before
the socket opens and written back after it closes.
"""
import asyncio
import datetime
import logging
import pathlib
import signal
import sys
import uuid
from typing import Any, Dict, Optional

import telnetlib3
from telnetlib3.telopt import ECHO, WILL

from .config import Limits, load_config
from .errors import SnapshotError
from .fs import JsonFS
from .router import Router
from .session import Session

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("exit", "logout")


def _ensure_dirs(config: Dict[str, Any]):
    pathlib.Path(config["paths"]["logs_dir"]).mkdir(parents=True, exist_ok=True)
    pathlib.Path(config["paths"]["tty_dir"]).mkdir(parents=True, exist_ok=True)


def _normalize_for_terminal(text: str) -> str:
    """
    Convert newline usage to CRLF sequences that telnet clients expect.
    """
    if not text:
        return ""
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    return normalized.replace("\n", "\r\n")


def make_shell(router: Router, config: Dict[str, Any]):
    """Return the telnetlib3 shell coroutine bound to `router`."""

    async def shell(reader, writer) -> None:
        peer = writer.get_extra_info("peername") or ("0.0.0.0", 0)
        session_id = str(uuid.uuid4())
        session = Session(
            session_id=session_id,
            remote_ip=peer[0],
            remote_port=peer[1],
            started_ts=datetime.datetime.now(datetime.timezone.utc).isoformat(),
            tty_path=str(pathlib.Path(config["paths"]["tty_dir"]) / f"{session_id}.log"),
            _events_file=config["paths"]["events_file"],
        )
        if hasattr(writer, "iac"):
            writer.iac(WILL, ECHO)
        await session.log("session.connect", "connect", banner=config["server"]["banner"])
        await session.write_tty("out", config["server"]["banner"])
        try:
            writer.write(config["server"]["banner"] + "\r\n")
            await writer.drain()

            prompt = lambda: f"{config['hostname']}:{session.cwd}$ "

            while True:
                writer.write(prompt())
                await writer.drain()
                line = await reader.readline()
                if not line:
                    break
                session.bytes_in += len(line.encode())
                line = line.rstrip("\r\n")
                if not line.strip():
                    continue
                session.record_command(line)
                await session.write_tty("in", line)
                await session.log("command.input", "shell", raw=line, argv=line.split())
                if not getattr(writer, "will_echo", False):
                    writer.write(_normalize_for_terminal(line) + "\r\n")
                cmd = line.split()[0]
                exit_cmd = cmd in EXIT_COMMANDS
                if exit_cmd:
                    out, truncated = "", False
                else:
                    out, truncated = await router.dispatch(session, line)
                await session.write_tty("out", out)
                await session.log(
                    "command.output", "shell", bytes=len(out.encode()), truncated=truncated
                )
                normalized = _normalize_for_terminal(out)
                if normalized:
                    writer.write(normalized + "\r\n")
                    session.bytes_out += len(normalized.encode())
                await writer.drain()
                if exit_cmd:
                    break
        except (ConnectionError, asyncio.IncompleteReadError) as exc:
            logger.debug("Session %s dropped: %s", session_id, exc)
        finally:
            started = datetime.datetime.fromisoformat(session.started_ts)
            now = datetime.datetime.now(datetime.timezone.utc)
            await session.log(
                "session.close",
                "close",
                duration_ms=int((now - started).total_seconds() * 1000),
                tty_path=session.tty_path,
                bytes_in=session.bytes_in,
                bytes_out=session.bytes_out,
            )
            writer.close()

    return shell


def build_fs(config: Dict[str, Any], create_missing: bool = False) -> JsonFS:
    return JsonFS(
        pathlib.Path(config["paths"]["snapshot"]),
        limits=Limits.from_config(config),
        create_missing=create_missing,
    )


async def start_server(config: Optional[Dict[str, Any]] = None, create_missing: bool = False):
    """
    Load the snapshot, serve until SIGINT/SIGTERM, then save the snapshot.
    SnapshotError from the load propagates before any socket is opened.
    """
    config = config or load_config()
    _ensure_dirs(config)
    fs = build_fs(config, create_missing)
    fs.init()

    router = Router(fs, max_output=config["limits"]["max_output_bytes"])
    host = config["server"]["host"]
    port = config["server"]["port"]
    server = await telnetlib3.create_server(shell=make_shell(router, config), host=host, port=port)

    # derive the bound port so callers can connect when port=0 (ephemeral)
    actual_host, actual_port = host, port
    socks = getattr(server, "sockets", None)
    if socks:
        sockname = socks[0].getsockname()
        actual_host, actual_port = sockname[0], sockname[1]
        if actual_host in ("0.0.0.0", "", "::"):
            actual_host = "127.0.0.1"

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except (NotImplementedError, RuntimeError):
            # not available on this platform/thread; Ctrl+C still cancels
            pass

    logger.info("Serving %s", fs.snapshot_path)
    print(f"Listening on {actual_host}:{actual_port}", flush=True)
    try:
        await stop.wait()
    finally:
        server.close()
        await server.wait_closed()
        if fs.destroy():
            print(f"Saved {fs.snapshot_path}", flush=True)
    return server


def main(argv=None) -> int:
    import argparse

    config = load_config()
    parser = argparse.ArgumentParser(prog="jsonfs", description="Serve a JSON snapshot tree over telnet")
    parser.add_argument("--snapshot", default=config["paths"]["snapshot"])
    parser.add_argument("--host", default=config["server"]["host"])
    parser.add_argument("--port", type=int, default=config["server"]["port"])
    parser.add_argument("--create", action="store_true", help="start from an empty root if the snapshot is missing")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=config["log_level"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config["paths"]["snapshot"] = args.snapshot
    config["server"]["host"] = args.host
    config["server"]["port"] = args.port
    try:
        asyncio.run(start_server(config, create_missing=args.create))
    except SnapshotError as exc:
        logger.error("Cannot start: %s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
