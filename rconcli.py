#!/usr/bin/env python3
from __future__ import annotations
import argparse, sys, asyncio
from typing import Optional

from loguru import logger

from sourcecon import Session, RconError, load_settings
from sourcecon.util import Settings

# --- helpers -----------------------------------------------------------------

def settings_from(args) -> Settings:
    return load_settings(
        args.properties,
        host=args.host,
        port=args.port,
        password=args.password,
        timeout=args.timeout,
    )

def setup_logging(debug: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug else "WARNING")

async def _open(settings: Settings, debug: bool) -> Session:
    session = Session.from_settings(settings, debug=debug)
    if not await session.connect():
        raise RconError(f"cannot connect to {settings.host}:{settings.port}")
    if settings.password:
        try:
            await session.authenticate(settings.password)
        except BaseException:
            session.disconnect()
            raise
    return session

# --- exec / console ----------------------------------------------------------

async def _exec(settings: Settings, command: str, debug: bool) -> str:
    session = await _open(settings, debug)
    try:
        return await session.command(command)
    finally:
        session.disconnect()

def do_exec(args):
    s = settings_from(args)
    try:
        out = asyncio.run(_exec(s, " ".join(args.command), args.debug))
    except (RconError, asyncio.TimeoutError) as e:
        print(f"[rcon error] {e or type(e).__name__}", file=sys.stderr)
        return 1
    sys.stdout.write(out if out.endswith("\n") or not out else out + "\n")
    return 0

def do_console(args):
    """Opens the prompt_toolkit RCON console with pushed logs + input bar."""
    s = settings_from(args)
    try:
        from sourcecon.rcon_ui import run_rcon_ui
    except ImportError as e:
        print(f"prompt_toolkit UI not available ({e}); falling back to plain RCON.", flush=True)
        return asyncio.run(_fallback_console(s, args.debug))

    try:
        asyncio.run(run_rcon_ui(s, debug=args.debug))
    except KeyboardInterrupt:
        pass
    return 0

async def _fallback_console(settings: Settings, debug: bool) -> int:
    try:
        session = await _open(settings, debug)
    except (RconError, asyncio.TimeoutError) as e:
        print(f"[rcon error] {e or type(e).__name__}")
        return 1
    session.on("push", lambda frame: print(frame.text(settings.encoding), flush=True))
    print("Interactive RCON. Type /quit to exit.")
    try:
        while True:
            cmd = (await asyncio.to_thread(input, "> ")).strip()
            if cmd.lower() in ("/quit", "quit", "exit"): break
            if not cmd: continue
            try:
                print(await session.command(cmd))
            except (RconError, asyncio.TimeoutError) as e:
                print(f"[rcon error] {e or type(e).__name__}")
    except (EOFError, KeyboardInterrupt):
        pass
    finally:
        session.disconnect()
    return 0

# --- argparse ----------------------------------------------------------------

def _add_target(p: argparse.ArgumentParser) -> None:
    p.add_argument("--host", help="Server host (env RCON_HOST, default 127.0.0.1)")
    p.add_argument("--port", type=int, help="RCON port (env RCON_PORT, default 25575)")
    p.add_argument("--password", help="RCON password (env RCON_PASSWORD)")
    p.add_argument("--properties", help="Read rcon.port / rcon.password from a server.properties file")
    p.add_argument("--timeout", type=float, help="Seconds to wait for each reply (env RCON_TIMEOUT)")

def build_parser():
    p = argparse.ArgumentParser(prog="rconcli.py", description="Source RCON client.")
    p.add_argument("--debug", action="store_true", help="Log every frame sent and received")
    sub = p.add_subparsers(dest="cmd", required=True)

    pe = sub.add_parser("exec", help="Run one command and print the reply")
    _add_target(pe)
    pe.add_argument("command", nargs="+")
    pe.set_defaults(func=do_exec)

    pc = sub.add_parser("console", help="Open RCON console (prompt_toolkit)")
    _add_target(pc)
    pc.set_defaults(func=do_console)

    return p

def main(argv: Optional[list] = None):
    argv = argv if argv is not None else sys.argv[1:]
    args = build_parser().parse_args(argv)
    setup_logging(args.debug)
    return args.func(args)

if __name__ == "__main__":
    raise SystemExit(main())
