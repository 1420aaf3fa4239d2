# sourcecon/rcon_ui.py
from __future__ import annotations

import asyncio
import contextlib
from typing import Optional

from prompt_toolkit.application import Application
from prompt_toolkit.document import Document
from prompt_toolkit.filters import has_focus
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout
from prompt_toolkit.styles import Style
from prompt_toolkit.widgets import Label, TextArea

from . import events
from .errors import RconError
from .protocol import Frame
from .session import Session
from .util import Settings

LOG_TRIM_LIMIT = 2_000_000  # keep last ~2MB in the in-memory text area


async def run_rcon_ui(settings: Settings, debug: bool = False) -> None:
    """Fullscreen RCON console: server replies and pushed log lines above an input bar."""
    session = Session.from_settings(settings, debug=debug)

    # Log view (not focusable so user can't type into it, but NOT read_only)
    log = TextArea(
        style="class:log",
        focusable=False,
        scrollbar=True,
        wrap_lines=False,
        read_only=False,  # <-- allow programmatic inserts
    )
    input_field = TextArea(height=1, prompt="> ", multiline=False)
    status = Label(
        text=f"RCON — {settings.host}:{settings.port}    (Ctrl-C / Esc to exit)",
        style="class:status",
    )

    kb = KeyBindings()

    @kb.add("enter", filter=has_focus(input_field))
    async def _(event) -> None:
        cmd = (input_field.text or "").strip()
        input_field.buffer.document = Document(text="")
        if not cmd:
            return
        try:
            out = await session.command(cmd)
            _append(app, log, f"$ {cmd}\n{out}\n")
        except (RconError, asyncio.TimeoutError) as e:
            _append(app, log, f"[rcon error] {e or type(e).__name__}\n")

    @kb.add("c-c")
    @kb.add("escape")
    def _(event) -> None:
        event.app.exit()

    root = HSplit([status, log, input_field])
    app = Application(
        layout=Layout(root),
        key_bindings=kb,
        full_screen=True,
        style=Style.from_dict(
            {
                "log": "bg:#0e162b #d1d5db",
                "status": "reverse",
            }
        ),
    )

    def on_push(frame: Frame) -> None:
        text = frame.text(settings.encoding)
        _append(app, log, text if text.endswith("\n") else text + "\n")

    session.on(events.PUSH, on_push)
    session.on(events.ERROR, lambda e: _append(app, log, f"[rcon] {e}\n"))
    session.on(events.DISCONNECT, lambda: _append(app, log, "[rcon] disconnected\n"))

    async def rcon_probe() -> None:
        if not settings.enabled:
            _append(
                app,
                log,
                "[hint] RCON appears disabled (enable-rcon=false). "
                "Stop the server, set enable-rcon=true in server.properties, and start again.\n",
            )
            return
        if not await session.connect():
            _append(app, log, f"[hint] Check the RCON port ({settings.port}), firewall, and that the server is up.\n")
            return
        try:
            if settings.password:
                await session.authenticate(settings.password)
            _append(app, log, "[rcon] connected. Try: list, say hello, time query daytime\n")
        except (RconError, asyncio.TimeoutError) as e:
            _append(app, log, f"[rcon] authentication failed: {e or type(e).__name__}\n[hint] Check rcon.password.\n")

    probe_task = asyncio.create_task(rcon_probe())

    try:
        await app.run_async()
    finally:
        probe_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await probe_task
        session.disconnect()


def _append(app: Optional[Application], area: TextArea, text: str) -> None:
    """
    Append text to the TextArea safely and keep the buffer size bounded.
    """
    buf = area.buffer
    buf.insert_text(text, move_cursor=True)
    if len(buf.text) > LOG_TRIM_LIMIT:
        new_text = buf.text[-LOG_TRIM_LIMIT:]
        buf.document = Document(new_text, cursor_position=len(new_text))
    if app is not None:
        app.invalidate()
