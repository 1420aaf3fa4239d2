from __future__ import annotations

from pathlib import Path

import pytest

from rconcli import build_parser, settings_from
from sourcecon.events import EventEmitter
from sourcecon.util import DEFAULT_PORT, load_settings, read_properties


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for key in ("RCON_HOST", "RCON_PORT", "RCON_PASSWORD", "RCON_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)
    return monkeypatch


def _props(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "server.properties"
    p.write_text(text, encoding="utf-8")
    return p


def test_read_properties_skips_comments(tmp_path: Path) -> None:
    p = _props(tmp_path, "#Minecraft server properties\nenable-rcon=true\nmotd=a=b\n\n! note\n")
    assert read_properties(p) == {"enable-rcon": "true", "motd": "a=b"}


def test_read_properties_missing_file(tmp_path: Path) -> None:
    assert read_properties(tmp_path / "nope.properties") == {}


def test_defaults(clean_env) -> None:
    s = load_settings()
    assert (s.host, s.port, s.password, s.timeout) == ("127.0.0.1", DEFAULT_PORT, None, None)


def test_env_then_properties_then_overrides(clean_env, tmp_path: Path) -> None:
    clean_env.setenv("RCON_HOST", "mc.example.org")
    clean_env.setenv("RCON_PORT", "27015")
    clean_env.setenv("RCON_PASSWORD", "fromenv")
    clean_env.setenv("RCON_TIMEOUT", "2.5")
    p = _props(tmp_path, "rcon.port=25580\nrcon.password=fromfile\nenable-rcon=false\n")

    s = load_settings(p, password="fromflag", port=None)

    assert s.host == "mc.example.org"
    assert s.port == 25580
    assert s.password == "fromflag"
    assert s.timeout == 2.5
    assert s.enabled is False


def test_unknown_override_rejected(clean_env) -> None:
    with pytest.raises(TypeError):
        load_settings(colour="blue")


def test_cli_exec_arguments(clean_env) -> None:
    args = build_parser().parse_args(["--debug", "exec", "--port", "25599", "--timeout", "3", "say", "hello"])
    assert args.debug is True
    assert args.command == ["say", "hello"]
    s = settings_from(args)
    assert (s.port, s.timeout) == (25599, 3.0)


def test_emitter_survives_failing_handler() -> None:
    emitter = EventEmitter()
    seen = []

    def broken(_frame):
        raise RuntimeError("boom")

    emitter.on("push", broken)
    emitter.on("push", seen.append)
    emitter.emit("push", "x")
    assert seen == ["x"]
    assert emitter.off("push", broken) is True
    assert emitter.off("push", broken) is False
    with pytest.raises(ValueError):
        emitter.on("nonsense", seen.append)
