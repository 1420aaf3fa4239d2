# sourcecon/util.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 25575


@dataclass
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    password: Optional[str] = None
    timeout: Optional[float] = None
    encoding: str = "utf-8"
    enabled: bool = True  # enable-rcon from server.properties


def read_properties(path: Path) -> dict:
    """Parse a Java-style `server.properties` file; a missing file yields {}."""
    props = {}
    if path.exists():
        for line in path.read_text(encoding="utf-8", errors="ignore").splitlines():
            line = line.strip()
            if not line or line.startswith(("#", "!")):
                continue
            if "=" in line:
                k, v = line.split("=", 1)
                props[k.strip()] = v.strip()
    return props


def _env_timeout() -> Optional[float]:
    raw = os.environ.get("RCON_TIMEOUT", "").strip()
    if not raw:
        return None
    t = float(raw)
    return t if t > 0 else None


def load_settings(properties: Optional[Union[str, Path]] = None, **overrides) -> Settings:
    """Environment first, then `server.properties`, then explicit keyword overrides.

    None-valued overrides are ignored so argparse namespaces can be passed through.
    """
    s = Settings(
        host=os.environ.get("RCON_HOST", DEFAULT_HOST),
        port=int(os.environ.get("RCON_PORT", str(DEFAULT_PORT))),
        password=os.environ.get("RCON_PASSWORD") or None,
        timeout=_env_timeout(),
    )
    if properties is not None:
        props = read_properties(Path(properties).expanduser())
        if props.get("rcon.port"):
            s.port = int(props["rcon.port"])
        if props.get("rcon.password"):
            s.password = props["rcon.password"]
        if props.get("enable-rcon", "true").strip().lower() != "true":
            s.enabled = False
    for key, value in overrides.items():
        if value is None:
            continue
        if not hasattr(s, key):
            raise TypeError(f"unknown setting {key!r}")
        setattr(s, key, value)
    return s
