from __future__ import annotations

import asyncio
from dataclasses import dataclass
import os
from pathlib import Path
import tomllib
from typing import Any

from scrobble_bridge.interfaces import (
    SCROBBLE_PERCENT,
    SCROBBLE_PODCASTS,
    SCROBBLE_SECONDS,
    OptionsStore,
)
from scrobble_bridge.threshold import DEFAULT_SCROBBLE_PERCENT


DEFAULT_CONFIG_PATH = Path.home() / ".config" / "scrobble-bridge" / "config.toml"
DEFAULT_EDITS_PATH = Path.home() / ".local" / "share" / "scrobble-bridge" / "edits.json"


@dataclass(slots=True)
class AppConfig:
    poll_interval_seconds: float = 2.0
    player: str = ""
    control_socket_path: str = "/tmp/scrobble-bridge.sock"
    saved_edits_path: Path = DEFAULT_EDITS_PATH
    scrobble_podcasts: bool = True
    scrobble_percent: int = DEFAULT_SCROBBLE_PERCENT
    scrobble_seconds: float | None = None
    listenbrainz_token: str = ""
    listenbrainz_base_url: str = "https://api.listenbrainz.org"
    user_agent: str = "scrobble-bridge/0.1"


def load_config(path: Path | None = None) -> AppConfig:
    resolved = path or DEFAULT_CONFIG_PATH
    if resolved.exists():
        raw = tomllib.loads(resolved.read_text(encoding="utf-8"))
    else:
        raw = {}
    app = raw.get("app", {})
    scrobble = raw.get("scrobble", {})
    listenbrainz = raw.get("listenbrainz", {})

    configured_token = str(listenbrainz.get("token", ""))
    configured_player = str(app.get("player", ""))
    seconds = scrobble.get("seconds")

    return AppConfig(
        poll_interval_seconds=float(app.get("poll_interval_seconds", 2.0)),
        player=os.getenv("SB_PLAYER", configured_player),
        control_socket_path=str(app.get("control_socket_path", "/tmp/scrobble-bridge.sock")),
        saved_edits_path=Path(str(app.get("saved_edits_path", DEFAULT_EDITS_PATH))).expanduser(),
        scrobble_podcasts=_as_bool(scrobble.get("podcasts", True)),
        scrobble_percent=int(scrobble.get("percent", DEFAULT_SCROBBLE_PERCENT)),
        scrobble_seconds=float(seconds) if seconds is not None else None,
        listenbrainz_token=os.getenv("SB_LISTENBRAINZ_TOKEN", configured_token),
        listenbrainz_base_url=str(
            listenbrainz.get("base_url", "https://api.listenbrainz.org")
        ),
        user_agent=str(app.get("user_agent", "scrobble-bridge/0.1")),
    )


class ConfigOptions(OptionsStore):
    """Options backed by the config file, re-read on every lookup."""

    _NAMES = {
        SCROBBLE_PODCASTS: "scrobble_podcasts",
        SCROBBLE_PERCENT: "scrobble_percent",
        SCROBBLE_SECONDS: "scrobble_seconds",
    }

    def __init__(self, path: Path | None = None) -> None:
        self._path = path

    async def get_option(self, name: str) -> Any:
        attribute = self._NAMES.get(name)
        if attribute is None:
            raise KeyError(f"Unknown option: {name}")
        config = await asyncio.to_thread(load_config, self._path)
        return getattr(config, attribute)


def _as_bool(value: object) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)
