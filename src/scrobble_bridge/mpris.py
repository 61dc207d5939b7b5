from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
import logging
from typing import Any

from dbus_next import Variant
from dbus_next.aio import MessageBus
from dbus_next.constants import BusType
from dbus_next.errors import DBusError

from scrobble_bridge.models import PlayerSnapshot


OBJECT_PATH = "/org/mpris/MediaPlayer2"
BUS_NAME_PREFIX = "org.mpris.MediaPlayer2."
PLAYER_INTERFACE = "org.mpris.MediaPlayer2.Player"
PROPERTIES_INTERFACE = "org.freedesktop.DBus.Properties"
NO_TRACK_PATH = "/org/mpris/MediaPlayer2/TrackList/NoTrack"

SnapshotListener = Callable[[PlayerSnapshot], Awaitable[None]]
LOGGER = logging.getLogger(__name__)


def snapshot_from_mpris(
    metadata: Mapping[str, Any], playback_status: str, position_us: int
) -> PlayerSnapshot:
    """Convert MPRIS player properties into a snapshot.

    Values may be plain Python values or ``dbus_next.Variant`` wrappers.
    Lengths and positions arrive in microseconds.
    """
    artists = _unwrap(metadata.get("xesam:artist"))
    if isinstance(artists, str):
        artist = artists
    elif artists:
        artist = str(artists[0])
    else:
        artist = None

    length = _unwrap(metadata.get("mpris:length"))
    duration = int(length) / 1_000_000 if length else None

    track_id = _unwrap(metadata.get("mpris:trackid"))
    unique_id = str(track_id) if track_id and str(track_id) != NO_TRACK_PATH else None

    genres = _unwrap(metadata.get("xesam:genre")) or []
    if isinstance(genres, str):
        genres = [genres]
    is_podcast = any("podcast" in str(genre).lower() for genre in genres)

    return PlayerSnapshot(
        artist=_text(artist),
        track=_text(_unwrap(metadata.get("xesam:title"))),
        album=_text(_unwrap(metadata.get("xesam:album"))),
        unique_id=unique_id,
        duration=duration,
        current_time=max(0, int(position_us or 0)) / 1_000_000,
        is_playing=playback_status == "Playing",
        track_art=_text(_unwrap(metadata.get("mpris:artUrl"))),
        is_podcast=is_podcast,
    )


class MprisWatcher:
    """Polls one MPRIS player on the session bus and reports snapshots."""

    def __init__(
        self, player: str, listener: SnapshotListener, poll_interval_seconds: float = 2.0
    ) -> None:
        self._player = player
        self._listener = listener
        self._poll_interval = poll_interval_seconds
        self._bus: MessageBus | None = None
        self._bus_name: str | None = None
        self._task: asyncio.Task[None] | None = None
        self._stopped = asyncio.Event()

    @property
    def bus_name(self) -> str | None:
        return self._bus_name

    async def start(self) -> None:
        if self._task:
            return
        self._bus = await MessageBus(bus_type=BusType.SESSION).connect()
        self._task = asyncio.create_task(self._poll_loop(), name="scrobble-bridge-mpris")

    async def stop(self) -> None:
        self._stopped.set()
        if self._task:
            await self._task
            self._task = None
        if self._bus:
            self._bus.disconnect()
            self._bus = None

    async def fetch_snapshot(self) -> PlayerSnapshot:
        bus_name = await self._resolve_bus_name()
        if bus_name is None:
            return PlayerSnapshot()
        try:
            properties = await self._player_properties(bus_name)
        except DBusError as exc:
            LOGGER.debug("Player %s went away: %s", bus_name, exc)
            self._bus_name = None
            return PlayerSnapshot()
        return snapshot_from_mpris(
            _unwrap(properties.get("Metadata")) or {},
            str(_unwrap(properties.get("PlaybackStatus")) or "Stopped"),
            int(_unwrap(properties.get("Position")) or 0),
        )

    async def _poll_loop(self) -> None:
        while not self._stopped.is_set():
            try:
                snapshot = await self.fetch_snapshot()
                await self._listener(snapshot)
            except Exception:
                LOGGER.exception("Failed to poll MPRIS player")
            finally:
                try:
                    await asyncio.wait_for(self._stopped.wait(), timeout=self._poll_interval)
                except TimeoutError:
                    pass

    async def _resolve_bus_name(self) -> str | None:
        if self._bus_name:
            return self._bus_name
        if self._bus is None:
            raise RuntimeError("MPRIS watcher is not started")

        introspection = await self._bus.introspect("org.freedesktop.DBus", "/org/freedesktop/DBus")
        proxy = self._bus.get_proxy_object(
            "org.freedesktop.DBus", "/org/freedesktop/DBus", introspection
        )
        names = await proxy.get_interface("org.freedesktop.DBus").call_list_names()
        self._bus_name = pick_player(names, self._player)
        if self._bus_name:
            LOGGER.info("Watching MPRIS player %s", self._bus_name)
        return self._bus_name

    async def _player_properties(self, bus_name: str) -> dict[str, Any]:
        assert self._bus is not None
        introspection = await self._bus.introspect(bus_name, OBJECT_PATH)
        proxy = self._bus.get_proxy_object(bus_name, OBJECT_PATH, introspection)
        properties = proxy.get_interface(PROPERTIES_INTERFACE)
        return await properties.call_get_all(PLAYER_INTERFACE)


def pick_player(names: list[str], player: str) -> str | None:
    candidates = sorted(name for name in names if name.startswith(BUS_NAME_PREFIX))
    if not player:
        return candidates[0] if candidates else None
    wanted = f"{BUS_NAME_PREFIX}{player}"
    for name in candidates:
        # Players may append ".instance123" to their well-known name.
        if name == wanted or name.startswith(f"{wanted}."):
            return name
    return None


def _unwrap(value: Any) -> Any:
    return value.value if isinstance(value, Variant) else value


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
