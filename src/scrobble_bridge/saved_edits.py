"""
JSON-file store for user corrections to song metadata.

Entries are keyed by the song's unique id when the player reports one,
otherwise by its raw artist, track and album. Writes go through a temp file
and os.replace so a crash never leaves a half-written file behind.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from scrobble_bridge.interfaces import SavedEditsStore
from scrobble_bridge.models import Song


LOGGER = logging.getLogger(__name__)


def song_key(song: Song) -> str:
    unique_id = song.get_unique_id()
    if unique_id:
        return unique_id
    raw = song.raw
    return " - ".join(part or "" for part in (raw.artist, raw.track, raw.album))


class JsonSavedEdits(SavedEditsStore):
    def __init__(self, path: Path) -> None:
        self.path = path
        self._lock = asyncio.Lock()

    async def save_song_info(self, song: Song, fields: dict[str, str]) -> None:
        key = song_key(song)
        async with self._lock:
            data = await asyncio.to_thread(self._load)
            data[key] = {name: str(value) for name, value in fields.items() if value}
            await asyncio.to_thread(self._save, data)
        LOGGER.debug("Saved edits for %s", key)

    async def remove_song_info(self, song: Song) -> None:
        key = song_key(song)
        async with self._lock:
            data = await asyncio.to_thread(self._load)
            if data.pop(key, None) is None:
                return
            await asyncio.to_thread(self._save, data)
        LOGGER.debug("Removed edits for %s", key)

    async def load_song_info(self, song: Song) -> dict[str, str] | None:
        async with self._lock:
            data = await asyncio.to_thread(self._load)
        entry = data.get(song_key(song))
        return dict(entry) if isinstance(entry, dict) else None

    # -------- persistence --------
    def _load(self) -> dict[str, Any]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            LOGGER.warning("Ignoring unreadable edits file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(f"{self.path.name}.tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        os.replace(tmp, self.path)
