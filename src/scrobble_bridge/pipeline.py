from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
import logging
import re

from scrobble_bridge.interfaces import SavedEditsStore, SongPipeline
from scrobble_bridge.models import Song


Processor = Callable[[Song], Awaitable[None]]
LOGGER = logging.getLogger(__name__)

EDITABLE_FIELDS = ("artist", "track", "album")

_TITLE_NOISE = re.compile(
    r"\s*[\(\[](?:official\s+(?:music\s+)?(?:video|audio|lyric\s+video)|lyrics?|"
    r"audio|hd|hq|explicit|visualizer)[\)\]]",
    re.IGNORECASE,
)
_ARTIST_NOISE = re.compile(r"\s+-\s+Topic$|VEVO$")
_WHITESPACE = re.compile(r"\s+")


def clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = _WHITESPACE.sub(" ", value).strip()
    return cleaned or None


def clean_track(value: str | None) -> str | None:
    if value is None:
        return None
    return clean_text(_TITLE_NOISE.sub("", value))


def clean_artist(value: str | None) -> str | None:
    cleaned = clean_text(value)
    if cleaned is None:
        return None
    return clean_text(_ARTIST_NOISE.sub("", cleaned))


class Pipeline(SongPipeline):
    """Runs a song through saved edits, field cleanup and validation."""

    def __init__(
        self, saved_edits: SavedEditsStore, processors: Sequence[Processor] | None = None
    ) -> None:
        self._saved_edits = saved_edits
        if processors is None:
            processors = (self.apply_saved_edits, self.normalize_fields)
        self._processors = list(processors)

    async def process(self, song: Song) -> bool:
        for processor in self._processors:
            await processor(song)
        return self.validate(song)

    async def apply_saved_edits(self, song: Song) -> None:
        edits = await self._saved_edits.load_song_info(song)
        if not edits:
            return
        for name in EDITABLE_FIELDS:
            value = clean_text(edits.get(name))
            if value:
                setattr(song.processed, name, value)
        song.flags.is_corrected_by_user = True
        LOGGER.debug("Applied saved edits to %s", song)

    async def normalize_fields(self, song: Song) -> None:
        if song.flags.is_corrected_by_user:
            return
        song.processed.artist = clean_artist(song.parsed.artist)
        song.processed.track = clean_track(song.parsed.track)
        song.processed.album = clean_text(song.parsed.album)

    def validate(self, song: Song) -> bool:
        song.flags.is_valid = bool(song.get_artist() and song.get_track())
        if not song.flags.is_valid:
            LOGGER.debug("Song is not valid: %s", song)
        return song.flags.is_valid
