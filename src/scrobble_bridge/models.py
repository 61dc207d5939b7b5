from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
import time


class ControllerMode(str, Enum):
    DISABLED = "Disabled"
    BASE = "Base"
    LOADING = "Loading"
    PLAYING = "Playing"
    SCROBBLED = "Scrobbled"
    IGNORED = "Ignored"
    ERR = "Err"
    UNKNOWN = "Unknown"
    SKIPPED = "Skipped"


class ControllerEvent(str, Enum):
    CONTROLLER_RESET = "ControllerReset"
    SONG_NOW_PLAYING = "SongNowPlaying"
    SONG_SCROBBLED = "SongScrobbled"
    SONG_UNRECOGNIZED = "SongUnrecognized"


class ServiceCallResult(str, Enum):
    OK = "ok"
    IGNORE = "ignore"
    ERROR_AUTH = "error-auth"
    ERROR_OTHER = "error-other"


@dataclass(slots=True, frozen=True)
class Connector:
    id: str
    label: str


@dataclass(slots=True, frozen=True)
class PlayerSnapshot:
    artist: str | None = None
    track: str | None = None
    album: str | None = None
    unique_id: str | None = None
    duration: float | None = None
    current_time: float = 0.0
    is_playing: bool = False
    track_art: str | None = None
    is_podcast: bool = False


@dataclass(slots=True)
class SongFields:
    artist: str | None = None
    track: str | None = None
    album: str | None = None
    unique_id: str | None = None
    duration: float | None = None
    current_time: float = 0.0
    is_playing: bool = False
    track_art: str | None = None
    is_podcast: bool = False

    @classmethod
    def from_snapshot(cls, snapshot: PlayerSnapshot) -> SongFields:
        return cls(
            artist=snapshot.artist,
            track=snapshot.track,
            album=snapshot.album,
            unique_id=snapshot.unique_id,
            duration=snapshot.duration,
            current_time=snapshot.current_time,
            is_playing=snapshot.is_playing,
            track_art=snapshot.track_art,
            is_podcast=snapshot.is_podcast,
        )


@dataclass(slots=True)
class ProcessedFields:
    artist: str | None = None
    track: str | None = None
    album: str | None = None
    duration: float | None = None


@dataclass(slots=True)
class SongFlags:
    is_valid: bool = False
    is_corrected_by_user: bool = False
    is_marked_as_playing: bool = False
    is_skipped: bool = False
    is_replaying: bool = False
    is_scrobbled: bool = False


@dataclass(slots=True)
class SongMetadata:
    label: str = ""
    start_timestamp: int = 0
    user_loved: bool | None = None


class Song:
    """A single detected playback instance.

    ``raw`` is the snapshot the song was created from and is never touched
    again. ``parsed`` is the song's own copy of the snapshot fields: the
    controller compares incoming snapshots against it and writes playback
    progress into it. ``processed`` holds values produced by the pipeline
    or by user corrections; accessors prefer them over parsed values.
    """

    def __init__(self, snapshot: PlayerSnapshot, connector: Connector) -> None:
        self.raw = snapshot
        self.connector = connector
        self.parsed = SongFields.from_snapshot(snapshot)
        self.processed = ProcessedFields()
        self.flags = SongFlags()
        self.metadata = SongMetadata(label=connector.label, start_timestamp=int(time.time()))

    def get_artist(self) -> str | None:
        return self.processed.artist or self.parsed.artist

    def get_track(self) -> str | None:
        return self.processed.track or self.parsed.track

    def get_album(self) -> str | None:
        return self.processed.album or self.parsed.album

    def get_duration(self) -> float | None:
        return self.processed.duration or self.parsed.duration

    def get_unique_id(self) -> str | None:
        return self.parsed.unique_id

    def is_podcast(self) -> bool:
        return self.parsed.is_podcast

    def is_valid(self) -> bool:
        return self.flags.is_valid

    def reset_data(self) -> None:
        """Forget everything the last pipeline pass produced."""
        self.processed = ProcessedFields()
        self.flags = replace(
            SongFlags(),
            is_skipped=self.flags.is_skipped,
            is_replaying=self.flags.is_replaying,
            is_scrobbled=self.flags.is_scrobbled,
        )
        self.metadata.user_loved = None

    def reset_info(self) -> None:
        """Drop user corrections; the next pass starts from raw values."""
        self.processed = ProcessedFields()
        self.flags.is_corrected_by_user = False

    def set_love_status(self, is_loved: bool | None, *, force: bool = False) -> None:
        if force or self.metadata.user_loved is None:
            self.metadata.user_loved = is_loved

    def to_dict(self) -> dict[str, object]:
        return {
            "artist": self.get_artist(),
            "track": self.get_track(),
            "album": self.get_album(),
            "unique_id": self.get_unique_id(),
            "duration": self.get_duration(),
            "current_time": self.parsed.current_time,
            "is_playing": self.parsed.is_playing,
            "track_art": self.parsed.track_art,
            "is_podcast": self.parsed.is_podcast,
            "user_loved": self.metadata.user_loved,
            "flags": {
                "is_valid": self.flags.is_valid,
                "is_corrected_by_user": self.flags.is_corrected_by_user,
                "is_marked_as_playing": self.flags.is_marked_as_playing,
                "is_skipped": self.flags.is_skipped,
                "is_replaying": self.flags.is_replaying,
                "is_scrobbled": self.flags.is_scrobbled,
            },
        }

    def __str__(self) -> str:
        return f"{self.get_artist()} - {self.get_track()} [{self.get_album() or ''}]"
