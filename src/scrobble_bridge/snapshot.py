from __future__ import annotations

from dataclasses import asdict
from enum import Enum
import json

from scrobble_bridge.models import PlayerSnapshot, Song


SONG_CHANGE_FIELDS = ("artist", "track", "album", "unique_id")


class SnapshotKind(str, Enum):
    EMPTY = "empty"
    CHANGED = "changed"
    REPLAYING = "replaying"
    UNCHANGED = "unchanged"


def is_state_empty(snapshot: PlayerSnapshot) -> bool:
    return (
        not (snapshot.artist and snapshot.track)
        and not snapshot.unique_id
        and not snapshot.duration
    )


def is_song_changed(snapshot: PlayerSnapshot, song: Song | None) -> bool:
    if song is None:
        return True
    return any(
        getattr(snapshot, name) != getattr(song.parsed, name) for name in SONG_CHANGE_FIELDS
    )


def is_duration_update_needed(snapshot: PlayerSnapshot, song: Song) -> bool:
    return bool(snapshot.duration) and song.parsed.duration != snapshot.duration


def classify_snapshot(
    snapshot: PlayerSnapshot, song: Song | None, *, is_replaying: bool
) -> SnapshotKind:
    if is_state_empty(snapshot):
        return SnapshotKind.EMPTY
    if is_song_changed(snapshot, song):
        return SnapshotKind.CHANGED
    if is_replaying:
        return SnapshotKind.REPLAYING
    return SnapshotKind.UNCHANGED


def describe_snapshot(snapshot: PlayerSnapshot) -> str:
    return json.dumps(asdict(snapshot), ensure_ascii=False)
