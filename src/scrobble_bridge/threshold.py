from __future__ import annotations


DEFAULT_SCROBBLE_TIME = 30
MIN_TRACK_DURATION = 30
MAX_SCROBBLE_TIME = 240

DEFAULT_SCROBBLE_PERCENT = 50
MIN_SCROBBLE_PERCENT = 50
MAX_SCROBBLE_PERCENT = 100

NOT_SCROBBLABLE = -1


def get_seconds_to_scrobble(
    duration: float | None,
    percent: int = DEFAULT_SCROBBLE_PERCENT,
    fixed_seconds: float | None = None,
) -> float:
    """Return how many seconds of playback make a song scrobblable.

    Unknown durations fall back to ``DEFAULT_SCROBBLE_TIME``. Songs shorter
    than ``MIN_TRACK_DURATION`` return ``NOT_SCROBBLABLE``.
    """
    if not duration or duration <= 0:
        return DEFAULT_SCROBBLE_TIME
    if duration < MIN_TRACK_DURATION:
        return NOT_SCROBBLABLE
    if fixed_seconds is not None:
        return min(float(fixed_seconds), duration)

    percent = max(MIN_SCROBBLE_PERCENT, min(MAX_SCROBBLE_PERCENT, int(percent)))
    return min(round(duration * percent / 100), MAX_SCROBBLE_TIME)
