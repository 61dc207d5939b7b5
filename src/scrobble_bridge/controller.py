from __future__ import annotations

import asyncio
import logging

from scrobble_bridge.interfaces import (
    SCROBBLE_PERCENT,
    SCROBBLE_PODCASTS,
    SCROBBLE_SECONDS,
    ControllerObserver,
    OptionsStore,
    SavedEditsStore,
    ScrobbleService,
    SongPipeline,
)
from scrobble_bridge.models import (
    Connector,
    ControllerEvent,
    ControllerMode,
    PlayerSnapshot,
    ServiceCallResult,
    Song,
)
from scrobble_bridge.results import are_all_results, is_any_result
from scrobble_bridge.snapshot import (
    SnapshotKind,
    classify_snapshot,
    describe_snapshot,
    is_duration_update_needed,
)
from scrobble_bridge.threshold import (
    DEFAULT_SCROBBLE_PERCENT,
    NOT_SCROBBLABLE,
    get_seconds_to_scrobble,
)
from scrobble_bridge.timer import Timer


LOGGER = logging.getLogger(__name__)


class ControllerStateError(RuntimeError):
    pass


class NoSongPlayingError(ControllerStateError):
    def __init__(self) -> None:
        super().__init__("No song is now playing")


class SongAlreadyScrobbledError(ControllerStateError):
    def __init__(self) -> None:
        super().__init__("Unable to set user data for scrobbled song")


class InvalidSongError(ControllerStateError):
    def __init__(self) -> None:
        super().__init__("No valid song is now playing")


class ScrobbleController:
    """Tracks playback on one connector and decides when to submit it.

    Snapshot handling, user edits, love toggles and timer-fired scrobbles
    run under a single lock. Every await is followed by a check that the
    song being worked on is still the current one; results computed for a
    replaced song are dropped.
    """

    def __init__(
        self,
        connector: Connector,
        observer: ControllerObserver,
        pipeline: SongPipeline,
        scrobble_service: ScrobbleService,
        saved_edits: SavedEditsStore,
        options: OptionsStore,
        *,
        is_enabled: bool = True,
    ) -> None:
        self._connector = connector
        self._observer = observer
        self._pipeline = pipeline
        self._scrobble_service = scrobble_service
        self._saved_edits = saved_edits
        self._options = options

        self._is_enabled = is_enabled
        self._mode = ControllerMode.BASE if is_enabled else ControllerMode.DISABLED

        self._playback_timer = Timer()
        self._replay_detection_timer = Timer()

        self._current_song: Song | None = None
        self._is_replaying_song = False
        self._should_scrobble_podcasts = True

        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[None]] = set()

        self._log("Created controller for %s connector", connector.label)

    @property
    def is_enabled(self) -> bool:
        return self._is_enabled

    async def initialize(self) -> bool:
        value = await self._options.get_option(SCROBBLE_PODCASTS)
        self._should_scrobble_podcasts = True if value is None else bool(value)
        return True

    # Public operations

    def set_enabled(self, flag: bool) -> None:
        self._is_enabled = flag
        if flag:
            self._set_mode(ControllerMode.BASE)
        else:
            self._reset_state()
            self._set_mode(ControllerMode.DISABLED)

    async def finish(self) -> None:
        self._log("Remove controller for %s connector", self._connector.label)
        self._reset_state()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    async def reset_song_data(self) -> None:
        song = self._assert_song_is_playing()
        async with self._lock:
            if song is not self._current_song:
                return
            song.reset_info()
            await self._saved_edits.remove_song_info(song)
            if song is not self._current_song:
                return
            self._unprocess_song(song)
            await self._process_song(song)

    def skip_current_song(self) -> None:
        self._skip_song(self._assert_song_is_playing())

    def get_connector(self) -> Connector:
        return self._connector

    def get_current_song(self) -> Song | None:
        return self._current_song

    def get_mode(self) -> ControllerMode:
        return self._mode

    async def set_user_song_data(self, data: dict[str, str]) -> None:
        song = self._assert_song_is_playing()
        if song.flags.is_scrobbled:
            raise SongAlreadyScrobbledError()

        async with self._lock:
            if song is not self._current_song:
                return
            if song.flags.is_scrobbled:
                raise SongAlreadyScrobbledError()
            await self._saved_edits.save_song_info(song, data)
            if song is not self._current_song:
                return
            self._unprocess_song(song)
            await self._process_song(song)

    async def toggle_love(self, is_loved: bool) -> None:
        song = self._assert_song_is_playing()
        if not song.is_valid():
            raise InvalidSongError()

        async with self._lock:
            if song is not self._current_song:
                return
            await self._scrobble_service.toggle_love(song, is_loved)
            song.set_love_status(is_loved, force=True)
            if song is self._current_song:
                self._observer.on_song_updated()

    async def on_state_changed(self, snapshot: PlayerSnapshot) -> None:
        if not self._is_enabled:
            return
        async with self._lock:
            if self._is_enabled:
                await self._handle_state(snapshot)

    # State machine

    async def _handle_state(self, snapshot: PlayerSnapshot) -> None:
        kind = classify_snapshot(
            snapshot, self._current_song, is_replaying=self._is_replaying_song
        )

        # An empty state means reset even if the player claims to be playing.
        if kind is SnapshotKind.EMPTY:
            if self._current_song is not None:
                self._log("Received empty state - resetting")
                self._reset()
            if snapshot.is_playing:
                self._log(
                    "State doesn't contain enough information about the playing track: %s",
                    describe_snapshot(snapshot),
                    level=logging.WARNING,
                )
            return

        if kind is SnapshotKind.UNCHANGED:
            await self._process_current_state(snapshot)
            return

        if snapshot.is_playing:
            await self._process_new_state(snapshot)
        else:
            self._reset()

    async def _process_new_state(self, snapshot: PlayerSnapshot) -> None:
        self._reset_state()
        song = Song(snapshot, self._connector)
        song.flags.is_replaying = self._is_replaying_song
        self._current_song = song

        self._log("New song detected: %s", describe_snapshot(snapshot))

        try:
            if not self._should_scrobble_podcasts and snapshot.is_podcast:
                self._skip_song(song)
                return

            # No target yet: the playback timer cannot fire before the song
            # is validated and the target is set in _update_timers.
            self._playback_timer.start(self._on_playback_timer_expired)
            self._replay_detection_timer.start(self._on_replay_detected)

            # Playing-state changes only pause and resume, so both timers
            # have to exist before the first change arrives.
            if not snapshot.is_playing:
                self._playback_timer.pause()
                self._replay_detection_timer.pause()

            await self._process_song(song)
        finally:
            self._is_replaying_song = False

    async def _process_current_state(self, snapshot: PlayerSnapshot) -> None:
        song = self._current_song
        if song is None or song.flags.is_skipped:
            return

        is_playing_state_changed = song.parsed.is_playing != snapshot.is_playing

        song.parsed.current_time = snapshot.current_time
        song.parsed.is_playing = snapshot.is_playing
        song.parsed.track_art = snapshot.track_art

        if is_duration_update_needed(snapshot, song):
            await self._update_song_duration(song, snapshot.duration)

        if is_playing_state_changed and song is self._current_song:
            await self._on_playing_state_changed(song, snapshot.is_playing)

    async def _process_song(self, song: Song) -> None:
        if not song.flags.is_skipped:
            self._set_mode(ControllerMode.LOADING)

        is_valid = await self._pipeline.process(song)
        if not self._is_active(song):
            self._log("Dropping processing result for a replaced or skipped song: %s", song)
            return

        self._log("Song finished processing: %s", song)

        if is_valid:
            song.flags.is_marked_as_playing = False

            await self._update_timers(song, song.get_duration())
            if not self._is_active(song):
                return

            if song.parsed.is_playing:
                # An expired playback timer is about to scrobble the song,
                # so only the event is sent.
                if not self._playback_timer.is_expired():
                    await self._set_song_now_playing(song)
                else:
                    self._dispatch_event(ControllerEvent.SONG_NOW_PLAYING)
            else:
                self._set_mode(ControllerMode.BASE)
        else:
            self._set_song_not_recognized()

        if song is self._current_song:
            self._observer.on_song_updated()

    def _unprocess_song(self, song: Song) -> None:
        self._log("Song unprocessed: %s", song)
        self._log("Clearing playback timer destination time")

        song.reset_data()

        self._playback_timer.update(None)
        self._replay_detection_timer.update(None)

    async def _on_playing_state_changed(self, song: Song, is_playing: bool) -> None:
        self._log("isPlaying state changed to %s", is_playing)

        if is_playing:
            self._playback_timer.resume()
            self._replay_detection_timer.resume()

            if not song.flags.is_marked_as_playing and song.is_valid():
                await self._set_song_now_playing(song)
            else:
                self._set_mode(self._mode)
        else:
            self._playback_timer.pause()
            self._replay_detection_timer.pause()

    async def _update_song_duration(self, song: Song, duration: float | None) -> None:
        self._log("Update duration: %s", duration)

        song.parsed.duration = duration
        if song.is_valid():
            await self._update_timers(song, duration)

    async def _update_timers(self, song: Song, duration: float | None) -> None:
        if self._playback_timer.is_expired():
            self._log("Attempt to update expired timers", level=logging.WARNING)
            return

        percent = await self._options.get_option(SCROBBLE_PERCENT)
        fixed_seconds = await self._options.get_option(SCROBBLE_SECONDS)
        if not self._is_active(song):
            return

        seconds_to_scrobble = get_seconds_to_scrobble(
            duration,
            DEFAULT_SCROBBLE_PERCENT if percent is None else percent,
            fixed_seconds,
        )
        if seconds_to_scrobble == NOT_SCROBBLABLE:
            self._log("The song is too short to scrobble", level=logging.WARNING)
            return

        self._playback_timer.update(seconds_to_scrobble)
        self._replay_detection_timer.update(duration)

        self._log(
            "The song will be scrobbled in %s seconds",
            self._playback_timer.get_remaining_seconds(),
        )
        self._log("The song will be repeated in %s seconds", duration)

    async def _set_song_now_playing(self, song: Song) -> None:
        song.flags.is_marked_as_playing = True

        results = await self._scrobble_service.send_now_playing(song)
        if not self._is_active(song):
            return

        if is_any_result(results, ServiceCallResult.OK):
            self._log("Song set as now playing")
            self._set_mode(ControllerMode.PLAYING)
        else:
            self._log("Song isn't set as now playing")
            self._set_mode(ControllerMode.ERR)

        self._dispatch_event(ControllerEvent.SONG_NOW_PLAYING)

    def _set_song_not_recognized(self) -> None:
        self._set_mode(ControllerMode.UNKNOWN)
        self._dispatch_event(ControllerEvent.SONG_UNRECOGNIZED)

    async def _scrobble_song(self, song: Song) -> None:
        async with self._lock:
            if not self._is_active(song):
                self._log("Skipping scrobble of a replaced or skipped song: %s", song)
                return

            results = await self._scrobble_service.scrobble(song)
            if not self._is_active(song):
                self._log("Dropping scrobble result for a replaced or skipped song: %s", song)
                return

            if is_any_result(results, ServiceCallResult.OK):
                self._log("Scrobbled successfully")

                song.flags.is_scrobbled = True
                self._set_mode(ControllerMode.SCROBBLED)

                self._observer.on_song_updated()

                self._dispatch_event(ControllerEvent.SONG_SCROBBLED)
            elif are_all_results(results, ServiceCallResult.IGNORE):
                self._log("Song is ignored by service")
                self._set_mode(ControllerMode.IGNORED)
            else:
                self._log("Scrobbling failed", level=logging.WARNING)
                self._set_mode(ControllerMode.ERR)

    def _skip_song(self, song: Song) -> None:
        self._set_mode(ControllerMode.SKIPPED)

        song.flags.is_skipped = True

        self._playback_timer.reset()
        self._replay_detection_timer.reset()

        self._observer.on_song_updated()

    # Timer callbacks

    def _on_playback_timer_expired(self) -> None:
        song = self._current_song
        if song is None:
            return
        task = asyncio.create_task(self._scrobble_song(song), name="scrobble-song")
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    def _on_replay_detected(self) -> None:
        self._log("Replaying song...")
        self._is_replaying_song = True

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            LOGGER.error(
                "%s: Scrobble task failed", self._connector.label, exc_info=exc
            )

    # Helpers

    def _set_mode(self, mode: ControllerMode) -> None:
        self._mode = mode
        self._observer.on_mode_changed(mode)

    def _dispatch_event(self, event: ControllerEvent) -> None:
        self._observer.on_controller_event(event)

    def _reset_state(self) -> None:
        self._dispatch_event(ControllerEvent.CONTROLLER_RESET)

        self._playback_timer.reset()
        self._replay_detection_timer.reset()

        self._current_song = None

    def _reset(self) -> None:
        self._reset_state()
        self._set_mode(ControllerMode.BASE)

    def _is_active(self, song: Song) -> bool:
        return song is self._current_song and not song.flags.is_skipped

    def _assert_song_is_playing(self) -> Song:
        if self._current_song is None:
            raise NoSongPlayingError()
        return self._current_song

    def _log(self, text: str, *args: object, level: int = logging.DEBUG) -> None:
        LOGGER.log(level, "%s: " + text, self._connector.label, *args)
