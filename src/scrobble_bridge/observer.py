from __future__ import annotations

import logging

from scrobble_bridge.interfaces import ControllerObserver
from scrobble_bridge.models import ControllerEvent, ControllerMode


LOGGER = logging.getLogger(__name__)


class LoggingObserver(ControllerObserver):
    """Daemon-side observer: logs notifications and remembers the latest ones."""

    def __init__(self) -> None:
        self.last_mode: ControllerMode | None = None
        self.last_event: ControllerEvent | None = None
        self.song_updates = 0

    def on_song_updated(self) -> None:
        self.song_updates += 1
        LOGGER.debug("Song updated")

    def on_mode_changed(self, mode: ControllerMode) -> None:
        if mode != self.last_mode:
            LOGGER.info("Mode: %s", mode.value)
        self.last_mode = mode

    def on_controller_event(self, event: ControllerEvent) -> None:
        self.last_event = event
        if event is ControllerEvent.SONG_SCROBBLED:
            LOGGER.info("Event: %s", event.value)
        else:
            LOGGER.debug("Event: %s", event.value)
