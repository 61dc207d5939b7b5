from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from scrobble_bridge.models import ControllerEvent, ControllerMode, ServiceCallResult, Song


SCROBBLE_PODCASTS = "scrobble_podcasts"
SCROBBLE_PERCENT = "scrobble_percent"
SCROBBLE_SECONDS = "scrobble_seconds"


class ControllerObserver(ABC):
    """Receives controller notifications. Hosts must implement every method."""

    @abstractmethod
    def on_song_updated(self) -> None:
        """The current song changed; read it back from the controller."""

    @abstractmethod
    def on_mode_changed(self, mode: ControllerMode) -> None: ...

    @abstractmethod
    def on_controller_event(self, event: ControllerEvent) -> None: ...


class SongPipeline(ABC):
    @abstractmethod
    async def process(self, song: Song) -> bool:
        """Fill in processed fields of ``song`` and return whether it is valid."""


class ScrobbleService(ABC):
    @abstractmethod
    async def send_now_playing(self, song: Song) -> list[ServiceCallResult]: ...

    @abstractmethod
    async def scrobble(self, song: Song) -> list[ServiceCallResult]: ...

    @abstractmethod
    async def toggle_love(self, song: Song, is_loved: bool) -> list[ServiceCallResult]: ...


class SavedEditsStore(ABC):
    @abstractmethod
    async def save_song_info(self, song: Song, fields: dict[str, str]) -> None: ...

    @abstractmethod
    async def remove_song_info(self, song: Song) -> None: ...

    @abstractmethod
    async def load_song_info(self, song: Song) -> dict[str, str] | None: ...


class OptionsStore(ABC):
    @abstractmethod
    async def get_option(self, name: str) -> Any: ...
