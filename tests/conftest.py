"""Shared fakes for controller collaborators."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from scrobble_bridge.controller import ScrobbleController
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


class RecordingObserver(ControllerObserver):
    def __init__(self) -> None:
        self.modes: list[ControllerMode] = []
        self.events: list[ControllerEvent] = []
        self.song_updates = 0

    def on_song_updated(self) -> None:
        self.song_updates += 1

    def on_mode_changed(self, mode: ControllerMode) -> None:
        self.modes.append(mode)

    def on_controller_event(self, event: ControllerEvent) -> None:
        self.events.append(event)


class FakePipeline(SongPipeline):
    def __init__(
        self, is_valid: bool = True, on_process: Callable[[Song], Any] | None = None
    ) -> None:
        self.is_valid = is_valid
        self.on_process = on_process
        self.calls: list[Song] = []
        self.gate: asyncio.Event | None = None

    async def process(self, song: Song) -> bool:
        self.calls.append(song)
        if self.gate is not None:
            await self.gate.wait()
        if self.on_process is not None:
            self.on_process(song)
        song.flags.is_valid = self.is_valid
        return self.is_valid


class FakeScrobbleService(ScrobbleService):
    def __init__(self) -> None:
        self.now_playing_results = [ServiceCallResult.OK]
        self.scrobble_results = [ServiceCallResult.OK]
        self.now_playing_calls: list[Song] = []
        self.scrobble_calls: list[Song] = []
        self.love_calls: list[tuple[Song, bool]] = []
        self.scrobble_gate: asyncio.Event | None = None

    async def send_now_playing(self, song: Song) -> list[ServiceCallResult]:
        self.now_playing_calls.append(song)
        return list(self.now_playing_results)

    async def scrobble(self, song: Song) -> list[ServiceCallResult]:
        self.scrobble_calls.append(song)
        if self.scrobble_gate is not None:
            await self.scrobble_gate.wait()
        return list(self.scrobble_results)

    async def toggle_love(self, song: Song, is_loved: bool) -> list[ServiceCallResult]:
        self.love_calls.append((song, is_loved))
        return [ServiceCallResult.ERROR_OTHER]


class FakeSavedEdits(SavedEditsStore):
    def __init__(self) -> None:
        self.saved: list[tuple[Song, dict[str, str]]] = []
        self.removed: list[Song] = []

    async def save_song_info(self, song: Song, fields: dict[str, str]) -> None:
        self.saved.append((song, dict(fields)))

    async def remove_song_info(self, song: Song) -> None:
        self.removed.append(song)

    async def load_song_info(self, song: Song) -> dict[str, str] | None:
        return None


class FakeOptions(OptionsStore):
    def __init__(self, **values: Any) -> None:
        self.values = {
            SCROBBLE_PODCASTS: True,
            SCROBBLE_PERCENT: 50,
            SCROBBLE_SECONDS: None,
        }
        self.values.update(values)

    async def get_option(self, name: str) -> Any:
        return self.values[name]


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def pipeline():
    return FakePipeline()


@pytest.fixture
def service():
    return FakeScrobbleService()


@pytest.fixture
def saved_edits():
    return FakeSavedEdits()


@pytest.fixture
def options():
    return FakeOptions()


@pytest.fixture
def connector():
    return Connector(id="mpris:test", label="test")


@pytest.fixture
def controller(connector, observer, pipeline, service, saved_edits, options):
    return ScrobbleController(
        connector=connector,
        observer=observer,
        pipeline=pipeline,
        scrobble_service=service,
        saved_edits=saved_edits,
        options=options,
    )


@pytest.fixture
def playing_snapshot():
    return PlayerSnapshot(artist="A", track="T", duration=300, is_playing=True)
