from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
import logging
from typing import Any

import httpx

from scrobble_bridge.interfaces import ScrobbleService
from scrobble_bridge.models import ServiceCallResult, Song


LOGGER = logging.getLogger(__name__)


class Scrobbler(ABC):
    label: str = ""

    @abstractmethod
    async def send_now_playing(self, song: Song) -> ServiceCallResult: ...

    @abstractmethod
    async def scrobble(self, song: Song) -> ServiceCallResult: ...

    @abstractmethod
    async def toggle_love(self, song: Song, is_loved: bool) -> ServiceCallResult: ...

    async def close(self) -> None:
        return None


class MultiScrobbleService(ScrobbleService):
    """Fans every call out to all scrobblers, keeping their order in the result."""

    def __init__(self, scrobblers: Sequence[Scrobbler]) -> None:
        self._scrobblers = list(scrobblers)

    @property
    def scrobblers(self) -> list[Scrobbler]:
        return list(self._scrobblers)

    async def send_now_playing(self, song: Song) -> list[ServiceCallResult]:
        return await self._call_all("now playing", lambda s: s.send_now_playing(song))

    async def scrobble(self, song: Song) -> list[ServiceCallResult]:
        return await self._call_all("scrobble", lambda s: s.scrobble(song))

    async def toggle_love(self, song: Song, is_loved: bool) -> list[ServiceCallResult]:
        return await self._call_all("love", lambda s: s.toggle_love(song, is_loved))

    async def close(self) -> None:
        await asyncio.gather(
            *(scrobbler.close() for scrobbler in self._scrobblers), return_exceptions=True
        )

    async def _call_all(
        self, action: str, call: Callable[[Scrobbler], Awaitable[ServiceCallResult]]
    ) -> list[ServiceCallResult]:
        if not self._scrobblers:
            return []
        outcomes = await asyncio.gather(
            *(call(scrobbler) for scrobbler in self._scrobblers), return_exceptions=True
        )
        results: list[ServiceCallResult] = []
        for scrobbler, outcome in zip(self._scrobblers, outcomes):
            if isinstance(outcome, BaseException):
                LOGGER.error("%s %s failed", scrobbler.label, action, exc_info=outcome)
                results.append(ServiceCallResult.ERROR_OTHER)
            else:
                results.append(outcome)
        return results


@dataclass(slots=True)
class ListenBrainzConfig:
    token: str
    base_url: str = "https://api.listenbrainz.org"
    user_agent: str = "scrobble-bridge/0.1"


class ListenBrainzScrobbler(Scrobbler):
    label = "ListenBrainz"

    def __init__(
        self, config: ListenBrainzConfig, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> None:
        self._config = config
        headers = {
            "Accept": "application/json",
            "User-Agent": config.user_agent,
            "Authorization": f"Token {config.token}",
        }
        self._http = httpx.AsyncClient(
            base_url=config.base_url, headers=headers, timeout=20, transport=transport
        )

    async def send_now_playing(self, song: Song) -> ServiceCallResult:
        return await self._submit("playing_now", self._listen(song))

    async def scrobble(self, song: Song) -> ServiceCallResult:
        listen = self._listen(song)
        listen["listened_at"] = song.metadata.start_timestamp
        return await self._submit("single", listen)

    async def toggle_love(self, song: Song, is_loved: bool) -> ServiceCallResult:
        LOGGER.debug("%s does not support loving tracks by name", self.label)
        return ServiceCallResult.IGNORE

    async def close(self) -> None:
        await self._http.aclose()

    def _listen(self, song: Song) -> dict[str, Any]:
        additional_info: dict[str, Any] = {
            "submission_client": "scrobble-bridge",
            "media_player": song.metadata.label,
        }
        duration = song.get_duration()
        if duration:
            additional_info["duration"] = int(duration)
        metadata: dict[str, Any] = {
            "artist_name": song.get_artist(),
            "track_name": song.get_track(),
            "additional_info": additional_info,
        }
        album = song.get_album()
        if album:
            metadata["release_name"] = album
        return {"track_metadata": metadata}

    async def _submit(self, listen_type: str, listen: dict[str, Any]) -> ServiceCallResult:
        try:
            response = await self._http.post(
                "/1/submit-listens",
                json={"listen_type": listen_type, "payload": [listen]},
            )
        except httpx.HTTPError as exc:
            LOGGER.warning("%s %s request failed: %s", self.label, listen_type, exc)
            return ServiceCallResult.ERROR_OTHER

        if response.status_code in (401, 403):
            LOGGER.error("%s rejected the user token", self.label)
            return ServiceCallResult.ERROR_AUTH
        if response.is_error:
            LOGGER.warning(
                "%s %s returned %s: %s",
                self.label,
                listen_type,
                response.status_code,
                response.text,
            )
            return ServiceCallResult.ERROR_OTHER
        return ServiceCallResult.OK
