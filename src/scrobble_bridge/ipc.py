from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any

from scrobble_bridge.controller import ControllerStateError, ScrobbleController
from scrobble_bridge.observer import LoggingObserver


EDIT_FIELDS = ("artist", "track", "album")


class ControlServer:
    def __init__(
        self,
        controller: ScrobbleController,
        socket_path: str,
        observer: LoggingObserver | None = None,
    ) -> None:
        self._controller = controller
        self._observer = observer
        self._socket_path = Path(socket_path)
        self._server: asyncio.AbstractServer | None = None

    async def start(self) -> None:
        self._socket_path.unlink(missing_ok=True)
        self._server = await asyncio.start_unix_server(
            self._handle_client,
            path=str(self._socket_path),
        )

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        self._socket_path.unlink(missing_ok=True)

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        try:
            line = await reader.readline()
            if not line:
                return
            request = json.loads(line.decode("utf-8"))
            response = await self.dispatch(request)
        except Exception as exc:  # noqa: BLE001
            response = {"ok": False, "error": str(exc)}
        writer.write((json.dumps(response) + "\n").encode("utf-8"))
        await writer.drain()
        writer.close()
        await writer.wait_closed()

    async def dispatch(self, request: dict[str, Any]) -> dict[str, Any]:
        action = str(request.get("action", "")).strip()
        try:
            if action == "status":
                return {"ok": True, "state": self._state_payload()}
            if action == "skip":
                self._controller.skip_current_song()
                return {"ok": True, "state": self._state_payload()}
            if action in ("love", "unlove"):
                await self._controller.toggle_love(action == "love")
                return {"ok": True, "state": self._state_payload()}
            if action == "reset":
                await self._controller.reset_song_data()
                return {"ok": True, "state": self._state_payload()}
            if action == "edit":
                fields = {
                    name: str(request[name]).strip()
                    for name in EDIT_FIELDS
                    if request.get(name)
                }
                if not fields:
                    return {"ok": False, "error": "edit needs artist, track or album"}
                await self._controller.set_user_song_data(fields)
                return {"ok": True, "state": self._state_payload()}
            if action == "enable":
                self._controller.set_enabled(True)
                return {"ok": True, "state": self._state_payload()}
            if action == "disable":
                self._controller.set_enabled(False)
                return {"ok": True, "state": self._state_payload()}
        except ControllerStateError as exc:
            return {"ok": False, "error": str(exc)}
        return {"ok": False, "error": f"unknown action: {action}"}

    def _state_payload(self) -> dict[str, Any]:
        song = self._controller.get_current_song()
        connector = self._controller.get_connector()
        payload: dict[str, Any] = {
            "connector": {"id": connector.id, "label": connector.label},
            "enabled": self._controller.is_enabled,
            "mode": self._controller.get_mode().value,
            "song": song.to_dict() if song else None,
        }
        if self._observer and self._observer.last_event:
            payload["last_event"] = self._observer.last_event.value
        return payload


async def send_ipc(socket_path: str, action: str, **payload: Any) -> dict[str, Any]:
    try:
        reader, writer = await asyncio.open_unix_connection(socket_path)
    except FileNotFoundError:
        return {"ok": False, "error": "daemon socket not found"}
    except OSError as exc:
        return {"ok": False, "error": str(exc)}
    request = {"action": action, **payload}
    writer.write((json.dumps(request) + "\n").encode("utf-8"))
    await writer.drain()
    line = await reader.readline()
    writer.close()
    await writer.wait_closed()
    if not line:
        return {"ok": False, "error": "empty response"}
    return json.loads(line.decode("utf-8"))
