from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from pathlib import Path

from scrobble_bridge.config import AppConfig, ConfigOptions, load_config
from scrobble_bridge.controller import ScrobbleController
from scrobble_bridge.ipc import ControlServer, send_ipc
from scrobble_bridge.models import Connector
from scrobble_bridge.mpris import MprisWatcher
from scrobble_bridge.observer import LoggingObserver
from scrobble_bridge.pipeline import Pipeline
from scrobble_bridge.saved_edits import JsonSavedEdits
from scrobble_bridge.scrobbler import (
    ListenBrainzConfig,
    ListenBrainzScrobbler,
    MultiScrobbleService,
    Scrobbler,
)


LOGGER = logging.getLogger(__name__)


def build_scrobblers(config: AppConfig) -> list[Scrobbler]:
    scrobblers: list[Scrobbler] = []
    if config.listenbrainz_token:
        scrobblers.append(
            ListenBrainzScrobbler(
                ListenBrainzConfig(
                    token=config.listenbrainz_token,
                    base_url=config.listenbrainz_base_url,
                    user_agent=config.user_agent,
                )
            )
        )
    return scrobblers


def build_connector(config: AppConfig) -> Connector:
    if config.player:
        return Connector(id=f"mpris:{config.player}", label=config.player)
    return Connector(id="mpris:any", label="MPRIS")


async def run_daemon(config: AppConfig, config_path: Path | None = None) -> None:
    saved_edits = JsonSavedEdits(config.saved_edits_path)
    service = MultiScrobbleService(build_scrobblers(config))
    if not service.scrobblers:
        LOGGER.warning("No scrobbling service is configured; submissions will fail")

    observer = LoggingObserver()
    controller = ScrobbleController(
        connector=build_connector(config),
        observer=observer,
        pipeline=Pipeline(saved_edits),
        scrobble_service=service,
        saved_edits=saved_edits,
        options=ConfigOptions(config_path),
    )
    await controller.initialize()

    watcher = MprisWatcher(
        player=config.player,
        listener=controller.on_state_changed,
        poll_interval_seconds=config.poll_interval_seconds,
    )
    server = ControlServer(controller, config.control_socket_path, observer)

    await server.start()
    await watcher.start()
    LOGGER.info(
        "Bridge started for %s; control socket %s",
        controller.get_connector().label,
        config.control_socket_path,
    )

    try:
        await asyncio.Event().wait()
    finally:
        await watcher.stop()
        await server.stop()
        await controller.finish()
        await service.close()


async def run_ctl_command(config: AppConfig, args: argparse.Namespace) -> None:
    payload = {
        name: value
        for name in ("artist", "track", "album")
        if (value := getattr(args, name, None))
    }
    response = await send_ipc(config.control_socket_path, args.action, **payload)
    if not response.get("ok", False):
        raise SystemExit(f"ctl command failed: {response.get('error', 'unknown error')}")
    print(json.dumps(response, indent=2, ensure_ascii=False))


def run_doctor(config: AppConfig, config_path: Path | None = None) -> None:
    checks = {
        "config_file": str(config_path) if config_path else None,
        "dbus_session_bus": bool(os.getenv("DBUS_SESSION_BUS_ADDRESS")),
        "player": config.player or "(first available)",
        "listenbrainz_token_present": bool(config.listenbrainz_token),
        "control_socket_path": config.control_socket_path,
        "saved_edits_path": str(config.saved_edits_path),
        "scrobble_podcasts": config.scrobble_podcasts,
        "scrobble_percent": config.scrobble_percent,
        "scrobble_seconds": config.scrobble_seconds,
    }
    print(json.dumps(checks, indent=2))


async def run(args: argparse.Namespace) -> None:
    config = load_config(args.config)
    command = args.command or "run"

    if command == "run":
        await run_daemon(config, args.config)
        return
    if command == "ctl":
        await run_ctl_command(config, args)
        return
    if command == "doctor":
        run_doctor(config, args.config)
        return

    raise SystemExit(f"Unknown command: {command}")
