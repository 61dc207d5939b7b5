from __future__ import annotations

import argparse
from pathlib import Path


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="scrobble-bridge: scrobble what your MPRIS player is playing"
    )
    parser.add_argument("--config", type=Path, help="Path to config.toml", default=None)
    parser.add_argument("--log-level", default="INFO", help="Python log level (INFO, DEBUG, ...)")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Run the scrobbler daemon")
    subparsers.add_parser("doctor", help="Check runtime environment and config")

    ctl = subparsers.add_parser("ctl", help="Control running daemon over IPC")
    ctl.add_argument(
        "action",
        choices=[
            "status",
            "skip",
            "love",
            "unlove",
            "reset",
            "edit",
            "enable",
            "disable",
        ],
    )
    ctl.add_argument("--artist", help="Corrected artist (edit)")
    ctl.add_argument("--track", help="Corrected track title (edit)")
    ctl.add_argument("--album", help="Corrected album (edit)")

    return parser.parse_args(argv)
