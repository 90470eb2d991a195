"""
Entry point for the StreamPulse tray application and follow-list tools.
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional, Sequence

from core.follow_store import FollowStore
from shared.followed_streamer import FollowedStreamer, Platform
from streampulse_core.streampulse_core import logger as app_logger

_LOGGER = app_logger.get_logger()


def _platform_arg(value: str) -> Platform:
    try:
        return Platform.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="streampulse", description="Follow streamers and get notified when they go live.")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the tray application (default).")
    subparsers.add_parser("list", help="Print the followed streamers.")

    follow = subparsers.add_parser("follow", help="Follow a streamer.")
    follow.add_argument("platform", type=_platform_arg, help="CHZZK or SOOP")
    follow.add_argument("streamer_id", help="Channel id (CHZZK) or station id (SOOP)")
    follow.add_argument("--name", required=True, help="Display name used to search for the streamer")
    follow.add_argument("--url", default="", help="Channel URL; defaults to the platform station page")
    follow.add_argument("--image", default="", help="Profile image URL")

    unfollow = subparsers.add_parser("unfollow", help="Stop following a streamer.")
    unfollow.add_argument("platform", type=_platform_arg, help="CHZZK or SOOP")
    unfollow.add_argument("streamer_id")
    return parser


def _run_application(argv: Sequence[str]) -> int:
    """Start the Qt application and block until it exits."""
    from PySide6.QtWidgets import QApplication

    from core.app import AppCoordinator

    app = QApplication(list(argv))
    app.setQuitOnLastWindowClosed(False)
    coordinator = AppCoordinator()
    coordinator.start()
    exit_code = app.exec()
    if not coordinator.manual_shutdown_requested:
        _LOGGER.warning("Application exited without a user request (code={})", exit_code)
    return exit_code


def _list_follows(store: FollowStore) -> int:
    follows = store.get_all()
    if not follows:
        print("Not following anyone yet.")
        return 0
    for streamer in follows:
        checked = streamer.last_checked.isoformat(timespec="seconds") if streamer.last_checked else "never"
        print(f"{streamer.platform.label:<6} {streamer.streamer_id:<34} {streamer.display_name}  (last checked: {checked})")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args_list = sys.argv[1:] if argv is None else argv
    args = build_parser().parse_args(args_list)

    if args.command in (None, "run"):
        return _run_application([sys.argv[0]])

    store = FollowStore()
    store.load()

    if args.command == "list":
        return _list_follows(store)

    if args.command == "follow":
        entry = FollowedStreamer(
            platform=args.platform,
            streamer_id=args.streamer_id,
            display_name=args.name,
            profile_image_url=args.image,
            channel_url=args.url,
        )
        if not store.add(entry):
            print(f"Already following {args.platform.label}:{args.streamer_id}")
            return 1
        print(f"Now following {entry.display_name} ({entry.channel_url})")
        return 0

    if args.command == "unfollow":
        if not store.remove(args.platform, args.streamer_id):
            print(f"Not following {args.platform.label}:{args.streamer_id}")
            return 1
        print(f"Unfollowed {args.platform.label}:{args.streamer_id}")
        return 0

    return 1


if __name__ == "__main__":
    raise SystemExit(main())
