"""Command-line interface for PaperLaunch.

Manages the entries database, replays recorded gestures against the
launcher core without a display and opens a desktop window:

    paperlaunch tree --paginate --height 1920
    paperlaunch add-folder Tools
    paperlaunch add-app Terminal org.example.term --folder 1
    paperlaunch import entries.yml
    paperlaunch replay swipe.jsonl
    paperlaunch run --width 540 --height 960
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, Sequence, TextIO

import yaml

from paperlaunch import __version__
from paperlaunch.app.desktop import run_desktop
from paperlaunch.config import DisplayMetrics, make_lane_config
from paperlaunch.core.clock import SimClock
from paperlaunch.core.entries import Entry, Folder, LaunchEntry, VirtualFolder
from paperlaunch.core.listeners import RecordingListener
from paperlaunch.errors import PaperLaunchError
from paperlaunch.service import LauncherService, paginate_root
from paperlaunch.settings.store import SettingsStore, paperlaunch_home
from paperlaunch.storage.entries_store import ROOT_FOLDER_ID, EntriesStore
from paperlaunch.tools.gesture_replay import GestureReplayer

logger = logging.getLogger(__name__)


def default_db_path() -> Path:
    return paperlaunch_home() / "entries.db"


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="paperlaunch", description="Side-screen launcher core")
    ap.add_argument("--version", action="store_true", help="Print version and exit")
    ap.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )
    ap.add_argument("--db", type=Path, default=None, help="Entries database path")

    sub = ap.add_subparsers(dest="command")

    def _metrics_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--width", type=int, default=1080, help="Screen width in px")
        p.add_argument("--height", type=int, default=1920, help="Screen height in px")
        p.add_argument("--density", type=float, default=1.0, help="Pixels per dip")

    p_tree = sub.add_parser("tree", help="Print the configured entries")
    p_tree.add_argument(
        "--paginate", action="store_true", help="Show the tree as a lane would (folded)"
    )
    _metrics_args(p_tree)

    p_app = sub.add_parser("add-app", help="Add a launch entry")
    p_app.add_argument("name")
    p_app.add_argument("target")
    p_app.add_argument("--folder", type=int, default=ROOT_FOLDER_ID, help="Parent folder id")
    p_app.add_argument("--icon", default=None)

    p_folder = sub.add_parser("add-folder", help="Add a folder")
    p_folder.add_argument("name")
    p_folder.add_argument("--folder", type=int, default=ROOT_FOLDER_ID, help="Parent folder id")
    p_folder.add_argument("--icon", default=None)

    p_import = sub.add_parser("import", help="Append entries from a YAML file")
    p_import.add_argument("file", type=Path)
    p_import.add_argument("--folder", type=int, default=ROOT_FOLDER_ID, help="Parent folder id")

    p_replay = sub.add_parser("replay", help="Replay a JSONL gesture against the launcher")
    p_replay.add_argument("file", type=Path)
    p_replay.add_argument("--speed", type=float, default=1.0)
    _metrics_args(p_replay)

    p_run = sub.add_parser("run", help="Open a desktop window driven by the mouse")
    p_run.add_argument(
        "--seconds", type=float, default=None, help="Exit after this many seconds"
    )
    _metrics_args(p_run)

    return ap


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def format_tree(entries: Sequence[Entry], indent: int = 0) -> list[str]:
    lines: list[str] = []
    pad = "  " * indent
    for e in entries:
        if isinstance(e, VirtualFolder):
            lines.append(f"{pad}+ {e.name} (virtual, {len(e.entries)})")
            lines.extend(format_tree(e.entries, indent + 1))
        elif isinstance(e, Folder):
            lines.append(f"{pad}+ {e.name} [{e.id}]")
            lines.extend(format_tree(e.entries, indent + 1))
        elif isinstance(e, LaunchEntry):
            lines.append(f"{pad}- {e.name} [{e.id}] -> {e.target}")
    return lines


def _load_import_file(path: Path) -> list[dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("entries", [])
    if not isinstance(data, list) or not all(isinstance(x, dict) for x in data):
        raise PaperLaunchError(f"{path}: expected a list of entry mappings")
    return data


def _cmd_tree(args: argparse.Namespace, store: EntriesStore, out: TextIO) -> int:
    entries: Sequence[Entry] = store.load_root_content()
    if args.paginate:
        metrics = DisplayMetrics(args.width, args.height, args.density)
        config = make_lane_config(SettingsStore.load(), metrics)
        entries = paginate_root(entries, config)
        print(f"# max_visible={config.max_visible}", file=out)
    for line in format_tree(entries):
        print(line, file=out)
    return 0


async def replay_gesture(
    store: EntriesStore,
    metrics: DisplayMetrics,
    path: Path,
    *,
    speed: float = 1.0,
) -> RecordingListener:
    """Run the gesture in *path* through a headless service on simulated time."""
    clock = SimClock()
    recorder = RecordingListener()
    service = LauncherService(
        store, metrics, settings=SettingsStore.load(), clock=clock, listener=recorder
    )
    service.activate()
    replayer = GestureReplayer(path, clock, speed=speed)
    task = asyncio.create_task(replayer.run(service.handle_touch))
    # Jump straight to the next sleeper, whether it is the replayer waiting
    # for a sample or a selection animation.
    while not task.done():
        due = clock.next_due()
        if due is not None:
            clock.set_time(max(clock.monotonic(), due))
        await asyncio.sleep(0)
    await task
    await asyncio.sleep(0)
    while (due := clock.next_due()) is not None:
        clock.set_time(max(clock.monotonic(), due))
        await asyncio.sleep(0)
    service.deactivate()
    return recorder


def _cmd_replay(args: argparse.Namespace, store: EntriesStore, out: TextIO) -> int:
    metrics = DisplayMetrics(args.width, args.height, args.density)
    recorder = asyncio.run(replay_gesture(store, metrics, args.file, speed=args.speed))
    for name, call_args in recorder.calls:
        if name == "entries":
            continue
        shown = ", ".join(
            getattr(a, "name", None) or getattr(a, "value", None) or str(a) for a in call_args
        )
        print(f"{name}: {shown}", file=out)
    launched = recorder.of("launch")
    if launched:
        entry = launched[-1][0]
        print(f"launched {entry.name} -> {entry.target}", file=out)
    return 0


def _cmd_run(args: argparse.Namespace, store: EntriesStore) -> int:
    metrics = DisplayMetrics(args.width, args.height, args.density)
    try:
        return asyncio.run(run_desktop(store, metrics, max_seconds=args.seconds))
    except RuntimeError as e:
        logger.error("desktop runner unavailable: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 0


def main(argv: Sequence[str] | None = None, out: TextIO | None = None) -> int:
    args = parse_args(argv)
    out = out or sys.stdout
    if args.version:
        print(f"PaperLaunch {__version__}", file=out)
        return 0
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if not args.command:
        build_parser().print_help(out)
        return 2

    db = args.db or default_db_path()
    try:
        with EntriesStore(db) as store:
            if args.command == "tree":
                return _cmd_tree(args, store, out)
            if args.command == "add-app":
                entry_id = store.add_launch(
                    args.name, args.target, parent_folder_id=args.folder, icon=args.icon
                )
                print(f"added entry {entry_id}", file=out)
                return 0
            if args.command == "add-folder":
                entry_id, folder_id = store.add_folder(
                    args.name, parent_folder_id=args.folder, icon=args.icon
                )
                print(f"added entry {entry_id} (folder {folder_id})", file=out)
                return 0
            if args.command == "import":
                count = store.import_tree(
                    _load_import_file(args.file), parent_folder_id=args.folder
                )
                print(f"imported {count} entries", file=out)
                return 0
            if args.command == "replay":
                return _cmd_replay(args, store, out)
            if args.command == "run":
                return _cmd_run(args, store)
    except (PaperLaunchError, OSError, yaml.YAMLError) as e:
        logger.error("%s failed: %s", args.command, e)
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 2


if __name__ == "__main__":
    sys.exit(main())
