"""
Command-line interface for TabDog.

Usage:
    python -m tabdog save --mode others
    python -m tabdog list
    python -m tabdog export backup.txt
    python -m tabdog import backup.txt
    python -m tabdog rename 1704110400000 "Work"
    python -m tabdog delete 1704110400000
    python -m tabdog clear
    python -m tabdog restore 1704110400000
    python -m tabdog config --set batch_size=50
    python -m tabdog ui
"""

from __future__ import annotations
import argparse
import asyncio
import logging
import sys
from pathlib import Path

import yaml

from . import TabDogError
from .config import AppSettings, config_path, get_settings, load_settings, save_settings
from .sessions.capture import PREDICATES, get_predicate
from .sessions.io import ImportParseError, backup_filename, read_backup, write_backup
from .sessions.manager import Outcome, SessionManager
from .sessions.models import parse_session_key
from .sessions.render import project_sessions
from .store import SqliteStore
from .tabs import DevToolsTabSource

logger = logging.getLogger(__name__)


def _confirm(prompt: str) -> bool:
    answer = input(f"{prompt} [y/N] ")
    return answer.strip().lower() in ("y", "yes")


def _always_yes(prompt: str) -> bool:
    return True


def _print_outcome(outcome: Outcome) -> int:
    print(outcome.message)
    return 0


# ── Commands ─────────────────────────────────────────────────────────

async def cmd_save(args, manager: SessionManager, settings: AppSettings) -> int:
    source = DevToolsTabSource(settings.devtools_host, settings.devtools_port)
    predicate = get_predicate(args.mode, settings.extension_url_prefix)
    return _print_outcome(await manager.save_tabs(source, predicate))


async def cmd_list(args, manager: SessionManager, settings: AppSettings) -> int:
    tabs, metadata = await manager.load()
    if not tabs:
        print("No saved tabs yet.")
        return 0

    for view in project_sessions(tabs, metadata, settings.placeholder_name):
        if view.grouped:
            print(f"[{view.key}] {view.summary}")
        else:
            print(f"[{view.key}] {view.date_string}")
        for tab in view.tabs:
            print(f"    {tab.url}")
    print(f"\n{len(tabs)} saved tabs")
    return 0


async def cmd_export(args, manager: SessionManager, settings: AppSettings) -> int:
    outcome = await manager.export(as_json=args.json)
    if outcome.noop:
        return _print_outcome(outcome)

    if args.path == "-":
        sys.stdout.write(outcome.content)
        return 0

    suffix = ".json" if args.json else ".txt"
    path = Path(args.path) if args.path else Path(backup_filename(settings.product_name, suffix=suffix))
    write_backup(path, outcome.content)
    print(f"Exported {outcome.count} tabs to {path}")
    return 0


async def cmd_import(args, manager: SessionManager, settings: AppSettings) -> int:
    try:
        if args.json:
            outcome = await manager.import_json(read_backup(Path(args.path)))
        else:
            outcome = await manager.import_file(Path(args.path))
    except ImportParseError as e:
        print(f"Error importing tabs: {e}", file=sys.stderr)
        return 1
    return _print_outcome(outcome)


async def cmd_rename(args, manager: SessionManager, settings: AppSettings) -> int:
    key = parse_session_key(args.session)
    return _print_outcome(await manager.rename_session(key, args.name))


async def cmd_delete(args, manager: SessionManager, settings: AppSettings) -> int:
    key = parse_session_key(args.session)
    confirm = _always_yes if args.yes else _confirm
    return _print_outcome(await manager.delete_session(key, confirm))


async def cmd_clear(args, manager: SessionManager, settings: AppSettings) -> int:
    confirm = _always_yes if args.yes else _confirm
    return _print_outcome(await manager.clear_all(confirm))


async def cmd_restore(args, manager: SessionManager, settings: AppSettings) -> int:
    source = DevToolsTabSource(settings.devtools_host, settings.devtools_port)
    key = parse_session_key(args.session)
    return _print_outcome(await manager.restore_session(key, source))


def cmd_config(args) -> int:
    """Show settings, or update and persist them with --set KEY=VALUE."""
    # Read from disk so --db and other per-run overrides aren't persisted
    settings = load_settings()

    if args.set:
        data = settings.to_dict()
        for assignment in args.set:
            key, sep, value = assignment.partition("=")
            key = key.strip()
            if not sep:
                print(f"Expected KEY=VALUE, got {assignment!r}", file=sys.stderr)
                return 1
            if key not in data:
                print(f"Unknown setting: {key!r}", file=sys.stderr)
                return 1

            current = data[key]
            try:
                parsed = value if isinstance(current, str) else yaml.safe_load(value)
            except yaml.YAMLError:
                parsed = value
            if type(parsed) is not type(current):
                print(f"{key} expects {type(current).__name__}, got {value!r}", file=sys.stderr)
                return 1
            data[key] = parsed

        settings = AppSettings.from_dict(data)
        save_settings(settings)
        print(f"Saved settings to {config_path()}")

    sys.stdout.write(yaml.safe_dump(settings.to_dict(), default_flow_style=False, sort_keys=False))
    return 0


COMMANDS = {
    "save": cmd_save,
    "list": cmd_list,
    "export": cmd_export,
    "import": cmd_import,
    "rename": cmd_rename,
    "delete": cmd_delete,
    "clear": cmd_clear,
    "restore": cmd_restore,
}


# ── Main ─────────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tabdog",
        description="TabDog - save open tabs into sessions and bring them back"
    )
    parser.add_argument("--db", default=None, help="Path to the saved tabs database")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("save", help="Save and close open tabs")
    p.add_argument("--mode", choices=list(PREDICATES), default="all",
                   help="all: every tab, others: all but the current tab, current: just the current tab")

    sub.add_parser("list", help="List saved sessions")

    p = sub.add_parser("export", help="Write a backup file")
    p.add_argument("path", nargs="?", default=None,
                   help="Output file ('-' for stdout, default: <product>_backup_<date>.txt)")
    p.add_argument("--json", action="store_true", help="Lossless JSON snapshot instead of text")

    p = sub.add_parser("import", help="Merge a backup file into saved tabs")
    p.add_argument("path", help="Backup file (.txt or .json)")
    p.add_argument("--json", action="store_true", help="Treat the file as a JSON snapshot")

    p = sub.add_parser("rename", help="Name a session (empty name removes it)")
    p.add_argument("session", help="Session id as shown by 'list'")
    p.add_argument("name", help="New name")

    p = sub.add_parser("delete", help="Delete a session")
    p.add_argument("session", help="Session id as shown by 'list'")
    p.add_argument("--yes", action="store_true", help="Don't ask for confirmation")

    p = sub.add_parser("clear", help="Delete every saved tab")
    p.add_argument("--yes", action="store_true", help="Don't ask for confirmation")

    p = sub.add_parser("restore", help="Reopen every tab of a session")
    p.add_argument("session", help="Session id as shown by 'list'")

    p = sub.add_parser("config", help="Show or change settings")
    p.add_argument("--set", action="append", metavar="KEY=VALUE",
                   help="Change a setting and save it (repeatable)")

    sub.add_parser("ui", help="Open the management window")

    return parser


def main(argv: list[str] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    if args.db:
        settings.db_path = args.db

    # Logging
    level = logging.DEBUG if args.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.command == "ui":
        from .sessions.tree import run_standalone
        return run_standalone(settings)
    if args.command == "config":
        return cmd_config(args)

    manager = SessionManager(SqliteStore(Path(settings.db_path)), settings)
    handler = COMMANDS[args.command]

    try:
        return asyncio.run(handler(args, manager, settings))
    except TabDogError as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
