"""
Command-line interface for TutorHub.

Usage::

    python -m tutorhub.cli list --difficulty Beginner
    python -m tutorhub.cli search "join"
    python -m tutorhub.cli path
    python -m tutorhub.cli show duckdb-basics --docs-url http://localhost:5173
    python -m tutorhub.cli upload notes.md --tags "sql, notes"
    python -m tutorhub.cli upload --url https://example.com/guide.md
    python -m tutorhub.cli complete duckdb-basics
    python -m tutorhub.cli note add duckdb-basics "COPY is fast" --quote COPY
    python -m tutorhub.cli export -o backup.json
    python -m tutorhub.cli import backup.json --replace

Exit code 0 on success, 1 on failure.
"""

import argparse
import asyncio
import json
import logging
import sqlite3
import sys
from pathlib import Path
from typing import Dict, List, Optional

from tutorhub import __version__
from tutorhub.authoring import new_user_tutorial
from tutorhub.catalog import catalog_stats, content_map, filter_catalog, load_user_records, merge_catalog
from tutorhub.config import Settings
from tutorhub.dag_validator import compute_metrics, validate_catalog
from tutorhub.data_transfer import ALL_SECTIONS, LearnDataManager
from tutorhub.errors import TutorHubError
from tutorhub.fetchers.url_importer import import_from_url
from tutorhub.kv import SqliteKeyValueStore
from tutorhub.learner_data import FavoriteStore, NoteStore
from tutorhub.models import Difficulty, TutorialMetadata
from tutorhub.path_builder import build_path, next_in_path, prerequisites_met
from tutorhub.progress import ProgressTracker
from tutorhub.registry import default_registry
from tutorhub.resolver import ContentResolver
from tutorhub.search import search
from tutorhub.session import TutorialSession
from tutorhub.store import UserTutorialStore
from tutorhub.utils import setup_logging

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _format_row(t: TutorialMetadata, completed: Optional[set] = None) -> str:
    mark = ""
    if completed is not None:
        if t.id in completed:
            mark = "[x] "
        elif prerequisites_met(t, completed):
            mark = "[ ] "
        else:
            mark = "[-] "
    origin = " (user)" if t.is_user_authored else ""
    return f"{mark}{t.id:<28} {t.difficulty.value:<12} {t.category:<18} {t.title}{origin}"


def _load_overrides(path: Optional[str]) -> Optional[Dict[str, str]]:
    if not path:
        return None
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object of id -> markdown in {path}")
    return {str(k): str(v) for k, v in data.items()}


def _tracker(settings: Settings) -> ProgressTracker:
    return ProgressTracker(SqliteKeyValueStore(settings.db_path))


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _cmd_list(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    catalog = merge_catalog(default_registry, await load_user_records(store))
    difficulty = Difficulty(args.difficulty) if args.difficulty else None
    completed = _tracker(settings).completed_ids()
    rows = filter_catalog(catalog, category=args.category, difficulty=difficulty)
    for t in rows:
        print(_format_row(t, completed))
    stats = catalog_stats(catalog, completed)
    print(f"\n{len(rows)} shown, {stats.total} total, {stats.completed} completed, "
          f"{stats.user_authored} user-authored")
    return 0


async def _cmd_path(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    catalog = merge_catalog(default_registry, await load_user_records(store))
    completed = _tracker(settings).completed_ids()
    path = build_path(catalog, completed)
    for idx, t in enumerate(path.tutorials, 1):
        print(f"{idx:>3}. {_format_row(t, completed)}")
    if path.cycle_detected:
        cycles = ", ".join(f"{a} -> {b}" for a, b in path.suppressed_edges)
        print(f"\nwarning: prerequisite cycle(s) ignored: {cycles}")
    return 0


async def _cmd_search(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    records = await load_user_records(store)
    catalog = merge_catalog(default_registry, records)
    results = search(args.query, catalog, content_map(records))
    for r in results:
        print(f"{r.id:<28} [{r.match_type}] {r.title}")
        if r.matching_excerpt:
            print("    " + " ".join(r.matching_excerpt.split()))
    if not results:
        print("No matches.")
    return 0


async def _cmd_show(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    catalog = merge_catalog(default_registry, await load_user_records(store))
    tutorial = next((t for t in catalog if t.id == args.tutorial_id), None)
    if tutorial is None:
        logger.error("Unknown tutorial id: %s", args.tutorial_id)
        return 1

    resolver = ContentResolver.from_settings(settings, store, overrides=_load_overrides(args.overrides))
    session = TutorialSession(resolver)
    await session.open(tutorial)
    print(session.content)
    if not session.is_loaded:
        logger.error("Content unavailable for %s: %s", tutorial.id, session.error)
        return 1
    return 0


async def _cmd_upload(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    title_hint = None
    if args.url:
        content, title_hint = await asyncio.to_thread(
            import_from_url, args.url, settings.request_timeout
        )
    elif args.file:
        path = Path(args.file)
        if path.suffix.lower() != ".md":
            raise ValueError("Please choose a Markdown (.md) file.")
        content = path.read_text(encoding="utf-8")
    else:
        raise ValueError("Provide a Markdown file or --url.")

    record = new_user_tutorial(
        content,
        title=args.title or title_hint,
        category=args.category,
        difficulty=Difficulty(args.difficulty) if args.difficulty else None,
        tags=args.tags,
        tutorial_id=args.id,
    )
    stored = await store.put(record)
    print(f"Saved {stored.id}: {stored.title} ({stored.difficulty.value})")
    return 0


async def _cmd_delete(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    if not await store.delete(args.tutorial_id):
        logger.error("No user tutorial with id %s", args.tutorial_id)
        return 1
    print(f"Deleted {args.tutorial_id}")
    return 0


async def _cmd_complete(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    catalog = merge_catalog(default_registry, await load_user_records(store))
    if not any(t.id == args.tutorial_id for t in catalog):
        logger.error("Unknown tutorial id: %s", args.tutorial_id)
        return 1
    record = _tracker(settings).mark_completed(args.tutorial_id)
    print(f"Completed {args.tutorial_id} at {record.completed_at}")
    return 0


async def _cmd_progress(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    catalog = merge_catalog(default_registry, await load_user_records(store))
    records = _tracker(settings).load()
    stats = catalog_stats(catalog, set(records))
    for t in catalog:
        record = records.get(t.id)
        when = record.completed_at if record else "-"
        print(f"{t.id:<28} {when}")
    print(f"\n{stats.completed}/{stats.total} completed")
    return 0


async def _cmd_next(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    if args.after:
        if args.after not in default_registry:
            logger.error("Unknown built-in tutorial id: %s", args.after)
            return 1
        suggestion = default_registry.next_tutorial(args.after)
    else:
        catalog = merge_catalog(default_registry, await load_user_records(store))
        completed = _tracker(settings).completed_ids()
        if completed:
            suggestion = next_in_path(build_path(catalog, completed), completed)
        else:
            suggestion = default_registry.recommended_first()
    if suggestion is None:
        print("Nothing left to study.")
        return 0
    print(_format_row(suggestion))
    return 0


async def _cmd_validate(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    catalog = merge_catalog(default_registry, await load_user_records(store))
    report = validate_catalog(catalog)
    report["metrics"] = compute_metrics(catalog)
    print(json.dumps(report, indent=2))
    return 0 if report["is_dag"] and not report["missing_prerequisites"] else 1


async def _lookup(store: UserTutorialStore, tutorial_id: str) -> Optional[TutorialMetadata]:
    catalog = merge_catalog(default_registry, await load_user_records(store))
    tutorial = next((t for t in catalog if t.id == tutorial_id), None)
    if tutorial is None:
        logger.error("Unknown tutorial id: %s", tutorial_id)
    return tutorial


async def _cmd_note(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    notes = NoteStore(settings.db_path)
    if args.action == "add":
        tutorial = await _lookup(store, args.tutorial_id)
        if tutorial is None:
            return 1
        note = await notes.add(tutorial, args.text, selected_text=args.quote or "")
        print(f"Saved {note.id} on {tutorial.id}")
    elif args.action == "list":
        found = await (notes.get_by_tutorial(args.tutorial_id) if args.tutorial_id else notes.get_all())
        for note in found:
            quote = f' "{note.selected_text}"' if note.selected_text else ""
            print(f"{note.id:<18} {note.tutorial_id:<28}{quote} {note.note_content}")
        if not found:
            print("No notes.")
    else:
        if not await notes.delete(args.note_id):
            logger.error("No note with id %s", args.note_id)
            return 1
        print(f"Deleted {args.note_id}")
    return 0


async def _cmd_favorite(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    favorites = FavoriteStore(settings.db_path)
    if args.action == "add":
        tutorial = await _lookup(store, args.tutorial_id)
        if tutorial is None:
            return 1
        await favorites.add(tutorial)
        print(f"Favorited {tutorial.id}")
    elif args.action == "remove":
        if not await favorites.remove_by_tutorial(args.tutorial_id):
            logger.error("%s is not a favorite", args.tutorial_id)
            return 1
        print(f"Removed {args.tutorial_id} from favorites")
    else:
        found = await favorites.get_all()
        for fav in found:
            print(f"{fav.tutorial_id:<28} {fav.added_at}  {fav.tutorial_title}")
        print(f"\n{len(found)} favorite(s)")
    return 0


def _manager(settings: Settings, store: UserTutorialStore) -> LearnDataManager:
    return LearnDataManager(
        store, _tracker(settings), NoteStore(settings.db_path), FavoriteStore(settings.db_path)
    )


async def _cmd_export(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    payload = await _manager(settings, store).export_json(args.only)
    if args.output:
        Path(args.output).write_text(payload, encoding="utf-8")
        print(f"Exported learner data to {args.output}")
    else:
        print(payload)
    return 0


async def _cmd_import(args: argparse.Namespace, settings: Settings, store: UserTutorialStore) -> int:
    payload = Path(args.file).read_text(encoding="utf-8")
    result = await _manager(settings, store).import_json(
        payload, mode="replace" if args.replace else "merge"
    )
    counts = ", ".join(f"{k}={v}" for k, v in result.imported.items()) or "nothing"
    print(f"Imported ({result.mode}): {counts}")
    return 0


_COMMANDS = {
    "list": _cmd_list,
    "path": _cmd_path,
    "search": _cmd_search,
    "show": _cmd_show,
    "upload": _cmd_upload,
    "delete": _cmd_delete,
    "complete": _cmd_complete,
    "progress": _cmd_progress,
    "next": _cmd_next,
    "validate": _cmd_validate,
    "note": _cmd_note,
    "favorite": _cmd_favorite,
    "export": _cmd_export,
    "import": _cmd_import,
}


# ---------------------------------------------------------------------------
# CLI entry-point
# ---------------------------------------------------------------------------


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="tutorhub",
        description="Browse, search and study tutorials.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--db", help="Path to the SQLite database (default: ./data/tutorhub.db).")
    parser.add_argument("--docs-url", help="Base URL that serves built-in tutorial documents.")
    parser.add_argument("--timeout", type=float, help="Network timeout in seconds (default: 10).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")

    sub = parser.add_subparsers(dest="command", required=True)

    p_list = sub.add_parser("list", help="List the catalog.")
    p_list.add_argument("--category")
    p_list.add_argument("--difficulty", choices=[d.value for d in Difficulty])

    sub.add_parser("path", help="Show the recommended learning path.")

    p_search = sub.add_parser("search", help="Search titles, descriptions, tags and content.")
    p_search.add_argument("query")

    p_show = sub.add_parser("show", help="Print a tutorial's Markdown content.")
    p_show.add_argument("tutorial_id")
    p_show.add_argument("--overrides", help="JSON file mapping tutorial id to Markdown.")

    p_upload = sub.add_parser("upload", help="Save a Markdown tutorial of your own.")
    p_upload.add_argument("file", nargs="?")
    p_upload.add_argument("--url", help="Import the Markdown from a URL instead of a file.")
    p_upload.add_argument("--id", help="Replace the user tutorial with this id.")
    p_upload.add_argument("--title")
    p_upload.add_argument("--category")
    p_upload.add_argument("--difficulty", choices=[d.value for d in Difficulty])
    p_upload.add_argument("--tags", help="Comma-separated tags.")

    p_delete = sub.add_parser("delete", help="Delete a user tutorial.")
    p_delete.add_argument("tutorial_id")

    p_complete = sub.add_parser("complete", help="Mark a tutorial as completed.")
    p_complete.add_argument("tutorial_id")

    sub.add_parser("progress", help="Show completion state.")
    p_next = sub.add_parser("next", help="Suggest what to study next.")
    p_next.add_argument("--after", help="Suggest the built-in tutorial that follows this one.")

    sub.add_parser("validate", help="Check prerequisites for cycles and unknown ids.")

    p_note = sub.add_parser("note", help="Add, list or delete notes on tutorials.")
    note_sub = p_note.add_subparsers(dest="action", required=True)
    p_note_add = note_sub.add_parser("add")
    p_note_add.add_argument("tutorial_id")
    p_note_add.add_argument("text")
    p_note_add.add_argument("--quote", help="The passage the note refers to.")
    p_note_list = note_sub.add_parser("list")
    p_note_list.add_argument("tutorial_id", nargs="?")
    p_note_delete = note_sub.add_parser("delete")
    p_note_delete.add_argument("note_id")

    p_fav = sub.add_parser("favorite", help="Manage favorite tutorials.")
    fav_sub = p_fav.add_subparsers(dest="action", required=True)
    fav_sub.add_parser("add").add_argument("tutorial_id")
    fav_sub.add_parser("remove").add_argument("tutorial_id")
    fav_sub.add_parser("list")

    p_export = sub.add_parser("export", help="Write tutorials, progress, notes and favorites as JSON.")
    p_export.add_argument("-o", "--output", help="Write to this file instead of stdout.")
    p_export.add_argument("--only", nargs="+", choices=list(ALL_SECTIONS), help="Export only these sections.")

    p_import = sub.add_parser("import", help="Load a JSON export.")
    p_import.add_argument("file")
    p_import.add_argument("--replace", action="store_true", help="Replace sections instead of merging.")

    return parser.parse_args(argv)


def run(argv: Optional[List[str]] = None) -> int:
    """Parse *argv*, run one command, return its exit code."""
    args = _parse_args(argv)
    settings = Settings.from_env().with_overrides(
        db_path=args.db,
        docs_base_url=args.docs_url,
        request_timeout=args.timeout,
        log_level="DEBUG" if args.verbose else None,
    )
    setup_logging(level=settings.log_level_value)

    store = UserTutorialStore(settings.db_path)
    try:
        return asyncio.run(_COMMANDS[args.command](args, settings, store))
    except (TutorHubError, ValueError, OSError, sqlite3.Error) as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


def main(argv: Optional[List[str]] = None) -> None:
    """CLI main entry-point."""
    sys.exit(run(argv))


if __name__ == "__main__":
    main()
