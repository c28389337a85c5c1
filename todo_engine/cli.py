#!/usr/bin/env python3
"""
TODO ENGINE - CLI Interface
===========================
Command-line front end for the personal task tracker.

Usage:
    todo add "Buy milk" -c shopping --due 2026-10-20
    todo list -s active
    todo toggle 3f9a
    todo move 3f9a 1c2b -c work
    todo category add gym --color "#FF5722"
    todo category remove gym
    todo export -o backup.json
    todo import backup.json
"""

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from typing import List, Optional

from .config import EngineConfig
from .errors import TodoError
from .manager import TodoManager
from .schema import ALL_CATEGORIES, FALLBACK_CATEGORY, StatusFilter, Task, Theme
from .storage import Storage

logger = logging.getLogger("todo_engine.cli")


class ConsoleConfirmer:
    """Confirms on stdin unless --yes was given"""

    def __init__(self, assume_yes: bool = False):
        self.assume_yes = assume_yes

    async def confirm(self, title: str, message: str) -> bool:
        if self.assume_yes:
            return True
        answer = await asyncio.to_thread(input, f"{title}: {message} [y/N] ")
        return answer.strip().lower() in {"y", "yes"}


class ConsoleNotifier:
    def notify(self, title: str, body: str, tag: Optional[str] = None) -> None:
        print(f"🔔 {title} {body}")


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid date '{value}' (expected YYYY-MM-DD)")


def _resolve_id(manager: TodoManager, ref: str) -> Optional[str]:
    """Full id or an unambiguous prefix of one"""
    if manager.tasks.get(ref) is not None:
        return ref
    matches = [t.id for t in manager.tasks.all() if t.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if matches:
        print(f"❌ Ambiguous task id: {ref}")
    else:
        print(f"❌ Task not found: {ref}")
    return None


def _print_task(task: Task) -> None:
    icon = "✅" if task.completed else "⬜"
    due = f" (due {task.due_date.isoformat()})" if task.due_date else ""
    print(f"  {icon} [{task.id[:8]}] {task.text} #{task.category}{due}")


def _add_filter_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("-c", "--category", default=ALL_CATEGORIES, help="Category filter")
    p.add_argument("-s", "--status", default=StatusFilter.ALL.value,
                   choices=[s.value for s in StatusFilter], help="Status filter")
    p.add_argument("-q", "--search", default="", help="Case-insensitive text search")


def build_parser(config: EngineConfig) -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--dir", default=str(config.data_dir), help="Data directory")
    common.add_argument("--log-level", default=config.log_level, help="Logging level")

    parser = argparse.ArgumentParser(
        prog="todo",
        description="Personal task tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  todo add "Write report" -c work --due 2026-10-20
  todo list -c work -s active
  todo move 3f9a 1c2b -c work        Reorder the tasks visible under -c work
  todo category remove gym -y        Remove, reassigning tasks to Personal
  todo remind --watch                Keep alerting about tasks due today
        """,
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # ADD command
    add_parser = subparsers.add_parser("add", parents=[common], help="Add a task")
    add_parser.add_argument("text", nargs="+", help="Task text")
    add_parser.add_argument("-c", "--category", default=FALLBACK_CATEGORY, help="Category")
    add_parser.add_argument("--due", type=_parse_date, help="Due date (YYYY-MM-DD)")

    # LIST command
    list_parser = subparsers.add_parser("list", parents=[common], help="List tasks")
    _add_filter_args(list_parser)
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # TOGGLE command
    toggle_parser = subparsers.add_parser("toggle", parents=[common], help="Toggle completion")
    toggle_parser.add_argument("task_id", help="Task ID (or prefix)")

    # EDIT command
    edit_parser = subparsers.add_parser("edit", parents=[common], help="Edit a task")
    edit_parser.add_argument("task_id", help="Task ID (or prefix)")
    edit_parser.add_argument("--text", help="New text")
    edit_parser.add_argument("-c", "--category", help="New category")
    due_group = edit_parser.add_mutually_exclusive_group()
    due_group.add_argument("--due", type=_parse_date, help="New due date (YYYY-MM-DD)")
    due_group.add_argument("--no-due", action="store_true", help="Remove the due date")

    # DELETE command
    delete_parser = subparsers.add_parser("delete", parents=[common], help="Delete a task")
    delete_parser.add_argument("task_id", help="Task ID (or prefix)")
    delete_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    # CLEAR command
    clear_parser = subparsers.add_parser("clear", parents=[common], help="Delete all tasks")
    clear_parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    # MOVE command
    move_parser = subparsers.add_parser("move", parents=[common], help="Reorder visible tasks")
    move_parser.add_argument("task_ids", nargs="+", help="Task IDs in the new order")
    _add_filter_args(move_parser)

    # CATEGORY command
    category_parser = subparsers.add_parser("category", help="Manage categories")
    category_sub = category_parser.add_subparsers(dest="category_command", help="Category commands")
    category_sub.add_parser("list", parents=[common], help="List categories")
    cat_add = category_sub.add_parser("add", parents=[common], help="Add a custom category")
    cat_add.add_argument("name", help="Category name")
    cat_add.add_argument("--color", help="Hex color, e.g. #FF5722")
    cat_remove = category_sub.add_parser("remove", parents=[common], help="Remove a custom category")
    cat_remove.add_argument("name", help="Category name")
    cat_remove.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")

    # THEME command
    theme_parser = subparsers.add_parser("theme", parents=[common], help="Set or toggle the theme")
    theme_parser.add_argument("theme", nargs="?", choices=[t.value for t in Theme], help="Theme")

    # NOTIFICATIONS command
    notif_parser = subparsers.add_parser("notifications", parents=[common], help="Enable/disable alerts")
    notif_parser.add_argument("state", choices=["on", "off"])

    # EXPORT command
    export_parser = subparsers.add_parser("export", parents=[common], help="Export all data")
    export_parser.add_argument("-o", "--output", help="Output file (default: dated backup name)")
    export_parser.add_argument("--stdout", action="store_true", help="Print instead of writing a file")

    # IMPORT command
    import_parser = subparsers.add_parser("import", parents=[common], help="Import data (replaces tasks)")
    import_parser.add_argument("file", help="JSON file to import")

    # STATUS command
    status_parser = subparsers.add_parser("status", parents=[common], help="Show statistics")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # REMIND command
    remind_parser = subparsers.add_parser("remind", parents=[common], help="Alert about tasks due today")
    remind_parser.add_argument("--watch", action="store_true", help="Keep checking periodically")
    remind_parser.add_argument("--interval", type=float, default=config.check_interval,
                               help="Seconds between checks with --watch")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    config = EngineConfig.from_env()
    parser = build_parser(config)
    args = parser.parse_args(argv)

    if not args.command or (args.command == "category" and not args.category_command):
        parser.print_help()
        return 1

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )

    manager = TodoManager(
        Storage(args.dir, quota_bytes=config.quota_bytes),
        confirmer=ConsoleConfirmer(assume_yes=getattr(args, "yes", False)),
        notifier=ConsoleNotifier(),
    )

    try:
        return _run(manager, args)
    except TodoError as e:
        print(f"❌ {e}")
        return 1


def _run(manager: TodoManager, args: argparse.Namespace) -> int:
    # Execute command
    if args.command == "add":
        task = manager.add_task(" ".join(args.text), category=args.category, due_date=args.due)
        print(f"✅ Added: {task.text} [{task.id[:8]}]")

    elif args.command == "list":
        shown = manager.set_filter(category=args.category, status=args.status, search=args.search)
        if args.json:
            print(json.dumps([t.to_record() for t in shown], indent=2))
        else:
            print(manager.get_status_report())

    elif args.command == "toggle":
        task_id = _resolve_id(manager, args.task_id)
        if task_id is None:
            return 1
        manager.toggle_task(task_id)
        task = manager.tasks.get(task_id)
        print(f"{'✅ Completed' if task.completed else '⬜ Reopened'}: {task.text}")

    elif args.command == "edit":
        task_id = _resolve_id(manager, args.task_id)
        if task_id is None:
            return 1
        changes = {}
        if args.text is not None:
            changes["text"] = args.text
        if args.category is not None:
            changes["category"] = args.category
        if args.due is not None:
            changes["due_date"] = args.due
        if args.no_due:
            changes["due_date"] = None
        if not changes:
            print("Nothing to change")
            return 1
        manager.update_task(task_id, **changes)
        print("✏️ Updated:")
        _print_task(manager.tasks.get(task_id))

    elif args.command == "delete":
        task_id = _resolve_id(manager, args.task_id)
        if task_id is None:
            return 1
        removed = asyncio.run(manager.delete_task(task_id))
        if removed is None:
            print("Cancelled")
            return 1
        print(f"🗑️ Deleted: {removed.text}")

    elif args.command == "clear":
        if not asyncio.run(manager.clear_all()):
            print("Cancelled")
            return 1
        print("🧹 All tasks deleted")

    elif args.command == "move":
        manager.set_filter(category=args.category, status=args.status, search=args.search)
        ids = []
        for ref in args.task_ids:
            task_id = _resolve_id(manager, ref)
            if task_id is None:
                return 1
            ids.append(task_id)
        for task in manager.reorder(ids):
            _print_task(task)

    elif args.command == "category":
        if args.category_command == "list":
            for category in manager.categories.all():
                kind = "default" if category.is_default else "custom"
                print(f"  {category.display_name:<16} {category.display_color}  ({kind}, "
                      f"{manager.tasks.count_by_category(category.name)} tasks)")
        elif args.category_command == "add":
            category = manager.add_category(args.name, args.color)
            print(f"🏷️ Added category: {category.display_name} ({category.color})")
        elif args.category_command == "remove":
            if not asyncio.run(manager.remove_category(args.name)):
                print("Cancelled")
                return 1
            print(f"🗑️ Removed category: {args.name}")

    elif args.command == "theme":
        theme = manager.set_theme(args.theme) if args.theme else manager.toggle_theme()
        print(f"🎨 Theme: {theme.value}")

    elif args.command == "notifications":
        manager.set_notifications(args.state == "on")
        print(f"🔔 Notifications {args.state}")

    elif args.command == "export":
        if args.stdout:
            print(manager.export_data())
        else:
            path = manager.export_to_file(args.output)
            print(f"📤 Exported {len(manager.tasks)} tasks to {path}")

    elif args.command == "import":
        result = asyncio.run(manager.import_file(args.file))
        print(f"📥 {result.message}: {len(manager.tasks)} tasks")
        if result.dropped:
            print(f"   Skipped {result.dropped} malformed entries")

    elif args.command == "status":
        stats = manager.stats()
        if args.json:
            print(json.dumps({**stats.model_dump(), "progress": stats.progress_pct}))
        else:
            print(f"Total: {stats.total} | Completed: {stats.completed} | "
                  f"Remaining: {stats.remaining} | Progress: {stats.progress_pct}%")

    elif args.command == "remind":
        if args.watch:
            try:
                asyncio.run(manager.run_reminders(interval_seconds=args.interval))
            except KeyboardInterrupt:
                return 0
        else:
            due = manager.check_due_dates()
            if not due:
                print("No tasks due today")

    return 0


if __name__ == "__main__":
    sys.exit(main())
