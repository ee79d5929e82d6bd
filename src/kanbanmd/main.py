"""kanbanmd CLI entry point."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import structlog

from kanbanmd import __version__
from kanbanmd.board import (
    COLUMN_CONFIG,
    BoardState,
    BoardStore,
    Card,
    CardStatus,
    SyncStatus,
)
from kanbanmd.board.parser import extract_priority, extract_session, extract_tags
from kanbanmd.config import Settings, load_settings
from kanbanmd.sync import create_backend

# ANSI color codes
RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"

COLUMN_ALIASES: dict[str, CardStatus] = {
    "inbox": CardStatus.INBOX,
    "today": CardStatus.TODAY,
    "progress": CardStatus.IN_PROGRESS,
    "inprogress": CardStatus.IN_PROGRESS,
    "in-progress": CardStatus.IN_PROGRESS,
    "done": CardStatus.DONE,
}


def configure_logging(level: str) -> None:
    """Configure structlog for the application."""
    # Configure stdlib logging
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, level.upper(), logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def parse_column(value: str) -> CardStatus:
    """argparse type for column names and their aliases."""
    status = COLUMN_ALIASES.get(value.strip().lower())
    if status is None:
        valid = ", ".join(COLUMN_ALIASES)
        raise argparse.ArgumentTypeError(f"Unknown column '{value}'. Valid: {valid}")
    return status


def format_card(card: Card) -> str:
    """One-line summary of a card."""
    mark = "[x]" if card.status == CardStatus.DONE else "[ ]"
    parts = [f"{DIM}{card.id:>10}{RESET}", mark, card.title]
    if card.tags:
        parts.append(" ".join(f"#{t}" for t in card.tags))
    if card.priority:
        parts.append(f"!{card.priority.value}")
    if card.session:
        parts.append(f"@{card.session}")
    return " ".join(parts)


def format_board(board: BoardState) -> str:
    """Render the board as plain text columns."""
    lines: list[str] = []
    for column in board.columns:
        config = COLUMN_CONFIG[column.id]
        count = len(column.cards)
        lines.append(f"{config.emoji} {BOLD}{config.title}{RESET} ({count})")
        if not column.cards:
            lines.append(f"  {DIM}(empty){RESET}")
        for card in column.cards:
            lines.append(f"  {format_card(card)}")
        lines.append("")
    return "\n".join(lines).rstrip() + "\n"


def card_from_text(text: str, status: CardStatus) -> Card:
    """Build a card from inline text such as ``Fix login #bug !high``."""
    title, tags = extract_tags(text)
    title, priority = extract_priority(title)
    title, session = extract_session(title)
    return Card(
        title=title,
        status=status,
        tags=tags,
        priority=priority,
        session=session,
    )


def _fail(message: str) -> int:
    print(f"{RED}Error:{RESET} {message}", file=sys.stderr)
    return 1


def _apply(store: BoardStore, args: argparse.Namespace) -> int:
    """Run a mutating command against a loaded store."""
    if args.command == "add":
        card = store.add_card(card_from_text(" ".join(args.title), args.column))
        print(f"Added {card.id}: {card.title}")
        return 0

    targets = {"start": CardStatus.IN_PROGRESS, "done": CardStatus.DONE}
    target = targets.get(args.command) or args.column

    card = store.get_card(args.card_id)
    if card is None:
        return _fail(f"Card '{args.card_id}' not found (see `kanbanmd list`)")

    store.move_card(card.id, card.status, target)
    print(f"Moved {card.id} to {COLUMN_CONFIG[target].title}")
    return 0


async def run_command(args: argparse.Namespace, settings: Settings) -> int:
    """Load the board, run one command and flush the result.

    Args:
        args: Parsed command line.
        settings: Application settings.

    Returns:
        Process exit code.
    """
    log = structlog.get_logger()
    store = BoardStore(
        create_backend(settings),
        debounce_seconds=settings.debounce_seconds,
        saved_reset_seconds=settings.saved_reset_seconds,
    )

    await store.load()
    if store.sync_status == SyncStatus.ERROR:
        return _fail(f"Could not read board: {store.sync_error}")

    if args.command == "list":
        print(format_board(store.board), end="")
        return 0

    try:
        code = _apply(store, args)
    finally:
        await store.close()

    if store.sync_status == SyncStatus.ERROR:
        return _fail(f"Could not save board: {store.sync_error}")

    log.debug("command_finished", command=args.command, code=code)
    return code


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="kanbanmd",
        description="Task board kept in a plain KANBAN.md file",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--file",
        type=Path,
        default=None,
        help="Board file (default: $KANBAN_FILE_PATH or ./KANBAN.md)",
    )
    parser.add_argument(
        "--server",
        default=None,
        help="File server URL instead of direct file access",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("list", help="List all tasks")

    add_parser = subparsers.add_parser("add", help="Add a task")
    add_parser.add_argument(
        "title", nargs="+", help="Task text (#tags !priority @session)"
    )
    add_parser.add_argument(
        "--column",
        type=parse_column,
        default=CardStatus.INBOX,
        help="Column to add to (default: inbox)",
    )

    start_parser = subparsers.add_parser("start", help="Move a task to In Progress")
    start_parser.add_argument("card_id")

    done_parser = subparsers.add_parser("done", help="Mark a task as done")
    done_parser.add_argument("card_id")

    move_parser = subparsers.add_parser("move", help="Move a task to a column")
    move_parser.add_argument("card_id")
    move_parser.add_argument("column", type=parse_column)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    settings = load_settings(
        Path.cwd(), file_path=args.file, server_url=args.server
    )
    configure_logging(settings.log_level)

    return asyncio.run(run_command(args, settings))


if __name__ == "__main__":
    sys.exit(main())
