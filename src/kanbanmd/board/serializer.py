"""Render board state back into KANBAN.md text."""

import re
from datetime import datetime, timezone

from kanbanmd.board.models import (
    COLUMN_CONFIG,
    STATUS_ORDER,
    BoardState,
    Card,
    CardPriority,
    CardStatus,
)

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"
EMPTY_PLACEHOLDER = "<!-- No tasks -->"
META_INDENT = "  "

# Sessions that survive as an inline @token; anything else goes on a meta line
INLINE_SESSION_RE = re.compile(r"^\w+(?:[-.]\w+)*$")

DEFAULT_KANBAN = """# Inbox

- [ ] First task #example

# Today

<!-- No tasks -->

# In Progress

<!-- No tasks -->

# Done

<!-- No tasks -->
"""


def format_timestamp(value: datetime) -> str:
    """Format a timestamp for a metadata line (UTC, minute precision)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


def card_to_lines(card: Card, column: CardStatus) -> list[str]:
    """Render one card and its metadata lines.

    Args:
        card: Card to render.
        column: Column the card is listed under (decides the checkbox).

    Returns:
        The checkbox line followed by indented metadata lines.
    """
    checkbox = "[x]" if column == CardStatus.DONE else "[ ]"
    parts = [f"- {checkbox} {card.title}".rstrip()]

    if card.tags:
        parts.append(" ".join(f"#{tag}" for tag in card.tags))

    if card.priority and card.priority != CardPriority.LOW:
        parts.append(f"!{card.priority.value}")

    inline_session = bool(card.session and INLINE_SESSION_RE.match(card.session))
    if inline_session:
        parts.append(f"@{card.session}")

    lines = [" ".join(parts)]

    if card.description is not None:
        for text in card.description.split("\n"):
            lines.append(f"{META_INDENT}- {text}".rstrip())

    if card.session and not inline_session:
        lines.append(f"{META_INDENT}- Session: {card.session}")

    if card.started_at:
        lines.append(f"{META_INDENT}- Started: {format_timestamp(card.started_at)}")

    if card.completed_at:
        lines.append(
            f"{META_INDENT}- Completed: {format_timestamp(card.completed_at)}"
        )

    return lines


def serialize_kanban(board: BoardState) -> str:
    """Convert board state to KANBAN.md format.

    Args:
        board: Board to render.

    Returns:
        Document text, sections in fixed column order.
    """
    sections: list[str] = []

    for status in STATUS_ORDER:
        column = board.column(status)
        cards = column.cards if column else []

        lines = [f"# {COLUMN_CONFIG[status].title}", ""]
        for card in cards:
            lines.extend(card_to_lines(card, status))

        if not cards:
            lines.append(EMPTY_PLACEHOLDER)

        lines.append("")
        sections.append("\n".join(lines))

    return "\n".join(sections)
