"""Tests for the KANBAN.md serializer."""

from datetime import datetime, timezone

from kanbanmd.board.models import (
    BoardState,
    Card,
    CardPriority,
    CardStatus,
    create_columns_from_cards,
)
from kanbanmd.board.parser import parse_kanban
from kanbanmd.board.serializer import (
    DEFAULT_KANBAN,
    format_timestamp,
    serialize_kanban,
)


def _fields(card: Card) -> tuple:
    """Round-trippable fields of a card, independent of id."""
    return (
        card.status,
        card.title,
        frozenset(card.tags),
        card.priority,
        card.session,
        card.description,
        card.started_at,
        card.completed_at,
    )


def _sample_board() -> BoardState:
    return BoardState.from_cards(
        [
            Card(
                title="Review PR 42",
                status=CardStatus.INBOX,
                tags=["code-review", "api"],
                priority=CardPriority.HIGH,
            ),
            Card(title="Write docs", status=CardStatus.INBOX, tags=["docs"]),
            Card(
                title="Fix token refresh",
                status=CardStatus.TODAY,
                priority=CardPriority.MEDIUM,
                session="agent-1",
                description="Repro with expired token\nCheck retry path",
            ),
            Card(
                title="Drag and drop",
                status=CardStatus.IN_PROGRESS,
                session="Main Agent",
                started_at=datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
            ),
            Card(
                title="Init repo",
                status=CardStatus.DONE,
                started_at=datetime(2026, 10, 1, 8, 0, tzinfo=timezone.utc),
                completed_at=datetime(2026, 10, 2, 17, 45, tzinfo=timezone.utc),
            ),
        ]
    )


class TestSerializeFormat:
    """Test the emitted text."""

    def test_empty_board(self):
        """Test every column gets the placeholder."""
        text = serialize_kanban(BoardState())
        assert text == (
            "# Inbox\n\n<!-- No tasks -->\n\n"
            "# Today\n\n<!-- No tasks -->\n\n"
            "# In Progress\n\n<!-- No tasks -->\n\n"
            "# Done\n\n<!-- No tasks -->\n"
        )

    def test_card_line(self):
        """Test tags, priority and session tokens on the card line."""
        board = BoardState.from_cards(
            [
                Card(
                    title="Fix bug",
                    tags=["bug", "ui"],
                    priority=CardPriority.HIGH,
                    session="alice",
                )
            ]
        )
        lines = serialize_kanban(board).split("\n")
        assert lines[2] == "- [ ] Fix bug #bug #ui !high @alice"

    def test_low_priority_omitted(self):
        """Test !low is never written."""
        board = BoardState.from_cards([Card(title="Chore", priority=CardPriority.LOW)])
        assert "- [ ] Chore\n" in serialize_kanban(board)

    def test_done_column_checked(self):
        """Test cards in Done get [x]."""
        board = BoardState.from_cards([Card(title="Shipped", status=CardStatus.DONE)])
        assert "# Done\n\n- [x] Shipped\n" in serialize_kanban(board)

    def test_metadata_lines(self):
        """Test description, session and timestamp lines."""
        text = serialize_kanban(_sample_board())
        assert (
            "- [ ] Fix token refresh !medium @agent-1\n"
            "  - Repro with expired token\n"
            "  - Check retry path\n"
        ) in text
        assert (
            "- [ ] Drag and drop\n"
            "  - Session: Main Agent\n"
            "  - Started: 2026-10-18 09:30\n"
        ) in text
        assert (
            "- [x] Init repo\n"
            "  - Started: 2026-10-01 08:00\n"
            "  - Completed: 2026-10-02 17:45\n"
        ) in text

    def test_format_timestamp_utc(self):
        """Test timestamps are written in UTC without seconds."""
        from datetime import timedelta

        value = datetime(2026, 5, 1, 12, 30, 59, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(value) == "2026-05-01 10:30"

    def test_default_document_is_canonical(self):
        """Test the default document serializes to itself."""
        board = BoardState.from_cards(parse_kanban(DEFAULT_KANBAN))
        assert serialize_kanban(board) == DEFAULT_KANBAN


class TestRoundTrip:
    """Test parse/serialize consistency."""

    def test_round_trip_fields(self):
        """Test parse(serialize(board)) keeps every card's fields."""
        board = _sample_board()
        reparsed = create_columns_from_cards(parse_kanban(serialize_kanban(board)))

        before = sorted(map(_fields, board.cards()), key=repr)
        after = sorted(
            (_fields(c) for column in reparsed for c in column.cards), key=repr
        )
        assert before == after

    def test_round_trip_keeps_column_order(self):
        """Test card order within a column survives."""
        board = _sample_board()
        reparsed = BoardState.from_cards(parse_kanban(serialize_kanban(board)))
        assert [c.title for c in reparsed.column(CardStatus.INBOX).cards] == [
            "Review PR 42",
            "Write docs",
        ]

    def test_idempotent(self):
        """Test a second round trip changes nothing."""
        messy = (
            "Intro text\n"
            "## today\n"
            "* [ ] Call Bob !URGENT #Phone   @me\n"
            "- [x] Old thing\n"
            "    started: 10/19/2026 14:30\n"
            "# Notes\n"
            "- [ ] ignored\n"
            "# Completed\n"
            "- [ ] Half done #x-y\n"
        )
        once = serialize_kanban(BoardState.from_cards(parse_kanban(messy)))
        twice = serialize_kanban(BoardState.from_cards(parse_kanban(once)))
        assert once == twice
        assert "- [ ] Call Bob #phone !high @me" in once

    def test_done_card_moves_under_done_heading(self):
        """Test a checked card under Today is written under Done."""
        once = serialize_kanban(
            BoardState.from_cards(parse_kanban("# Today\n- [x] Ship it\n"))
        )
        assert "# Today\n\n<!-- No tasks -->" in once
        assert "# Done\n\n- [x] Ship it" in once

    def test_empty_description_lines_survive(self):
        """Test blank lines inside a description."""
        board = BoardState.from_cards([Card(title="Notes", description="a\n\nb")])
        reparsed = parse_kanban(serialize_kanban(board))
        assert reparsed[0].description == "a\n\nb"
