"""Pydantic models for board entities."""

import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


def new_card_id() -> str:
    """Generate a fresh card identifier."""
    return f"card-{uuid.uuid4().hex[:8]}"


class CardStatus(str, Enum):
    """Card status enumeration (one per column)."""

    INBOX = "inbox"
    TODAY = "today"
    IN_PROGRESS = "in-progress"
    DONE = "done"


class CardPriority(str, Enum):
    """Card priority enumeration."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SyncStatus(str, Enum):
    """State of the store's synchronization with the backing file."""

    IDLE = "idle"
    LOADING = "loading"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


# Fixed column order, left to right.
STATUS_ORDER: tuple[CardStatus, ...] = (
    CardStatus.INBOX,
    CardStatus.TODAY,
    CardStatus.IN_PROGRESS,
    CardStatus.DONE,
)


class Subtasks(BaseModel):
    """Checklist progress for a card."""

    completed: int = Field(default=0, ge=0)
    total: int = Field(default=0, ge=0)


class Card(BaseModel):
    """A single task on the board."""

    id: str = Field(default_factory=new_card_id)
    title: str
    status: CardStatus = CardStatus.INBOX
    tags: list[str] = Field(default_factory=list)
    priority: CardPriority | None = None
    session: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    time_spent: timedelta | None = None
    subtasks: Subtasks | None = None


class ColumnConfig(BaseModel):
    """Static presentation settings for a column."""

    title: str
    emoji: str
    color: str


COLUMN_CONFIG: dict[CardStatus, ColumnConfig] = {
    CardStatus.INBOX: ColumnConfig(title="Inbox", emoji="📥", color="#a855f7"),
    CardStatus.TODAY: ColumnConfig(title="Today", emoji="🎯", color="#ff4d4d"),
    CardStatus.IN_PROGRESS: ColumnConfig(
        title="In Progress", emoji="⚡", color="#00e5cc"
    ),
    CardStatus.DONE: ColumnConfig(title="Done", emoji="✅", color="#22c55e"),
}


class Column(BaseModel):
    """An ordered group of cards sharing a status."""

    id: CardStatus
    title: str
    emoji: str
    color: str
    cards: list[Card] = Field(default_factory=list)


def create_columns_from_cards(cards: list[Card]) -> list[Column]:
    """Group cards into the fixed columns, keeping their relative order.

    Args:
        cards: Cards in display order.

    Returns:
        One Column per status, in STATUS_ORDER.
    """
    return [
        Column(
            id=status,
            **COLUMN_CONFIG[status].model_dump(),
            cards=[card for card in cards if card.status == status],
        )
        for status in STATUS_ORDER
    ]


class BoardState(BaseModel):
    """The full board: every column in fixed order."""

    columns: list[Column] = Field(
        default_factory=lambda: create_columns_from_cards([])
    )

    @classmethod
    def from_cards(cls, cards: list[Card]) -> "BoardState":
        """Build a board by grouping cards on their status."""
        return cls(columns=create_columns_from_cards(cards))

    def column(self, status: CardStatus | str) -> Column | None:
        """Get the column for a status, or None if unknown."""
        for column in self.columns:
            if column.id == status:
                return column
        return None

    def find_card(self, card_id: str) -> tuple[Column, int] | None:
        """Locate a card.

        Returns:
            (column, index) holding the card, or None.
        """
        for column in self.columns:
            for index, card in enumerate(column.cards):
                if card.id == card_id:
                    return column, index
        return None

    def cards(self) -> list[Card]:
        """All cards in column order."""
        return [card for column in self.columns for card in column.cards]
