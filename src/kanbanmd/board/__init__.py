"""Board model, KANBAN.md dialect and the state store."""

from kanbanmd.board.models import (
    COLUMN_CONFIG,
    STATUS_ORDER,
    BoardState,
    Card,
    CardPriority,
    CardStatus,
    Column,
    Subtasks,
    SyncStatus,
    create_columns_from_cards,
)
from kanbanmd.board.parser import parse_kanban
from kanbanmd.board.serializer import DEFAULT_KANBAN, serialize_kanban
from kanbanmd.board.store import BoardStore, ScheduledTask

__all__ = [
    "BoardState",
    "BoardStore",
    "COLUMN_CONFIG",
    "Card",
    "CardPriority",
    "CardStatus",
    "Column",
    "DEFAULT_KANBAN",
    "STATUS_ORDER",
    "ScheduledTask",
    "Subtasks",
    "SyncStatus",
    "create_columns_from_cards",
    "parse_kanban",
    "serialize_kanban",
]
