"""Board state store with debounced file sync."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog

from kanbanmd.board.models import (
    BoardState,
    Card,
    CardStatus,
    Column,
    SyncStatus,
    new_card_id,
)
from kanbanmd.board.parser import parse_kanban
from kanbanmd.board.serializer import DEFAULT_KANBAN, serialize_kanban
from kanbanmd.sync.backends import SyncBackend
from kanbanmd.sync.errors import DocumentNotFound, SyncBackendError

log = structlog.get_logger()

Listener = Callable[["BoardStore"], None]


def _utc_now() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class ScheduledTask:
    """A delayed callback with at most one pending run.

    Scheduling again cancels the pending run instead of queueing another.
    Must be used from inside the running event loop.
    """

    def __init__(self, delay: float, callback: Callable[[], None]):
        self.delay = delay
        self.callback = callback
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        """Whether a run is scheduled and has not fired yet."""
        return self._handle is not None

    def schedule(self) -> None:
        """(Re)start the timer."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> bool:
        """Drop the pending run.

        Returns:
            True if a run was pending.
        """
        if self._handle is None:
            return False
        self._handle.cancel()
        self._handle = None
        return True

    def _fire(self) -> None:
        self._handle = None
        self.callback()


class BoardStore:
    """Owns the board, applies mutations and keeps KANBAN.md in sync.

    Mutations are synchronous and must run on the event loop; each one
    (re)starts the debounce timer so a burst of edits becomes one write.
    """

    def __init__(
        self,
        backend: SyncBackend,
        *,
        debounce_seconds: float = 0.5,
        saved_reset_seconds: float = 2.0,
        clock: Callable[[], datetime] | None = None,
    ):
        """Initialize the store.

        Args:
            backend: Where the document is read from and written to.
            debounce_seconds: Quiet interval before a persist runs.
            saved_reset_seconds: How long the ``saved`` status is shown.
            clock: Source of "now" for card timestamps.
        """
        self.backend = backend
        self.board = BoardState()
        self.sync_status = SyncStatus.IDLE
        self.sync_error: str | None = None

        self._clock = clock or _utc_now
        # Bumped on every mutation and load; stale load results are dropped
        self._generation = 0
        self._active_load: int | None = None
        self._listeners: list[tuple[object, Listener]] = []
        self._persist_timer = ScheduledTask(debounce_seconds, self._start_persist)
        self._saved_timer = ScheduledTask(saved_reset_seconds, self._reset_saved)
        self._save_task: asyncio.Task[None] | None = None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener.

        Listeners are called with the store, in subscription order, after
        every mutation and sync status change.

        Args:
            listener: Callable taking the store.

        Returns:
            Function that removes this subscription.
        """
        token = object()
        self._listeners.append((token, listener))

        def unsubscribe() -> None:
            self._listeners = [(t, fn) for t, fn in self._listeners if t is not token]

        return unsubscribe

    def _notify(self) -> None:
        for _, listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                log.exception("board_listener_failed", listener=repr(listener))

    def _set_status(self, status: SyncStatus, error: str | None = None) -> None:
        self.sync_status = status
        self.sync_error = error
        log.debug("sync_status_changed", status=status.value, error=error)
        self._notify()

    def get_card(self, card_id: str) -> Card | None:
        """Get a card by id."""
        found = self.board.find_card(card_id)
        if found is None:
            return None
        column, index = found
        return column.cards[index]

    def cards(self) -> list[Card]:
        """All cards in column order."""
        return self.board.cards()

    def _commit(self, event: str, **context: Any) -> None:
        """Record a state change: notify and schedule a persist."""
        self._generation += 1
        log.debug(event, **context)
        self._notify()
        self._persist_timer.schedule()

    def _apply_status(self, card: Card, status: CardStatus, now: datetime) -> None:
        """Set status plus the timing side effects of entering it."""
        card.status = status
        card.updated_at = now

        if status == CardStatus.IN_PROGRESS and card.started_at is None:
            card.started_at = now

        if status == CardStatus.DONE and card.completed_at is None:
            card.completed_at = now
            if card.started_at is not None:
                elapsed = max(now - card.started_at, timedelta(0))
                card.time_spent = (card.time_spent or timedelta(0)) + elapsed

    def _column(self, status: CardStatus) -> Column:
        column = self.board.column(status)
        if column is None:
            raise ValueError(f"Board has no column for status '{status.value}'")
        return column

    @staticmethod
    def _insert(column: Column, card: Card, index: int | None) -> None:
        if index is None:
            column.cards.append(card)
        else:
            column.cards.insert(max(0, min(index, len(column.cards))), card)

    def move_card(
        self,
        card_id: str,
        from_status: CardStatus | str,
        to_status: CardStatus | str,
        to_index: int | None = None,
    ) -> bool:
        """Move a card to another column (or position).

        Args:
            card_id: Card to move.
            from_status: Column currently holding the card.
            to_status: Destination column.
            to_index: Position in the destination; appended when omitted.

        Returns:
            True if the card moved, False if card or columns were not found.
        """
        from_column = self.board.column(from_status)
        to_column = self.board.column(to_status)
        if from_column is None or to_column is None:
            return False

        index = next(
            (i for i, card in enumerate(from_column.cards) if card.id == card_id),
            None,
        )
        if index is None:
            return False

        card = from_column.cards.pop(index)
        self._apply_status(card, to_column.id, self._clock())
        self._insert(to_column, card, to_index)

        self._commit(
            "card_moved",
            card_id=card_id,
            from_status=from_column.id.value,
            to_status=to_column.id.value,
        )
        return True

    def reorder_card(
        self, column_id: CardStatus | str, from_index: int, to_index: int
    ) -> bool:
        """Move a card to a new position within one column."""
        column = self.board.column(column_id)
        if column is None or not 0 <= from_index < len(column.cards):
            return False

        card = column.cards.pop(from_index)
        card.updated_at = self._clock()
        self._insert(column, card, to_index)

        self._commit("card_reordered", card_id=card.id, column=column.id.value)
        return True

    def add_card(self, card: Card) -> Card:
        """Append a card to the column matching its status.

        Args:
            card: Card to add. Gets a fresh id if its id is already taken.

        Returns:
            The stored card.
        """
        if self.board.find_card(card.id) is not None:
            card = card.model_copy(update={"id": new_card_id()})

        now = self._clock()
        if card.created_at is None:
            card.created_at = now
        if card.updated_at is None:
            card.updated_at = now

        self._column(card.status).cards.append(card)

        self._commit("card_added", card_id=card.id, status=card.status.value)
        return card

    def update_card(self, card_id: str, **updates: Any) -> Card | None:
        """Merge field updates into a card.

        Changing ``status`` relocates the card to the end of the new column,
        with the same timing side effects as move_card. ``id`` is never
        changed.

        Args:
            card_id: Card to update.
            **updates: Card fields to overwrite.

        Returns:
            Updated card, or None if not found.

        Raises:
            ValueError: If the merged fields do not form a valid card.
        """
        found = self.board.find_card(card_id)
        if found is None:
            return None
        column, index = found

        updates.pop("id", None)
        new_status = updates.pop("status", None)
        merged = Card.model_validate({**column.cards[index].model_dump(), **updates})
        now = self._clock()
        merged.updated_at = now

        if new_status is not None and CardStatus(new_status) != column.id:
            column.cards.pop(index)
            target = self._column(CardStatus(new_status))
            self._apply_status(merged, target.id, now)
            target.cards.append(merged)
        else:
            column.cards[index] = merged

        self._commit("card_updated", card_id=card_id, fields=sorted(updates))
        return merged

    def delete_card(self, card_id: str) -> bool:
        """Remove a card from whichever column holds it."""
        found = self.board.find_card(card_id)
        if found is None:
            return False
        column, index = found
        column.cards.pop(index)

        self._commit("card_deleted", card_id=card_id)
        return True

    async def load(self) -> None:
        """Replace the board with the document from the backend.

        A missing document loads the default board. Read failures leave the
        current board untouched and put the store in the ``error`` state.
        """
        self._generation += 1
        generation = self._generation
        self._active_load = generation
        self._set_status(SyncStatus.LOADING)

        error: str | None = None
        content = ""
        try:
            content = await self.backend.read()
        except DocumentNotFound:
            log.info("board_file_missing", message="Starting from default board")
            content = DEFAULT_KANBAN
        except SyncBackendError as e:
            error = e.message

        if generation != self._generation:
            # Board changed (or a newer load started) while reading
            log.info("stale_load_discarded", generation=generation)
            if (
                self.sync_status == SyncStatus.LOADING
                and self._active_load == generation
            ):
                self._set_status(SyncStatus.IDLE)
            return

        if error is not None:
            log.error("board_load_failed", error=error)
            self._set_status(SyncStatus.ERROR, error)
            return

        self.board = BoardState.from_cards(parse_kanban(content))
        log.info("board_loaded", cards=len(self.board.cards()))
        self._set_status(SyncStatus.IDLE)

    def _start_persist(self) -> None:
        # Chain onto the previous write so two are never in flight together
        previous = self._save_task
        self._save_task = asyncio.create_task(self._persist(previous))

    async def _persist(self, previous: asyncio.Task[None] | None) -> None:
        if previous is not None:
            await asyncio.wait([previous])

        self._saved_timer.cancel()
        self._set_status(SyncStatus.SAVING)
        content = serialize_kanban(self.board)

        try:
            await self.backend.write(content)
        except SyncBackendError as e:
            log.error("board_save_failed", error=e.message)
            self._set_status(SyncStatus.ERROR, e.message)
            return
        except Exception as e:
            log.exception("board_save_crashed")
            self._set_status(SyncStatus.ERROR, f"Save failed: {e}")
            return

        log.info("board_saved", size=len(content))
        self._set_status(SyncStatus.SAVED)
        self._saved_timer.schedule()

    def _reset_saved(self) -> None:
        if self.sync_status == SyncStatus.SAVED:
            self._set_status(SyncStatus.IDLE)

    @property
    def has_pending_save(self) -> bool:
        """Whether a persist is scheduled or running."""
        running = self._save_task is not None and not self._save_task.done()
        return self._persist_timer.pending or running

    async def flush(self) -> None:
        """Run any pending persist now and wait for writes to finish."""
        if self._persist_timer.cancel():
            self._start_persist()
        if self._save_task is not None:
            await asyncio.wait([self._save_task])

    async def close(self) -> None:
        """Flush outstanding changes and stop all timers."""
        await self.flush()
        self._saved_timer.cancel()
        if self.sync_status == SyncStatus.SAVED:
            self._set_status(SyncStatus.IDLE)
        log.debug("board_store_closed")
