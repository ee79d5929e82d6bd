"""Shared fixtures."""

import pytest

from kanbanmd.board import BoardStore
from tests.fakes import FakeClock, FailingBackend

SAMPLE_KANBAN = """# Inbox

- [ ] Review PR #code-review !high
- [ ] Update docs #docs

# Today

- [ ] Fix auth refresh #bug

# In Progress

- [ ] Drag and drop #feature
  - Started: 2026-10-19 08:00

# Done

- [x] Init repo #setup
"""

# Short enough for fast tests, long enough to batch synchronous calls
DEBOUNCE = 0.05
SAVED_RESET = 0.1


@pytest.fixture
def clock() -> FakeClock:
    """Controllable clock."""
    return FakeClock()


@pytest.fixture
def backend() -> FailingBackend:
    """In-memory backend holding the sample board."""
    return FailingBackend(SAMPLE_KANBAN)


@pytest.fixture
async def store(backend: FailingBackend, clock: FakeClock) -> BoardStore:
    """Store loaded from the sample board."""
    board_store = BoardStore(
        backend,
        debounce_seconds=DEBOUNCE,
        saved_reset_seconds=SAVED_RESET,
        clock=clock,
    )
    await board_store.load()
    yield board_store
    await board_store.close()
