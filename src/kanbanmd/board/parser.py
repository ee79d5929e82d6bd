"""KANBAN.md parser for card extraction."""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone

from kanbanmd.board.models import Card, CardPriority, CardStatus, Subtasks

HEADING_RE = re.compile(r"^#+\s+(.+?)\s*$")
CHECKBOX_RE = re.compile(r"^[-*]\s*\[([ xX])\](?:\s+(.*))?$")
# Optional "- " / "* " bullet in front of an indented metadata line
META_BULLET_RE = re.compile(r"^[-*](?:\s+|$)")
META_PREFIX_RE = re.compile(
    r"^(started|created|completed|session)\s*:\s*(.*)$", re.IGNORECASE
)
SUBTASK_RE = re.compile(r"^\[([ xX])\]\s")

# Inline tokens only count at the start of the body or after whitespace.
TAG_RE = re.compile(r"(?<!\S)#(\w+(?:-\w+)*)(?![\w-])")
PRIORITY_RE = re.compile(
    r"(?<!\S)!(high|urgent|medium|mid|low)(?![\w-])", re.IGNORECASE
)
SESSION_RE = re.compile(r"(?<!\S)@(\w+(?:[-.]\w+)*)(?![\w-])")

HEADING_TO_STATUS: dict[str, CardStatus] = {
    "inbox": CardStatus.INBOX,
    "today": CardStatus.TODAY,
    "in progress": CardStatus.IN_PROGRESS,
    "in-progress": CardStatus.IN_PROGRESS,
    "done": CardStatus.DONE,
    "completed": CardStatus.DONE,
}

PRIORITY_ALIASES: dict[str, CardPriority] = {
    "high": CardPriority.HIGH,
    "urgent": CardPriority.HIGH,
    "medium": CardPriority.MEDIUM,
    "mid": CardPriority.MEDIUM,
    "low": CardPriority.LOW,
}

# Accepted after fromisoformat() gives up; naive results are read as UTC.
TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%m/%d/%Y, %I:%M:%S %p",
    "%m/%d/%Y, %I:%M %p",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%d.%m.%Y, %H:%M:%S",
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y",
    "%b %d, %Y %I:%M %p",
    "%b %d, %Y",
    "%d %b %Y %H:%M",
    "%d %b %Y",
)


def parse_heading_status(text: str) -> CardStatus | None:
    """Map heading text to a column status.

    Args:
        text: Heading text without the leading hashes.

    Returns:
        CardStatus, or None for headings that are not board columns.
    """
    return HEADING_TO_STATUS.get(text.strip().lower())


def parse_timestamp(value: str) -> datetime | None:
    """Best-effort timestamp parsing.

    Args:
        value: Free-form date/time text from a metadata line.

    Returns:
        Timezone-aware datetime, or None if the text is not a timestamp.
    """
    value = value.strip()
    if not value:
        return None

    parsed: datetime | None = None
    if value.isascii() and value.isdigit():
        # Unix epoch, seconds or milliseconds
        number = int(value)
        if number > 10**11:
            number //= 1000
        try:
            return datetime.fromtimestamp(number, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        for fmt in TIMESTAMP_FORMATS:
            try:
                parsed = datetime.strptime(value, fmt)
                break
            except ValueError:
                continue

    if parsed is None:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except (OverflowError, ValueError):
        # Offset pushes the instant outside the supported year range
        return None


def _squash(text: str, removed: int) -> str:
    """Collapse whitespace runs left behind by token removal."""
    if not removed:
        return text.strip()
    return " ".join(text.split())


def extract_tags(text: str) -> tuple[str, list[str]]:
    """Pull #tags out of card text.

    Args:
        text: Card body text.

    Returns:
        Tuple of (text without tags, lowercase tags in encounter order).
    """
    tags: list[str] = []

    def _take(match: re.Match[str]) -> str:
        tag = match.group(1).lower()
        if tag not in tags:
            tags.append(tag)
        return ""

    return _squash(*TAG_RE.subn(_take, text)), tags


def extract_priority(text: str) -> tuple[str, CardPriority | None]:
    """Pull !priority markers out of card text (last one wins)."""
    priority: CardPriority | None = None

    def _take(match: re.Match[str]) -> str:
        nonlocal priority
        priority = PRIORITY_ALIASES[match.group(1).lower()]
        return ""

    return _squash(*PRIORITY_RE.subn(_take, text)), priority


def extract_session(text: str) -> tuple[str, str | None]:
    """Pull @session markers out of card text (last one wins)."""
    session: str | None = None

    def _take(match: re.Match[str]) -> str:
        nonlocal session
        session = match.group(1)
        return ""

    return _squash(*SESSION_RE.subn(_take, text)), session


@dataclass
class _PendingCard:
    """Card being accumulated while its metadata lines are read."""

    title: str
    status: CardStatus
    done: bool
    tags: list[str]
    priority: CardPriority | None
    session: str | None
    description: list[str] = field(default_factory=list)
    created_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def add_meta_line(self, line: str) -> None:
        """Apply one indented line under the card."""
        text = META_BULLET_RE.sub("", line.strip(), count=1)
        match = META_PREFIX_RE.match(text)
        if not match:
            self.description.append(text)
            return

        key, value = match.group(1).lower(), match.group(2).strip()
        if key == "session":
            if value:
                self.session = value
        elif key == "started":
            self.started_at = parse_timestamp(value)
        elif key == "created":
            self.created_at = parse_timestamp(value)
        else:
            self.completed_at = parse_timestamp(value)

    def to_card(self, card_id: str) -> Card:
        subtasks = None
        checks = [SUBTASK_RE.match(line) for line in self.description]
        checks = [m for m in checks if m]
        if checks:
            subtasks = Subtasks(
                completed=sum(1 for m in checks if m.group(1) in "xX"),
                total=len(checks),
            )

        return Card(
            id=card_id,
            title=self.title,
            # A checked box lands in Done whatever heading it sits under
            status=CardStatus.DONE if self.done else self.status,
            tags=self.tags,
            priority=self.priority,
            session=self.session,
            description="\n".join(self.description) if self.description else None,
            created_at=self.created_at,
            started_at=self.started_at,
            completed_at=self.completed_at,
            subtasks=subtasks,
        )


def parse_task_line(line: str, status: CardStatus) -> _PendingCard | None:
    """Parse a checkbox line into a pending card.

    Args:
        line: Raw, unindented line.
        status: Status of the enclosing heading.

    Returns:
        Pending card, or None if the line is not a checkbox item.
    """
    match = CHECKBOX_RE.match(line)
    if not match:
        return None

    text, tags = extract_tags(match.group(2) or "")
    text, priority = extract_priority(text)
    text, session = extract_session(text)

    return _PendingCard(
        title=text,
        status=status,
        done=match.group(1) in "xX",
        tags=tags,
        priority=priority,
        session=session,
    )


def parse_kanban(content: str) -> list[Card]:
    """Parse KANBAN.md content into cards.

    Only checkbox items under Inbox / Today / In Progress / Done (or
    Completed) headings are read; everything else is ignored.

    Args:
        content: Full document text.

    Returns:
        Cards in document order, with ids card-1, card-2, ...
    """
    cards: list[Card] = []
    current_status: CardStatus | None = None
    pending: _PendingCard | None = None

    def _finish() -> None:
        nonlocal pending
        if pending is not None:
            cards.append(pending.to_card(f"card-{len(cards) + 1}"))
            pending = None

    for raw in content.split("\n"):
        line = raw.rstrip("\r")
        if not line.strip():
            continue

        if line[0].isspace():
            if pending is not None:
                pending.add_meta_line(line)
            elif current_status is not None:
                pending = parse_task_line(line.strip(), current_status)
            continue

        heading = HEADING_RE.match(line)
        if heading:
            _finish()
            current_status = parse_heading_status(heading.group(1))
            continue

        _finish()
        if current_status is not None:
            pending = parse_task_line(line, current_status)

    _finish()
    return cards
