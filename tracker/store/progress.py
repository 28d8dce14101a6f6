"""
ProgressLog: capped, append-only activity log and its line format.

File format, one entry per line:

    [2026-01-15T10:00:00+01:00] [feature_completed] Completed feature-003: Login form

Only timestamp, action and description survive a save/load round trip.
featureId is recovered from a `feature-NNN` token in the description when
there is one; details are not persisted.

Older files are read too:
    [2026-01-15 09:00:00] [feature_started] ...   (no offset: taken as local time)
    2026-01-15 09:00:00 - free text              (becomes an info entry)

Any other line becomes an info entry stamped with the load time. Its real
time is lost; that is a known limitation of the format, not something the
parser tries to guess around.
"""

import logging
import re
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from tracker.lib.constants import DEFAULT_PROGRESS_CAP, FEATURE_ID_TOKEN
from tracker.store.fileio import atomic_write_text, read_text
from tracker.store.models import ProgressAction, ProgressEntry, parse_action

logger = logging.getLogger(__name__)

BRACKETED_RE = re.compile(r'^\[([^\]]+)\] \[([^\]]+)\] ?(.*)$')
SIMPLE_RE = re.compile(r'^(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}) - (.+)$')


def local_now() -> datetime:
    return datetime.now().astimezone()


def _parse_local_timestamp(token: str) -> datetime | None:
    """ISO-8601 (T or space separator). Naive values are local time."""
    token = token.strip()
    if token.endswith("Z"):
        token = token[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(token)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def _feature_id_in(text: str) -> str | None:
    match = FEATURE_ID_TOKEN.search(text)
    return match.group(0) if match else None


def parse_line(line: str, now: datetime | None = None) -> ProgressEntry:
    """Parse one progress line. Never raises; see module docstring."""
    now = now or local_now()

    match = BRACKETED_RE.match(line)
    if match:
        stamp, raw_action, description = match.groups()
        timestamp = _parse_local_timestamp(stamp)
        if timestamp is not None:
            action = parse_action(raw_action.strip())
            details: dict[str, Any] = {}
            if action is None:
                action = ProgressAction.INFO
                details["raw_action"] = raw_action
            return ProgressEntry(
                timestamp=timestamp,
                action=action,
                description=description,
                feature_id=_feature_id_in(description),
                details=details,
            )

    match = SIMPLE_RE.match(line)
    if match:
        stamp, description = match.groups()
        timestamp = _parse_local_timestamp(stamp)
        if timestamp is not None:
            return ProgressEntry(
                timestamp=timestamp,
                action=ProgressAction.INFO,
                description=description,
                feature_id=_feature_id_in(description),
            )

    return ProgressEntry(
        timestamp=now,
        action=ProgressAction.INFO,
        description=line,
        feature_id=_feature_id_in(line),
        details={"unparsed": True},
    )


def format_line(entry: ProgressEntry) -> str:
    timestamp = entry.timestamp.astimezone().isoformat(timespec="seconds")
    description = " ".join(entry.description.splitlines())
    return f"[{timestamp}] [{entry.action.value}] {description}"


class ProgressLog:
    """Ring buffer of ProgressEntry, oldest evicted first."""

    def __init__(self, cap: int = DEFAULT_PROGRESS_CAP, entries: Iterable[ProgressEntry] = ()):
        if cap < 1:
            raise ValueError(f"Progress cap must be positive, got {cap}")
        self.cap = cap
        self._entries: deque[ProgressEntry] = deque(entries, maxlen=cap)

    def __len__(self) -> int:
        return len(self._entries)

    def append(
        self,
        action: ProgressAction,
        description: str,
        feature_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> ProgressEntry:
        """Stamp with the current local time and append, evicting the oldest past the cap."""
        entry = ProgressEntry(
            timestamp=local_now(),
            action=action,
            description=description,
            feature_id=feature_id,
            details=dict(details or {}),
        )
        self._entries.append(entry)
        logger.debug(f"Progress entry: {action.value} - {description}")
        return entry

    def entries(self, limit: int | None = None) -> list[ProgressEntry]:
        """The newest `limit` entries (all when None), oldest first."""
        items = list(self._entries)
        if limit is not None:
            if limit <= 0:
                return []
            items = items[-limit:]
        return items

    def to_text(self) -> str:
        if not self._entries:
            return ""
        return "\n".join(format_line(e) for e in self._entries) + "\n"

    @classmethod
    def from_text(cls, text: str, cap: int = DEFAULT_PROGRESS_CAP, now: datetime | None = None) -> "ProgressLog":
        now = now or local_now()
        entries = [parse_line(line, now) for line in text.splitlines() if line.strip()]
        unparsed = sum(1 for e in entries if e.details.get("unparsed"))
        if unparsed:
            logger.warning(f"{unparsed} progress line(s) had no recognizable timestamp; stamped with load time")
        if len(entries) > cap:
            logger.debug(f"Progress log has {len(entries)} lines, keeping newest {cap}")
        return cls(cap=cap, entries=entries)

    @classmethod
    def load(cls, path: Path, cap: int = DEFAULT_PROGRESS_CAP) -> "ProgressLog | None":
        """Read the progress file; None if it does not exist.

        Raises:
            StorageError: the file exists but cannot be read
        """
        text = read_text(path)
        if text is None:
            return None
        log = cls.from_text(text, cap=cap)
        logger.debug(f"Loaded {len(log)} progress entries from {path}")
        return log

    def save(self, path: Path) -> None:
        """
        Raises:
            StorageError: the write failed
        """
        atomic_write_text(path, self.to_text())
        logger.debug(f"Saved {len(self)} progress entries to {path}")
