"""
QRKit History — Recent Results Store
=====================================

Keeps the last N generated or scanned payloads, newest first, and can
persist them as a JSON document between runs.
"""

import json
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Union

from qrk_types import QRKitError

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 10
HISTORY_FORMAT = 1


@dataclass(frozen=True)
class HistoryEntry:
    input_text: str
    image_ref: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        d = asdict(self)
        d['timestamp'] = self.timestamp.isoformat()
        return d

    @classmethod
    def from_dict(cls, d: dict) -> 'HistoryEntry':
        return cls(
            input_text=d['input_text'],
            image_ref=d.get('image_ref'),
            id=d['id'],
            timestamp=datetime.fromisoformat(d['timestamp']),
        )


class HistoryStore:
    """
    Bounded, newest-first history.

    Usage:
        history = HistoryStore(capacity=10)
        entry = history.add("https://example.com", image_ref="out.png")
        for item in history:          # newest first
            print(item.timestamp, item.input_text)
        history.save("history.json")

    Adding beyond capacity evicts the oldest entry.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"History capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._entries: deque = deque(maxlen=capacity)

    def add(self, input_text: str, image_ref: Optional[str] = None) -> HistoryEntry:
        entry = HistoryEntry(input_text=input_text, image_ref=image_ref)
        self._push(entry)
        return entry

    def _push(self, entry: HistoryEntry) -> None:
        if len(self._entries) == self.capacity:
            logger.debug("History full, evicting %s", self._entries[-1].id)
        self._entries.appendleft(entry)

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        return next((e for e in self._entries if e.id == entry_id), None)

    def clear(self) -> None:
        self._entries.clear()

    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))

    # ─── Persistence ──────────────────────────────────────────

    def to_json(self) -> str:
        return json.dumps({
            'format': HISTORY_FORMAT,
            'capacity': self.capacity,
            'entries': [e.to_dict() for e in self._entries],
        }, indent=2)

    @classmethod
    def from_json(cls, text: str, capacity: Optional[int] = None) -> 'HistoryStore':
        """Rebuild a store; entries past capacity (oldest) are dropped."""
        try:
            doc = json.loads(text)
            store = cls(capacity or doc.get('capacity', DEFAULT_CAPACITY))
            for item in reversed(doc['entries']):
                store._push(HistoryEntry.from_dict(item))
        except (ValueError, KeyError, TypeError) as e:
            raise QRKitError(f"Invalid history document: {e}") from e
        return store

    def save(self, filepath: Union[str, Path]) -> None:
        Path(filepath).write_text(self.to_json(), encoding='utf-8')

    @classmethod
    def load(cls, filepath: Union[str, Path], capacity: Optional[int] = None) -> 'HistoryStore':
        """Load a saved store; a missing file gives an empty one."""
        path = Path(filepath)
        if not path.exists():
            return cls(capacity or DEFAULT_CAPACITY)
        return cls.from_json(path.read_text(encoding='utf-8'), capacity)
