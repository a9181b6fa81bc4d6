# asocial/services/activity.py
import os
from collections import deque
from typing import Deque, List, Optional, Tuple
from datetime import datetime

from asocial.utils import utc_now

ACTIVITY_FEED_SIZE = int(os.getenv("ACTIVITY_FEED_SIZE", "50"))


class ActivityFeed:
    """Most recent delivery summaries for display. In memory only, lost on restart."""

    def __init__(self, maxlen: int = ACTIVITY_FEED_SIZE):
        self._entries: Deque[Tuple[datetime, str]] = deque(maxlen=maxlen)

    def record(self, line: str) -> None:
        self._entries.append((utc_now(), line))

    def recent(self, limit: Optional[int] = None) -> List[Tuple[datetime, str]]:
        entries = list(reversed(self._entries))
        return entries[:limit] if limit is not None else entries

    def __len__(self) -> int:
        return len(self._entries)
