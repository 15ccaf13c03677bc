"""Durable forwarding state: the start watermark plus the processed-id set."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

PROCESSED_HIGH_WATER = 800
PROCESSED_LOW_WATER = 500


@dataclass
class ForwardState:
    """Watermark and dedup set owned by the poll loop.

    start_after is epoch milliseconds. It is set once, on first run, and is
    never moved afterwards. processed maps message id -> epoch ms at which
    the message was marked handled.
    """

    start_after: Optional[int] = None
    processed: dict[str, int] = field(default_factory=dict)

    def init_watermark(self, now_ms: int) -> bool:
        """Set the watermark if it is unset. Returns True when it was set."""
        if self.start_after is not None:
            return False
        self.start_after = now_ms
        return True

    def window_minutes(self, now_ms: int) -> int:
        """Lookback window for the mailbox query, at least one minute."""
        if self.start_after is None:
            return 1
        return max(1, (now_ms - self.start_after) // 60_000)

    def is_processed(self, message_id: str) -> bool:
        return message_id in self.processed

    def mark_processed(self, message_id: str, now_ms: int) -> None:
        self.processed[message_id] = now_ms

    def compact(
        self,
        high_water: int = PROCESSED_HIGH_WATER,
        low_water: int = PROCESSED_LOW_WATER,
    ) -> int:
        """Evict the oldest entries once the set grows past high_water.

        Trims down to low_water entries and returns how many were removed.
        Evicted ids may be delivered again if they resurface in the query
        window.
        """
        if len(self.processed) <= high_water:
            return 0

        by_age = sorted(self.processed, key=self.processed.__getitem__)
        evict = by_age[: len(by_age) - low_water]
        for message_id in evict:
            del self.processed[message_id]
        return len(evict)
