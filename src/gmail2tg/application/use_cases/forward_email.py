"""Forward new mailbox messages to a Telegram chat, once each."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from gmail2tg.application.ports.mailbox import Mailbox
from gmail2tg.application.ports.notifier import Notifier
from gmail2tg.application.ports.state_store import StateStore
from gmail2tg.application.text_extractor import (
    BODY_MAX_CHARS,
    HEADER_MAX_CHARS,
    build_envelope,
    compose_notification,
)
from gmail2tg.application.use_cases.reconcile_labels import LabelReconciler
from gmail2tg.domain.entities.forward_state import (
    PROCESSED_HIGH_WATER,
    PROCESSED_LOW_WATER,
    ForwardState,
)

MAX_PER_TICK = 10


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class TickResult:
    """Counters for one poll tick."""

    candidates: int = 0
    forwarded: int = 0
    skipped: int = 0
    failed: int = 0
    unlabeled: int = 0
    evicted: int = 0

    @property
    def changed(self) -> bool:
        return self.forwarded > 0 or self.evicted > 0


class ForwardEmailUseCase:
    """Run poll ticks: list, fetch, extract, deliver, reconcile, persist.

    Flow for each candidate (oldest first):
    1. Skip ids already in the processed set
    2. Fetch the full message and compose the notification
    3. Deliver it; on failure leave it unmarked so a later tick retries
    4. Mark it read and labeled; on failure log and carry on
    5. Record it as processed

    Delivery always happens before marking, so a crash can at worst cause a
    duplicate notification, never a lost one.
    """

    def __init__(
        self,
        mailbox: Mailbox,
        notifier: Notifier,
        reconciler: LabelReconciler,
        store: StateStore,
        chat_id: int,
        label_id: Optional[str] = None,
        max_per_tick: int = MAX_PER_TICK,
        body_max_chars: int = BODY_MAX_CHARS,
        header_max_chars: int = HEADER_MAX_CHARS,
        high_water: int = PROCESSED_HIGH_WATER,
        low_water: int = PROCESSED_LOW_WATER,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.mailbox = mailbox
        self.notifier = notifier
        self.reconciler = reconciler
        self.store = store
        self.chat_id = chat_id
        self.label_id = label_id
        self.max_per_tick = max_per_tick
        self.body_max_chars = body_max_chars
        self.header_max_chars = header_max_chars
        self.high_water = high_water
        self.low_water = low_water
        self.clock = clock

    def build_query(self, state: ForwardState) -> str:
        minutes = state.window_minutes(self.clock())
        return f"in:inbox newer_than:{minutes}m"

    def run_tick(self, state: ForwardState) -> TickResult:
        """Process one batch of candidates against the given state.

        Listing failures propagate to the caller; failures for a single
        message are logged and do not stop the rest of the batch.
        """
        result = TickResult()

        query = self.build_query(state)
        ids = self.mailbox.list_ids(query, self.max_per_tick)
        # the mailbox lists newest first
        candidates = [message_id for message_id in reversed(ids) if message_id]
        result.candidates = len(candidates)

        if candidates:
            logger.info(f"Messages to check: {len(candidates)} ({query})")

        for message_id in candidates:
            if state.is_processed(message_id):
                result.skipped += 1
                continue
            self._forward_one(state, message_id, result)

        result.evicted = state.compact(self.high_water, self.low_water)
        if result.evicted:
            logger.info(f"Compacted processed set: evicted {result.evicted}, kept {len(state.processed)}")

        if result.changed:
            self.store.save(state)

        if result.forwarded or result.failed:
            logger.info(
                f"Tick complete: {result.forwarded} forwarded, {result.failed} failed, "
                f"{result.skipped} skipped (dedup), {result.unlabeled} unlabeled"
            )
        return result

    def _forward_one(self, state: ForwardState, message_id: str, result: TickResult) -> None:
        try:
            raw = self.mailbox.get_full(message_id)
            envelope = build_envelope(raw, self.body_max_chars, self.header_max_chars)
            delivery = self.notifier.send(self.chat_id, compose_notification(envelope))
            delivery.raise_for_error()
        except Exception as e:
            result.failed += 1
            logger.error(f"Failed to forward {message_id}, will retry next tick: {e}")
            return

        try:
            self.reconciler.reconcile(message_id, self.label_id)
        except Exception as e:
            result.unlabeled += 1
            logger.warning(f"Forwarded {message_id} but could not mark it in the mailbox: {e}")

        state.mark_processed(message_id, self.clock())
        result.forwarded += 1
        logger.info(f"Forwarded {message_id}: {envelope.subject[:50]}")
