"""Gmail → Telegram worker - polls the inbox and forwards new messages."""

from __future__ import annotations

import argparse
import os
import signal
import sys
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Optional

from loguru import logger
from pydantic import ValidationError

from gmail2tg.application.ports.mailbox import Mailbox
from gmail2tg.application.ports.notifier import Notifier
from gmail2tg.application.ports.state_store import StateStore
from gmail2tg.application.use_cases.forward_email import ForwardEmailUseCase, now_ms
from gmail2tg.application.use_cases.reconcile_labels import LabelReconciler
from gmail2tg.domain.entities.forward_state import ForwardState
from gmail2tg.domain.errors import Gmail2TgError
from gmail2tg.infrastructure.settings import Settings, get_settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


@dataclass
class WorkerStats:
    """Track worker statistics."""
    polls_completed: int = 0
    total_forwarded: int = 0
    total_failed: int = 0
    tick_errors: int = 0
    last_poll: datetime | None = None


class ForwardWorker:
    """
    Single-mailbox forwarding worker.

    STARTUP loads (or initializes) the watermark and resolves the marker
    label; every TICK after that runs one ForwardEmailUseCase batch and
    sleeps. A failing tick is logged and retried on the next one. Shutdown
    signals let the current tick finish before the loop exits.
    """

    def __init__(
        self,
        settings: Settings,
        mailbox: Optional[Mailbox] = None,
        notifier: Optional[Notifier] = None,
        store: Optional[StateStore] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.settings = settings
        self.poll_interval = settings.poll_seconds
        self.running = False
        self.stats = WorkerStats()

        self._mailbox = mailbox
        self._notifier = notifier
        self._store = store
        self._sleep = sleep
        self._clock = clock

    def _init_infrastructure(self) -> None:
        """Build the Gmail, Telegram and state adapters not injected by the caller."""
        logger.info("Initializing infrastructure...")

        if self._mailbox is None:
            from gmail2tg.infrastructure.email.providers.gmail_api.client import (
                GmailApiConfig,
                GmailMailbox,
            )

            self._mailbox = GmailMailbox.from_config(GmailApiConfig(
                credentials_path=self.settings.resolved_credentials_path(),
                token_path=self.settings.resolved_token_path(),
            ))

        if self._notifier is None:
            from gmail2tg.infrastructure.telegram.outbound import TelegramNotifier

            self._notifier = TelegramNotifier(self.settings.tg_token.get_secret_value())

        if self._store is None:
            from gmail2tg.infrastructure.stores import JsonFileStateStore

            self._store = JsonFileStateStore(self.settings.state_path)

        logger.info("Infrastructure initialized")

    def _load_state(self) -> ForwardState:
        """Load state and pin the watermark on first run, before any listing."""
        state = self._store.load()
        now = self._clock()
        started = _format_ms(state.start_after or now)

        if state.init_watermark(now):
            self._store.save(state)
            logger.info(f"First run: ignoring older messages, starting from {started}")
        else:
            logger.info(f"Resuming from {started} ({len(state.processed)} processed ids)")
        return state

    def _build_use_case(self) -> ForwardEmailUseCase:
        reconciler = LabelReconciler(self._mailbox, self.settings.forwarded_label_name)
        label_id = reconciler.ensure_marker_label()

        return ForwardEmailUseCase(
            mailbox=self._mailbox,
            notifier=self._notifier,
            reconciler=reconciler,
            store=self._store,
            chat_id=self.settings.tg_chat_id,
            label_id=label_id,
            max_per_tick=self.settings.max_per_tick,
            body_max_chars=self.settings.body_max_chars,
            header_max_chars=self.settings.header_max_chars,
            high_water=self.settings.processed_high_water,
            low_water=self.settings.processed_low_water,
            clock=self._clock,
        )

    def _tick(self, use_case: ForwardEmailUseCase, state: ForwardState) -> None:
        self.stats.last_poll = datetime.now(timezone.utc)
        try:
            result = use_case.run_tick(state)
            self.stats.total_forwarded += result.forwarded
            self.stats.total_failed += result.failed
        except Exception as e:
            self.stats.tick_errors += 1
            logger.error(f"Tick failed: {e}")
        self.stats.polls_completed += 1

    def _log_stats(self) -> None:
        """Log current worker statistics."""
        logger.info(
            f"Worker stats: "
            f"polls={self.stats.polls_completed}, "
            f"forwarded={self.stats.total_forwarded}, "
            f"failed={self.stats.total_failed}, "
            f"tick_errors={self.stats.tick_errors}"
        )

    def _handle_shutdown(self, signum, frame) -> None:
        """Handle graceful shutdown."""
        logger.info(f"Received signal {signum}, finishing current tick...")
        self.running = False

    def run(self, once: bool = False) -> int:
        """Run the worker loop. Returns a process exit code."""
        previous = {
            sig: signal.signal(sig, self._handle_shutdown)
            for sig in (signal.SIGTERM, signal.SIGINT)
        }
        try:
            return self._run(once)
        finally:
            for sig, handler in previous.items():
                signal.signal(sig, handler)

    def _run(self, once: bool) -> int:
        logger.info("Worker starting...")

        try:
            self._init_infrastructure()
            state = self._load_state()
            use_case = self._build_use_case()
        except (Gmail2TgError, OSError) as e:
            logger.error(f"Startup failed: {e}")
            return 1

        if self.settings.health_enabled and not once:
            from gmail2tg.api.main import start_health_server

            start_health_server(self.settings.health_host, self.settings.port)

        logger.info(f"Polling every {self.poll_interval}s, up to {self.settings.max_per_tick} messages per tick")

        self.running = True
        while self.running:
            self._tick(use_case, state)
            if once:
                break

            # Sleep in small increments to respond to signals quickly
            sleep_remaining = self.poll_interval
            while sleep_remaining > 0 and self.running:
                sleep_time = min(sleep_remaining, 1)
                self._sleep(sleep_time)
                sleep_remaining -= sleep_time

        logger.info("Worker shutdown complete")
        self._log_stats()
        return 0


def _format_ms(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat(timespec="seconds")


def configure_logging(level: str) -> None:
    level = (level or "").strip().upper()
    try:
        logger.level(level)
    except ValueError:
        fallback = level
        level = "INFO"
    else:
        fallback = None

    logger.remove()
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)
    if fallback is not None:
        logger.warning(f"Unknown log level {fallback!r}, using INFO")


def main(argv: list[str] | None = None) -> int:
    """Entry point for the forwarding worker."""
    parser = argparse.ArgumentParser(description="Forward new Gmail messages to Telegram")
    parser.add_argument("--once", action="store_true", help="Run a single tick and exit")
    args = parser.parse_args(argv)

    # Configure logging before settings load so config errors are formatted too
    configure_logging(os.getenv("LOG_LEVEL", "INFO"))

    logger.info("=" * 60)
    logger.info("gmail2tg worker")
    logger.info("=" * 60)

    try:
        settings = get_settings()
    except ValidationError as e:
        logger.error(f"Invalid configuration (check TG_TOKEN / TG_CHAT_ID and .env): {e}")
        return 1

    configure_logging(settings.log_level)

    worker = ForwardWorker(settings)
    return worker.run(once=args.once)


if __name__ == "__main__":
    raise SystemExit(main())
