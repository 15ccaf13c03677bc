"""JSON file store for the forwarding watermark and processed-id set."""

from __future__ import annotations

import json
import math
import os
import tempfile
from pathlib import Path

from loguru import logger

from gmail2tg.application.ports.state_store import StateStore
from gmail2tg.domain.entities.forward_state import ForwardState


class JsonFileStateStore(StateStore):
    """Persist ForwardState as a human-readable JSON file.

    Layout: {"startAfter": <epoch ms or null>, "processed": {"<id>": <epoch ms>}}

    Writes go to a temp file in the same directory and are moved into place
    with os.replace, so readers see either the old or the new file.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> ForwardState:
        """Load state, falling back to a fresh state on any read or parse problem."""
        if not self.path.exists():
            logger.info(f"No state file at {self.path}, starting fresh")
            return ForwardState()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Unreadable state file {self.path}, starting fresh: {e}")
            return ForwardState()

        if not isinstance(data, dict):
            logger.warning(f"State file {self.path} is not a JSON object, starting fresh")
            return ForwardState()

        return ForwardState(
            start_after=_watermark(data.get("startAfter", data.get("startAfterUnix"))),
            processed=_processed_from_json(data.get("processed")),
        )

    def save(self, state: ForwardState) -> None:
        payload = json.dumps(
            {"startAfter": state.start_after, "processed": state.processed},
            indent=2,
        )

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.",
            suffix=".tmp",
            dir=self.path.parent,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.debug(f"Saved state to {self.path} ({len(state.processed)} processed)")


def _as_millis(value) -> int | None:
    # bool is an int subclass but never a timestamp
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    # json.loads accepts NaN and Infinity
    if not math.isfinite(value):
        return None
    return int(value)


def _watermark(value) -> int | None:
    millis = _as_millis(value)
    # a non-positive watermark would admit the whole lookback window
    return millis if millis is not None and millis > 0 else None


def _processed_from_json(value) -> dict[str, int]:
    if not isinstance(value, dict):
        return {}
    processed: dict[str, int] = {}
    for message_id, ts in value.items():
        millis = _as_millis(ts)
        if millis is not None:
            processed[str(message_id)] = millis
    return processed
