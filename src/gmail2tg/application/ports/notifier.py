from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Protocol

from gmail2tg.domain.errors import DeliveryError


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of sending one notification."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def raise_for_error(self) -> None:
        if not self.success:
            raise DeliveryError(self.error or "delivery failed")


class Notifier(Protocol):
    def send(self, chat_id: int, text: str) -> DeliveryResult: ...
