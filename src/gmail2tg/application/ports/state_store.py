from __future__ import annotations
from typing import Protocol

from gmail2tg.domain.entities.forward_state import ForwardState


class StateStore(Protocol):
    def load(self) -> ForwardState: ...
    def save(self, state: ForwardState) -> None: ...
