from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping, Protocol, Sequence

from gmail2tg.domain.entities.mime_part import MimePart


@dataclass(frozen=True)
class RawMessage:
    message_id: str
    headers: Mapping[str, str]
    payload: MimePart
    snippet: str = ""


@dataclass(frozen=True)
class LabelInfo:
    label_id: str
    name: str


@dataclass(frozen=True)
class LabelChange:
    add: list[str] = field(default_factory=list)
    remove: list[str] = field(default_factory=list)


class Mailbox(Protocol):
    """Remote mailbox. Every method raises MailboxError on failure."""

    def list_ids(self, query: str, max_results: int) -> list[str]: ...
    def get_full(self, message_id: str) -> RawMessage: ...
    def list_labels(self) -> Sequence[LabelInfo]: ...
    def create_label(self, name: str) -> LabelInfo: ...
    def modify(self, message_id: str, change: LabelChange) -> None: ...
