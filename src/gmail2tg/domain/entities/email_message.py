from __future__ import annotations
from dataclasses import dataclass, field


@dataclass(frozen=True)
class AttachmentInfo:
    filename: str
    size_bytes: int = 0


@dataclass(frozen=True)
class MessageEnvelope:
    message_id: str
    sender: str
    subject: str
    date: str
    body: str
    attachments: list[AttachmentInfo] = field(default_factory=list)
