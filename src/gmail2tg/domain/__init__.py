"""Domain layer - entities and errors, no I/O."""

from gmail2tg.domain.entities.email_message import AttachmentInfo, MessageEnvelope
from gmail2tg.domain.entities.forward_state import ForwardState
from gmail2tg.domain.entities.mime_part import MimePart
from gmail2tg.domain.errors import (
    ConfigurationError,
    CredentialsError,
    DeliveryError,
    Gmail2TgError,
    MailboxError,
)

__all__ = [
    "AttachmentInfo",
    "MessageEnvelope",
    "ForwardState",
    "MimePart",
    "Gmail2TgError",
    "ConfigurationError",
    "CredentialsError",
    "MailboxError",
    "DeliveryError",
]
