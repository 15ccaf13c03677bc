"""Error taxonomy shared by every layer."""

from __future__ import annotations


class Gmail2TgError(Exception):
    """Base class for all gmail2tg errors."""


class ConfigurationError(Gmail2TgError):
    """Required configuration is missing or invalid. Fatal at startup."""


class CredentialsError(Gmail2TgError):
    """Gmail credential material is missing or unusable. Fatal at startup."""


class MailboxError(Gmail2TgError):
    """A mailbox API call failed."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class DeliveryError(Gmail2TgError):
    """A notification could not be delivered."""
