from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import httplib2
from google.auth.exceptions import TransportError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from loguru import logger

from gmail2tg.application.ports.mailbox import LabelChange, LabelInfo, Mailbox, RawMessage
from gmail2tg.domain.errors import MailboxError
from gmail2tg.infrastructure.email.providers.gmail_api.auth import GmailAuthenticator
from gmail2tg.infrastructure.email.providers.gmail_api.mapper import message_to_raw


@dataclass
class GmailApiConfig:
    credentials_path: str | Path
    token_path: str | Path
    user_id: str = "me"


class GmailMailbox(Mailbox):
    """Mailbox port over the Gmail REST API (googleapiclient)."""

    def __init__(self, service: Any, user_id: str = "me") -> None:
        self.service = service
        self.user_id = user_id

    @classmethod
    def from_config(cls, cfg: GmailApiConfig) -> "GmailMailbox":
        """Authenticate and build the service. Raises CredentialsError."""
        creds = GmailAuthenticator(cfg.credentials_path, cfg.token_path).load()
        service = build("gmail", "v1", credentials=creds, cache_discovery=False)
        logger.info("Gmail auth OK")
        return cls(service, user_id=cfg.user_id)

    def _execute(self, what: str, request: Callable[[], Any]) -> Any:
        try:
            return request().execute()
        except HttpError as e:
            status: Optional[int] = getattr(e.resp, "status", None)
            raise MailboxError(f"Gmail {what} failed (HTTP {status}): {e}", status=status) from e
        except (httplib2.HttpLib2Error, TransportError, OSError) as e:
            raise MailboxError(f"Gmail {what} failed: {e}") from e

    def list_ids(self, query: str, max_results: int) -> list[str]:
        messages = self.service.users().messages()
        data = self._execute(
            "messages.list",
            lambda: messages.list(userId=self.user_id, q=query, maxResults=max_results),
        )
        return [m["id"] for m in data.get("messages", []) if m.get("id")]

    def get_full(self, message_id: str) -> RawMessage:
        messages = self.service.users().messages()
        data = self._execute(
            f"messages.get({message_id})",
            lambda: messages.get(userId=self.user_id, id=message_id, format="full"),
        )
        return message_to_raw(data)

    def list_labels(self) -> list[LabelInfo]:
        labels = self.service.users().labels()
        data = self._execute("labels.list", lambda: labels.list(userId=self.user_id))
        return [
            LabelInfo(label_id=item["id"], name=item.get("name", ""))
            for item in data.get("labels", [])
            if item.get("id")
        ]

    def create_label(self, name: str) -> LabelInfo:
        labels = self.service.users().labels()
        body = {
            "name": name,
            "labelListVisibility": "labelShow",
            "messageListVisibility": "show",
        }
        data = self._execute(
            f"labels.create({name})",
            lambda: labels.create(userId=self.user_id, body=body),
        )
        return LabelInfo(label_id=data["id"], name=data.get("name", name))

    def modify(self, message_id: str, change: LabelChange) -> None:
        messages = self.service.users().messages()
        body = {
            "addLabelIds": list(change.add),
            "removeLabelIds": list(change.remove),
        }
        self._execute(
            f"messages.modify({message_id})",
            lambda: messages.modify(userId=self.user_id, id=message_id, body=body),
        )
