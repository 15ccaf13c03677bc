"""Shared fakes for the mailbox, notifier and state store ports."""

from __future__ import annotations

import base64
from typing import Optional

import pytest

from gmail2tg.application.ports.mailbox import LabelChange, LabelInfo, RawMessage
from gmail2tg.application.ports.notifier import DeliveryResult
from gmail2tg.domain.entities.forward_state import ForwardState
from gmail2tg.domain.entities.mime_part import MimePart
from gmail2tg.domain.errors import MailboxError


def b64url(text: str) -> str:
    """Encode like Gmail does: URL-safe base64 without padding."""
    return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")


def plain_message(message_id: str, body: str = "hello", subject: str = "Hi") -> RawMessage:
    return RawMessage(
        message_id=message_id,
        headers={"From": "alice@example.com", "Subject": subject, "Date": "Mon, 1 Jan 2024 10:00:00 +0000"},
        payload=MimePart(mime_type="text/plain", data=b64url(body)),
        snippet=body[:20],
    )


class FakeMailbox:
    def __init__(self, ids: Optional[list[str]] = None, labels: Optional[list[LabelInfo]] = None) -> None:
        self.ids = list(ids or [])
        self.messages: dict[str, RawMessage] = {}
        self.labels = list(labels or [])
        self.queries: list[tuple[str, int]] = []
        self.modified: list[tuple[str, LabelChange]] = []
        self.fail_list = False
        self.fail_get: set[str] = set()
        self.fail_modify: set[str] = set()
        self.fail_create_label = False
        self.created_labels: list[str] = []

    def list_ids(self, query: str, max_results: int) -> list[str]:
        self.queries.append((query, max_results))
        if self.fail_list:
            raise MailboxError("list failed", status=500)
        return self.ids[:max_results]

    def get_full(self, message_id: str) -> RawMessage:
        if message_id in self.fail_get:
            raise MailboxError(f"get {message_id} failed", status=404)
        return self.messages.get(message_id) or plain_message(message_id, body=f"body of {message_id}")

    def list_labels(self) -> list[LabelInfo]:
        return list(self.labels)

    def create_label(self, name: str) -> LabelInfo:
        if self.fail_create_label:
            raise MailboxError("insufficient permission", status=403)
        label = LabelInfo(label_id=f"Label_{len(self.labels) + 1}", name=name)
        self.labels.append(label)
        self.created_labels.append(name)
        return label

    def modify(self, message_id: str, change: LabelChange) -> None:
        if message_id in self.fail_modify:
            raise MailboxError(f"modify {message_id} failed", status=500)
        self.modified.append((message_id, change))


class FakeNotifier:
    def __init__(self) -> None:
        self.sent: list[tuple[int, str]] = []
        self.fail_texts_containing: set[str] = set()
        self.raise_texts_containing: set[str] = set()

    def send(self, chat_id: int, text: str) -> DeliveryResult:
        if any(marker in text for marker in self.raise_texts_containing):
            raise ConnectionError("network down")
        if any(marker in text for marker in self.fail_texts_containing):
            return DeliveryResult(success=False, error="HTTP 400: chat not found")
        self.sent.append((chat_id, text))
        return DeliveryResult(success=True, message_id=str(len(self.sent)))


class MemoryStateStore:
    def __init__(self, state: Optional[ForwardState] = None) -> None:
        self.state = state
        self.saves: list[dict] = []

    def load(self) -> ForwardState:
        if self.state is None:
            return ForwardState()
        return ForwardState(start_after=self.state.start_after, processed=dict(self.state.processed))

    def save(self, state: ForwardState) -> None:
        self.saves.append({"start_after": state.start_after, "processed": dict(state.processed)})
        self.state = ForwardState(start_after=state.start_after, processed=dict(state.processed))


class FakeClock:
    def __init__(self, start_ms: int = 1_700_000_000_000) -> None:
        self.now = start_ms

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def mailbox() -> FakeMailbox:
    return FakeMailbox()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
