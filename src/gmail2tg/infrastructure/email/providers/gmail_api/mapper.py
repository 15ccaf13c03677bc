from __future__ import annotations

from typing import Any, Mapping

from gmail2tg.application.ports.mailbox import RawMessage
from gmail2tg.domain.entities.mime_part import MimePart


def payload_to_part(payload: Mapping[str, Any] | None) -> MimePart:
    """Convert a Gmail API `payload` dict into a MimePart tree.

    Built bottom-up with an explicit stack so deeply nested payloads cannot
    exhaust the recursion limit.
    """
    if not payload:
        return MimePart()

    # post-order: a node is built once all of its children are built
    built: dict[int, MimePart] = {}
    stack: list[tuple[Mapping[str, Any], bool]] = [(payload, False)]
    while stack:
        node, children_done = stack.pop()
        children = node.get("parts") or []
        if not children_done:
            stack.append((node, True))
            stack.extend((child, False) for child in children)
            continue

        body = node.get("body") or {}
        built[id(node)] = MimePart(
            mime_type=node.get("mimeType") or "",
            data=body.get("data") or None,
            filename=node.get("filename") or "",
            attachment_id=body.get("attachmentId") or None,
            size=int(body.get("size") or 0),
            parts=tuple(built.pop(id(child)) for child in children),
        )

    return built[id(payload)]


def message_to_raw(message: Mapping[str, Any]) -> RawMessage:
    """Convert a `users.messages.get(format="full")` response."""
    payload = message.get("payload") or {}
    headers = {}
    for header in payload.get("headers") or []:
        name = header.get("name")
        # first occurrence wins
        if name and name not in headers:
            headers[name] = header.get("value") or ""

    return RawMessage(
        message_id=message.get("id") or "",
        headers=headers,
        payload=payload_to_part(payload),
        snippet=message.get("snippet") or "",
    )
