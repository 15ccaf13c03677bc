"""Turn a message part tree into the text of a Telegram notification.

Body selection prefers the first text/plain part, then falls back to the
first text/html part converted to plain text. Attachments are listed by name
and size only; their content is never fetched.
"""

from __future__ import annotations

import base64
import re
from typing import Mapping

from gmail2tg.application.ports.mailbox import RawMessage
from gmail2tg.domain.entities.email_message import AttachmentInfo, MessageEnvelope
from gmail2tg.domain.entities.mime_part import MimePart

BODY_MAX_CHARS = 3500
HEADER_MAX_CHARS = 200
MAX_LISTED_ATTACHMENTS = 10
TRUNCATION_MARKER = "…"
NO_TEXT = "(no text)"
NO_SUBJECT = "(no subject)"

_STYLE_RE = re.compile(r"<style[\s\S]*?</style>", re.IGNORECASE)
_SCRIPT_RE = re.compile(r"<script[\s\S]*?</script>", re.IGNORECASE)
_PARA_END_RE = re.compile(r"</p>", re.IGNORECASE)
_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_BLANK_LINES_RE = re.compile(r"\n[ \t]*(?:\n[ \t]*)+")

_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    # last, so "&amp;lt;" becomes "&lt;" and not "<"
    ("&amp;", "&"),
)


def decode_base64url(data: str | None) -> str:
    """Decode a URL-safe base64 body payload to text.

    Returns an empty string for missing or undecodable payloads.
    """
    if not data:
        return ""
    b64 = data.replace("-", "+").replace("_", "/")
    b64 += "=" * (-len(b64) % 4)
    try:
        return base64.b64decode(b64).decode("utf-8")
    except ValueError:
        # binascii.Error and UnicodeDecodeError are both ValueErrors
        return ""


def html_to_text(html: str) -> str:
    text = _STYLE_RE.sub("", html)
    text = _SCRIPT_RE.sub("", text)
    text = _PARA_END_RE.sub("\n", text)
    text = _BR_RE.sub("\n", text)
    text = _TAG_RE.sub("", text)
    for entity, char in _ENTITIES:
        text = text.replace(entity, char)
    text = _BLANK_LINES_RE.sub("\n", text)
    return text.strip()


def normalize_text(text: str | None, max_len: int = BODY_MAX_CHARS) -> str:
    """Strip carriage returns and NULs, trim, and cap at max_len characters.

    A capped string is max_len characters plus one truncation marker.
    """
    text = (text or "").replace("\r", "").replace("\x00", "").strip()
    if len(text) > max_len:
        return text[:max_len] + TRUNCATION_MARKER
    return text


def extract_body_text(root: MimePart | None) -> str:
    """Return the readable body of a part tree, or "" if it has none."""
    if root is None:
        return ""

    html = ""
    for part in root.walk():
        mime_type = part.mime_type.lower()
        if mime_type == "text/plain" and part.data:
            plain = decode_base64url(part.data)
            if plain:
                return plain
        elif mime_type == "text/html" and part.data and not html:
            html = decode_base64url(part.data)

    if html:
        return html_to_text(html)
    return ""


def collect_attachments(root: MimePart | None) -> list[AttachmentInfo]:
    if root is None:
        return []
    return [
        AttachmentInfo(filename=part.filename, size_bytes=part.size or 0)
        for part in root.walk()
        if part.filename and part.attachment_id
    ]


def _header(headers: Mapping[str, str], name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value or ""
    return ""


def build_envelope(
    raw: RawMessage,
    body_max_chars: int = BODY_MAX_CHARS,
    header_max_chars: int = HEADER_MAX_CHARS,
) -> MessageEnvelope:
    """Extract sender, subject, date, body and attachments from a fetched message."""
    body = extract_body_text(raw.payload) or raw.snippet or NO_TEXT
    return MessageEnvelope(
        message_id=raw.message_id,
        sender=normalize_text(_header(raw.headers, "From"), header_max_chars),
        subject=normalize_text(_header(raw.headers, "Subject") or NO_SUBJECT, header_max_chars),
        date=normalize_text(_header(raw.headers, "Date"), header_max_chars),
        body=normalize_text(body, body_max_chars),
        attachments=collect_attachments(raw.payload),
    )


def compose_notification(envelope: MessageEnvelope) -> str:
    text = (
        "\U0001f4e9 New email\n"
        f"From: {envelope.sender}\n"
        f"Subject: {envelope.subject}\n"
        f"Date: {envelope.date}\n\n"
        f"{envelope.body}"
    )

    if envelope.attachments:
        files = "\n".join(
            f"\U0001f4ce {a.filename} ({a.size_bytes} bytes)"
            for a in envelope.attachments[:MAX_LISTED_ATTACHMENTS]
        )
        text += f"\n\nAttachments:\n{files}"

    return text
