from __future__ import annotations
from dataclasses import dataclass, field
from typing import Iterator, Optional


@dataclass(frozen=True)
class MimePart:
    """One node of a message part tree.

    Leaves carry an encoded body payload (URL-safe base64) or an attachment
    reference; containers carry child parts. The tree never has cycles.
    """

    mime_type: str = ""
    data: Optional[str] = None
    filename: str = ""
    attachment_id: Optional[str] = None
    size: int = 0
    parts: tuple["MimePart", ...] = field(default_factory=tuple)

    def walk(self) -> Iterator["MimePart"]:
        """Yield every node once, depth-first, using an explicit stack."""
        stack: list[MimePart] = [self]
        while stack:
            part = stack.pop()
            yield part
            # reversed so children come out in document order
            stack.extend(reversed(part.parts))
