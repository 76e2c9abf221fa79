"""text/event-stream frame encoding."""
from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any

_LINE_BREAK = re.compile(r"\r\n|\r|\n")

NEWLINE = "\n"


def split_lines(text: str) -> tuple[str, ...]:
    """Split on any SSE line break, dropping empty lines."""

    return tuple(line for line in _LINE_BREAK.split(text) if line)


def serialize_payload(value: Any) -> tuple[str, ...]:
    return split_lines(json.dumps(value, separators=(",", ":"), ensure_ascii=False))


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """One event as it will appear on the wire.

    ``event`` is the wire-level event name and has nothing to do with the
    routing name the event was published under.
    """

    event: str | None = None
    data: tuple[str, ...] = ()
    id: int | None = None
    comment: str | None = None

    def __post_init__(self) -> None:
        if self.event is not None and _LINE_BREAK.search(self.event):
            raise ValueError("event name must be a single line")
        if self.id is not None and (isinstance(self.id, bool) or not isinstance(self.id, int)):
            raise ValueError(f"event id must be an integer, got {self.id!r}")
        for line in self.data:
            if _LINE_BREAK.search(line):
                raise ValueError("data lines must not contain line breaks")

    @classmethod
    def from_object(
        cls,
        event: str,
        value: Any,
        *,
        id: int | None = None,
        comment: str | None = None,
    ) -> "StreamEvent":
        return cls(event=event, data=serialize_payload(value), id=id, comment=comment)


def format_frame(event: StreamEvent) -> str:
    lines: list[str] = []
    if event.comment is not None:
        lines.extend(f":{line}" for line in _LINE_BREAK.split(event.comment))
    if event.event is not None:
        # An id is only meaningful alongside an event name.
        if event.id is not None:
            lines.append(f"id:{event.id}")
        lines.append(f"event:{event.event}")
        lines.extend(f"data:{line}" for line in event.data)
    if not lines:
        return ""
    return NEWLINE.join(lines) + NEWLINE + NEWLINE


def encode_frame(event: StreamEvent) -> bytes:
    return format_frame(event).encode("utf-8")
