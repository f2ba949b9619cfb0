"""Isolate the JSON payload from a generation response."""

from __future__ import annotations

import re
from typing import Literal

JsonKind = Literal["object", "array"]

_BRACKETS = {"object": ("{", "}"), "array": ("[", "]")}
_OPENING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_TRAILING_FENCE = re.compile(r"\n?```$")


def sanitize(raw: str, kind: JsonKind) -> str:
    """Strip code fences and cut ``raw`` down to the outermost ``kind`` brackets.

    When no bracket pair is found the trimmed, unfenced text is returned as is;
    the caller's ``json.loads`` then fails and reports the response as malformed.
    """
    if kind not in _BRACKETS:
        raise ValueError(f"unknown JSON kind: {kind!r}")

    text = (raw or "").strip()
    if text.startswith("```"):
        text = _OPENING_FENCE.sub("", text, count=1).strip()
    if text.endswith("```"):
        text = _TRAILING_FENCE.sub("", text, count=1).strip()

    opening, closing = _BRACKETS[kind]
    first = text.find(opening)
    last = text.rfind(closing)
    if first != -1 and last != -1 and first < last:
        return text[first : last + 1]
    return text
