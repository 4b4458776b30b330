"""
PagePulse — input sanitizers for untrusted telemetry fields.

Strips markup and control whitespace from free-text fields and coerces
numeric fields to non-negative integers.
"""

from __future__ import annotations

import re
from typing import Any

_TAG_RE = re.compile(r"<[^>]*>")
_SCRIPT_RE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_OCTET_RE = re.compile(r"%[a-f0-9]{2}", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")


def sanitize_text(value: Any) -> str:
    """Return a single-line, tag-free, trimmed version of *value*.

    ``None`` becomes the empty string. Script/style blocks are dropped with
    their contents, remaining tags are removed, percent-encoded octets are
    stripped and all runs of whitespace (including newlines and tabs)
    collapse to one space.
    """
    if value is None:
        return ""
    text = str(value)
    text = _SCRIPT_RE.sub("", text)
    # A lone "<" that doesn't open a tag is kept as text.
    text = _TAG_RE.sub("", text)
    text = _OCTET_RE.sub("", text)
    text = _WS_RE.sub(" ", text)
    return text.strip()


def absint(value: Any) -> int:
    """Coerce a numeric-ish value to a non-negative integer (0 on failure)."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        return abs(int(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0
