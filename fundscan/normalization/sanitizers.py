"""Value sanitizers applied before extracted data reaches a user."""

from __future__ import annotations

import re
from typing import Any, List, Optional

# Markers of serialized JSON leaking into what should be plain text.
JSON_LEAK_MARKERS = ('":', '{"', '["')

_AMOUNT_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")


def looks_like_json(value: str) -> bool:
    return any(marker in value for marker in JSON_LEAK_MARKERS)


def clean_string(value: Any) -> str:
    """Return ``value`` as trimmed text, or ``""`` when absent or JSON-like."""
    if value is None or value == "" or value is False:
        return ""
    if not isinstance(value, str):
        return str(value)
    if looks_like_json(value):
        return ""
    return value.strip()


def clean_array(value: Any) -> List[str]:
    """Keep only plain string entries free of brace and colon characters."""
    if not isinstance(value, (list, tuple)):
        return []
    return [
        item.strip()
        for item in value
        if isinstance(item, str) and "{" not in item and ":" not in item and item.strip()
    ]


def parse_amount(value: Any) -> Optional[int]:
    """Parse a dollar/count value such as ``"$10,000"`` or ``250000`` into an int.

    Empty and zero-like inputs yield ``None``; cents are dropped.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value else None
    if not isinstance(value, str):
        return None

    match = _AMOUNT_RE.search(value)
    if not match:
        return None
    number = float(match.group(0).replace(",", ""))
    return int(number) if number else None
