"""Human-readable notes block attached to every normalized scan result."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence, Tuple

HEAVY_RULE = "═" * 39
LIGHT_RULE = "─" * 39


class NotesBuilder:
    """Renders the header plus titled free-text sections."""

    def __init__(self, timestamp_format: str = "%Y-%m-%d %H:%M:%S %Z") -> None:
        self.timestamp_format = timestamp_format

    def build(
        self,
        *,
        source_url: str,
        scanned_at: datetime,
        sections: Sequence[Tuple[str, Optional[str]]],
    ) -> str:
        """Join the header and every non-empty section into one block of text."""
        lines: List[str] = [
            HEAVY_RULE,
            "AUTO-EXTRACTED FROM WEBSITE",
            f"Scanned: {scanned_at.strftime(self.timestamp_format).strip()}",
            f"URL: {source_url}",
            HEAVY_RULE,
            "",
        ]
        for title, body in sections:
            if not body or not body.strip():
                continue
            lines.extend([title.upper(), LIGHT_RULE, body.strip(), ""])
        return "\n".join(lines)
