"""In-batch duplicate tracking. Nothing here outlives a single import request."""
from typing import Any

from app.services.fields import cell_text


def dedup_key(*parts: Any) -> str:
    return "|".join(cell_text(p).lower() for p in parts)


class SeenKeys:
    """Composite keys seen so far in one batch, with the line that introduced each."""

    def __init__(self) -> None:
        self._first_line: dict[str, int] = {}

    def is_duplicate(self, key: str) -> bool:
        return key in self._first_line

    def mark_seen(self, key: str, line: int) -> None:
        self._first_line.setdefault(key, line)

    def first_line(self, key: str) -> int | None:
        return self._first_line.get(key)
