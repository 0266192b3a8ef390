"""Last-upload status per entity type, kept in process memory.

Reset when an upload starts, filled in when it finishes, lost on restart.
"""
from dataclasses import dataclass, field
from typing import Any


@dataclass
class UploadState:
    uploading: bool = False
    summary: str = ""
    errors: list[dict[str, Any]] = field(default_factory=list)


class UploadStateStore:
    def __init__(self) -> None:
        self._states: dict[str, UploadState] = {}

    def get(self, key: str) -> UploadState:
        return self._states.setdefault(key, UploadState())

    def is_uploading(self, key: str) -> bool:
        return self.get(key).uploading

    def reset_for(self, key: str) -> None:
        state = self.get(key)
        state.summary = ""
        state.errors = []

    def begin(self, key: str) -> None:
        self.reset_for(key)
        self.get(key).uploading = True

    def finish(self, key: str, summary: str, errors: list[dict[str, Any]] | None = None) -> None:
        state = self.get(key)
        state.uploading = False
        state.summary = summary
        state.errors = list(errors or [])

    def clear(self) -> None:
        self._states.clear()


upload_states = UploadStateStore()
