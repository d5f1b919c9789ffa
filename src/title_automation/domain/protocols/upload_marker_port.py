from __future__ import annotations

from typing import Protocol


class UploadMarkerPort(Protocol):
    def remove(self, label: str, tracking_id: str) -> bool: ...

    def record_count(self, label: str, tracking_id: str, count: int) -> None: ...
