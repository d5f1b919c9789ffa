from __future__ import annotations

from typing import final, override

from title_automation.domain.models.title_layout import TitleLayout
from title_automation.domain.protocols.upload_marker_port import UploadMarkerPort


@final
class UploadMarkerRepository(UploadMarkerPort):
    def __init__(self, layout: TitleLayout) -> None:
        self._layout = layout

    @override
    def remove(self, label: str, tracking_id: str) -> bool:
        if not self._layout.title_dir(label, tracking_id).is_dir():
            return False
        marker = self._layout.upload_marker_path(label, tracking_id)
        if not marker.exists():
            return False
        marker.unlink()
        return True

    @override
    def record_count(self, label: str, tracking_id: str, count: int) -> None:
        marker = self._layout.upload_marker_path(label, tracking_id)
        if count > 0:
            _ = marker.write_text(str(int(count)), encoding="utf-8")
            return
        marker.unlink(missing_ok=True)
