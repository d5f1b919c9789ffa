from __future__ import annotations

from title_automation.domain.models.title_layout import TitleLayout


def is_dual_arch(label: str, tracking_id: str, layout: TitleLayout) -> bool:
    return layout.x86_descriptor_path(label, tracking_id).exists()
