from __future__ import annotations

import logging
import shutil

from title_automation.domain.models.title_layout import TitleLayout

_log = logging.getLogger(__name__)


def clean_tmp(label: str, layout: TitleLayout) -> bool:
    tmp_dir = layout.tmp_dir(label)
    if not tmp_dir.exists():
        return True
    try:
        shutil.rmtree(tmp_dir)
    except OSError as exc:
        _log.error("Failed to delete tmp folder for %s: %s", label, exc)
        return False
    _log.info("Cleaned up temporary files for %s", label)
    return True
