from __future__ import annotations

import logging
import re
import shutil
from pathlib import Path

from title_automation.domain.models.title_layout import TitleLayout

_log = logging.getLogger(__name__)

_DIGITS = re.compile(r"(\d+)")


def version_sort_key(version: str) -> tuple[tuple[int, int, str], ...]:
    """Order version folder names with digit runs compared as numbers."""
    parts = [part for part in _DIGITS.split(str(version or "")) if part]
    return tuple((0, int(part), "") if part.isdigit() else (1, 0, part) for part in parts)


def _visible_dirs(path: Path) -> list[Path]:
    if not path.is_dir():
        return []
    return sorted(
        entry for entry in path.iterdir() if entry.is_dir() and not entry.name.startswith(".")
    )


def _delete_tree(path: Path) -> bool:
    try:
        shutil.rmtree(path)
    except OSError as exc:
        _log.error("Failed to delete cache folder %s: %s", path, exc)
        return False
    return True


def remove_orphaned_caches(layout: TitleLayout) -> list[Path]:
    if not layout.managed_titles_dir.is_dir():
        _log.warning(
            "Managed titles folder %s is missing; orphaned cache cleanup skipped",
            layout.managed_titles_dir,
        )
        return []

    labels = {entry.name.split("_", 1)[0] for entry in _visible_dirs(layout.managed_titles_dir)}
    removed: list[Path] = []
    for cache_dir in _visible_dirs(layout.cache_dir):
        if cache_dir.name in labels:
            continue
        if _delete_tree(cache_dir):
            _log.info("Removed orphaned cache folder: %s", cache_dir.name)
            removed.append(cache_dir)
    return removed


def trim_old_versions(layout: TitleLayout, versions_to_keep: int) -> list[Path]:
    keep = max(0, int(versions_to_keep))
    removed: list[Path] = []
    for label_dir in _visible_dirs(layout.cache_dir):
        tmp_dir = layout.tmp_dir(label_dir.name)
        versions = [entry for entry in _visible_dirs(label_dir) if entry != tmp_dir]
        versions.sort(key=lambda entry: version_sort_key(entry.name), reverse=True)
        for stale in versions[keep:]:
            if _delete_tree(stale):
                _log.info("Deleted old cached version: %s/%s", label_dir.name, stale.name)
                removed.append(stale)
    return removed
