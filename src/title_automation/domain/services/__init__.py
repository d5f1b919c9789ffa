from title_automation.domain.services.cache_cleanup import (
    remove_orphaned_caches,
    trim_old_versions,
    version_sort_key,
)
from title_automation.domain.services.cache_locator import cached_filename, locate_cached_artifact
from title_automation.domain.services.dual_arch import is_dual_arch
from title_automation.domain.services.title_lock import title_lock
from title_automation.domain.services.tmp_workspace import clean_tmp

__all__ = [
    "cached_filename",
    "clean_tmp",
    "is_dual_arch",
    "locate_cached_artifact",
    "remove_orphaned_caches",
    "title_lock",
    "trim_old_versions",
    "version_sort_key",
]
