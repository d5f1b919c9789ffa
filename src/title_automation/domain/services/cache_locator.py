from __future__ import annotations

import logging
from pathlib import Path

from title_automation.domain.models.processed_app_results import (
    DeploymentType,
    ProcessedAppResults,
)
from title_automation.domain.models.title_layout import TitleLayout
from title_automation.domain.services.dual_arch import is_dual_arch

_log = logging.getLogger(__name__)


def cached_filename(results: ProcessedAppResults, dual_arch: bool) -> str:
    base = f"{results.display_name}-{results.version_expected}"
    suffix = results.deployment_type.file_suffix

    # LOB uploads are always a single artifact.
    if results.deployment_type is DeploymentType.LOB or not dual_arch:
        return f"{base}.{suffix}"
    return f"{base}-{results.deployment_arch.tag}.{suffix}"


def locate_cached_artifact(results: ProcessedAppResults, layout: TitleLayout) -> Path | None:
    label = str(results.label_name or "").strip()
    version = str(results.version_expected or "").strip()
    if not label or not version or not results.display_name:
        return None

    dual_arch = (
        results.deployment_type is not DeploymentType.LOB
        and is_dual_arch(label, results.tracking_id, layout)
    )
    candidate = layout.version_cache_dir(label, version) / cached_filename(results, dual_arch)
    _log.debug("Version check path: %s", candidate)
    if candidate.is_file():
        return candidate
    return None
