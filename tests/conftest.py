import logging
import sys
from pathlib import Path

root = Path(__file__).resolve().parents[1]
src = root / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

import pytest

from title_automation.domain.models.processed_app_results import (
    DeploymentArch,
    DeploymentType,
    ProcessedAppResults,
)
from title_automation.domain.models.title_layout import TitleLayout


@pytest.fixture()
def temp_workspace(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    (tmp_path / "configs").mkdir(parents=True, exist_ok=True)
    (tmp_path / "data" / "managed_titles").mkdir(parents=True, exist_ok=True)
    (tmp_path / "data" / "cache").mkdir(parents=True, exist_ok=True)
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("SETTINGS_FILE", raising=False)
    monkeypatch.delenv("TITLE_AUTOMATION_CLIENT_SECRET", raising=False)
    return tmp_path


@pytest.fixture()
def layout(temp_workspace: Path) -> TitleLayout:
    return TitleLayout(
        managed_titles_dir=temp_workspace / "data" / "managed_titles",
        cache_dir=temp_workspace / "data" / "cache",
    )


@pytest.fixture()
def chrome_results() -> ProcessedAppResults:
    return ProcessedAppResults(
        label_name="chrome",
        tracking_id="abc123",
        display_name="Google Chrome",
        version_expected="120.0",
        version_actual="120.0",
        deployment_type=DeploymentType.PKG,
        deployment_arch=DeploymentArch.ARM64,
    )


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
