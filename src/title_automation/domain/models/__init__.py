from title_automation.domain.models.app_config import AppConfig, RuntimePaths
from title_automation.domain.models.errors import (
    AuthenticationError,
    GraphApiError,
    TitleMetadataError,
)
from title_automation.domain.models.processed_app_results import (
    DeploymentArch,
    DeploymentType,
    ProcessedAppResults,
)
from title_automation.domain.models.remote_app_info import RemoteAppInfo
from title_automation.domain.models.results import (
    FinalizeResult,
    QueueResult,
    RemovalOutcome,
    RemovalStage,
    RemovalStatus,
    ScriptResult,
    ScriptStatus,
    UploadConfirmation,
)
from title_automation.domain.models.title_layout import TitleLayout

__all__ = [
    "AppConfig",
    "AuthenticationError",
    "DeploymentArch",
    "DeploymentType",
    "FinalizeResult",
    "GraphApiError",
    "ProcessedAppResults",
    "QueueResult",
    "RemoteAppInfo",
    "RemovalOutcome",
    "RemovalStage",
    "RemovalStatus",
    "RuntimePaths",
    "ScriptResult",
    "ScriptStatus",
    "TitleLayout",
    "TitleMetadataError",
    "UploadConfirmation",
]
