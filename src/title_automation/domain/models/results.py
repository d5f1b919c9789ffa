from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from title_automation.domain.models.remote_app_info import RemoteAppInfo


class ScriptStatus(StrEnum):
    SUCCEEDED = "succeeded"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclass(frozen=True, slots=True)
class ScriptResult:
    status: ScriptStatus
    exit_code: int | None
    output: str

    @property
    def succeeded(self) -> bool:
        return self.status is ScriptStatus.SUCCEEDED


@dataclass(frozen=True, slots=True)
class UploadConfirmation:
    timed_out: bool
    entries: tuple[RemoteAppInfo, ...]
    attempts: int


class RemovalStatus(StrEnum):
    SUCCEEDED = "succeeded"
    PARTIAL_FAILURE = "partial_failure"
    FATAL_ERROR = "fatal_error"
    SKIPPED = "skipped"


class RemovalStage(StrEnum):
    REGENERATE = "regenerate"
    EXTRACT = "extract"
    AUTHENTICATE = "authenticate"
    QUERY = "query"


@dataclass(frozen=True, slots=True)
class RemovalOutcome:
    folder_name: str
    status: RemovalStatus
    stage: RemovalStage | None = None
    cause: str = ""
    deleted_ids: tuple[str, ...] = ()
    failed_ids: tuple[str, ...] = ()
    marker_removed: bool = False

    @property
    def attempted(self) -> int:
        return len(self.deleted_ids) + len(self.failed_ids)


@dataclass(frozen=True, slots=True)
class FinalizeResult:
    confirmed: bool
    skipped: bool = False
    entries: tuple[RemoteAppInfo, ...] = ()
    unassigned_ids: tuple[str, ...] = ()
    pruned_ids: tuple[str, ...] = ()
    cleanup_failed: bool = False
    tmp_cleaned: bool = False


@dataclass(frozen=True, slots=True)
class QueueResult:
    processed: int
    succeeded: int
    failed: int
    skipped: int

    @property
    def has_changes(self) -> bool:
        return bool(self.processed or self.skipped)
