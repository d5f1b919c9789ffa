from title_automation.domain.workflows.confirm_upload import ConfirmUpload, is_version_uploaded
from title_automation.domain.workflows.finalize_upload import FinalizeUpload, retained_count
from title_automation.domain.workflows.process_removal_queue import ProcessRemovalQueue
from title_automation.domain.workflows.remove_automation import RemoveAutomation

__all__ = [
    "ConfirmUpload",
    "FinalizeUpload",
    "ProcessRemovalQueue",
    "RemoveAutomation",
    "is_version_uploaded",
    "retained_count",
]
