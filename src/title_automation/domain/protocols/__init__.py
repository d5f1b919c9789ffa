from title_automation.domain.protocols.label_script_port import LabelScriptPort
from title_automation.domain.protocols.remote_inventory_port import (
    RemoteInventoryPort,
    RemoteInventoryQueryPort,
)
from title_automation.domain.protocols.scheduler_port import SchedulerPort
from title_automation.domain.protocols.title_metadata_port import TitleMetadataPort
from title_automation.domain.protocols.token_provider_port import TokenProviderPort
from title_automation.domain.protocols.upload_marker_port import UploadMarkerPort

__all__ = [
    "LabelScriptPort",
    "RemoteInventoryPort",
    "RemoteInventoryQueryPort",
    "SchedulerPort",
    "TitleMetadataPort",
    "TokenProviderPort",
    "UploadMarkerPort",
]
