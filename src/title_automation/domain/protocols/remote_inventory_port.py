from __future__ import annotations

from typing import Protocol

from title_automation.domain.models.remote_app_info import RemoteAppInfo


class RemoteInventoryQueryPort(Protocol):
    def find_apps_by_tracking_id(self, token: str, tracking_id: str) -> list[RemoteAppInfo]: ...


class RemoteInventoryPort(RemoteInventoryQueryPort, Protocol):
    def delete_app(self, token: str, app_id: str) -> None: ...

    def remove_all_assignments(self, token: str, app_id: str) -> None: ...
