from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from http.client import HTTPResponse
from typing import Callable, ClassVar, cast, final, override

from title_automation.domain.models.errors import GraphApiError
from title_automation.domain.models.remote_app_info import RemoteAppInfo
from title_automation.domain.protocols.remote_inventory_port import RemoteInventoryPort


@final
class GraphInventoryGateway(RemoteInventoryPort):
    _APP_TYPES: ClassVar[tuple[str, ...]] = (
        "microsoft.graph.macOSDmgApp",
        "microsoft.graph.macOSPkgApp",
        "microsoft.graph.macOSLobApp",
    )

    def __init__(
        self,
        logger: logging.Logger,
        base_url: str = "https://graph.microsoft.com/beta/deviceAppManagement/mobileApps",
        timeout_seconds: int = 30,
        on_unauthorized: Callable[[], None] | None = None,
    ) -> None:
        self._logger = logger
        self._on_unauthorized = on_unauthorized
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = max(1, int(timeout_seconds))

    @classmethod
    def tracking_filter(cls, tracking_id: str) -> str:
        types = " or ".join(f"isof('{name}')" for name in cls._APP_TYPES)
        escaped = str(tracking_id or "").replace("'", "''")
        return f"({types}) and endswith(notes,'{escaped}')"

    def _request(self, method: str, url: str, token: str) -> bytes:
        headers = {"Authorization": f"Bearer {token}"}
        if method == "GET":
            headers["Accept"] = "application/json"
        request = urllib.request.Request(url, method=method, headers=headers)

        try:
            response_obj = cast(
                HTTPResponse,
                urllib.request.urlopen(request, timeout=self._timeout_seconds),
            )
            with response_obj as response:
                status = int(response.status)
                payload = response.read()
        except urllib.error.HTTPError as exc:
            if exc.code == 401 and self._on_unauthorized is not None:
                # Next get_token() fetches a fresh token.
                self._logger.warning("Graph rejected the token for %s %s", method, url)
                self._on_unauthorized()
            raise GraphApiError(f"{method} {url} failed: {exc.reason}", status=exc.code) from exc
        except (urllib.error.URLError, OSError) as exc:
            raise GraphApiError(f"{method} {url} failed: {exc}") from exc

        if not 200 <= status < 300:
            raise GraphApiError(f"{method} {url} returned an unexpected status", status=status)
        return payload

    def _get_json(self, url: str, token: str) -> dict[str, object]:
        payload = self._request("GET", url, token)
        try:
            decoded = json.loads(payload.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as exc:
            raise GraphApiError(f"Invalid JSON from {url}: {exc}") from exc
        if not isinstance(decoded, dict):
            raise GraphApiError(f"Unexpected payload from {url}")
        return cast(dict[str, object], decoded)

    @staticmethod
    def _items(document: dict[str, object]) -> list[dict[str, object]]:
        value = document.get("value")
        if not isinstance(value, list):
            raise GraphApiError("Graph response has no value list")
        return [cast(dict[str, object], item) for item in value if isinstance(item, dict)]

    @override
    def find_apps_by_tracking_id(self, token: str, tracking_id: str) -> list[RemoteAppInfo]:
        query = urllib.parse.quote(self.tracking_filter(tracking_id), safe="(),'")
        url: str | None = f"{self._base_url}?$filter={query}"

        apps: list[RemoteAppInfo] = []
        while url:
            document = self._get_json(url, token)
            for item in self._items(document):
                try:
                    apps.append(RemoteAppInfo.from_graph(item))
                except ValueError as exc:
                    raise GraphApiError(f"Malformed mobileApp entry: {exc}") from exc
            next_link = document.get("@odata.nextLink")
            url = next_link if isinstance(next_link, str) and next_link else None
        return apps

    @override
    def remove_all_assignments(self, token: str, app_id: str) -> None:
        app_url = f"{self._base_url}/{urllib.parse.quote(app_id, safe='')}"
        document = self._get_json(f"{app_url}/assignments", token)
        for assignment in self._items(document):
            assignment_id = str(assignment.get("id") or "").strip()
            if not assignment_id:
                continue
            _ = self._request(
                "DELETE",
                f"{app_url}/assignments/{urllib.parse.quote(assignment_id, safe='')}",
                token,
            )
            self._logger.info("Removed assignment %s from app %s", assignment_id, app_id)
        self._logger.info("All assignments removed for app %s", app_id)

    @override
    def delete_app(self, token: str, app_id: str) -> None:
        self.remove_all_assignments(token, app_id)
        _ = self._request(
            "DELETE",
            f"{self._base_url}/{urllib.parse.quote(app_id, safe='')}",
            token,
        )
        self._logger.info("App deleted: %s", app_id)
