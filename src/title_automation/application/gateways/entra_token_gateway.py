from __future__ import annotations

import json
import threading
import time
import urllib.error
import urllib.parse
import urllib.request
from http.client import HTTPResponse
from typing import Callable, ClassVar, cast, final, override

from title_automation.domain.models.errors import AuthenticationError
from title_automation.domain.protocols.token_provider_port import TokenProviderPort


@final
class EntraTokenGateway(TokenProviderPort):
    _SCOPE: ClassVar[str] = "https://graph.microsoft.com/.default"
    TOKEN_LIFETIME_SECONDS: ClassVar[float] = 3500.0

    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        authority: str = "https://login.microsoftonline.com",
        timeout_seconds: int = 30,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._tenant_id = str(tenant_id or "").strip()
        self._client_id = str(client_id or "").strip()
        self._client_secret = str(client_secret or "").strip()
        self._authority = authority.rstrip("/")
        self._timeout_seconds = max(1, int(timeout_seconds))
        self._clock = clock
        self._lock = threading.Lock()
        self._token: str | None = None
        self._expires_at = 0.0

    def _token_url(self) -> str:
        tenant = urllib.parse.quote(self._tenant_id, safe="")
        return f"{self._authority}/{tenant}/oauth2/v2.0/token"

    def _request_token(self) -> str:
        if not self._tenant_id or not self._client_id or not self._client_secret:
            raise AuthenticationError("Tenant id, application id and client secret are required")

        body = urllib.parse.urlencode(
            {
                "client_id": self._client_id,
                "scope": self._SCOPE,
                "client_secret": self._client_secret,
                "grant_type": "client_credentials",
            }
        ).encode("utf-8")
        request = urllib.request.Request(
            self._token_url(),
            data=body,
            method="POST",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        try:
            response_obj = cast(
                HTTPResponse,
                urllib.request.urlopen(request, timeout=self._timeout_seconds),
            )
            with response_obj as response:
                payload = response.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            raise AuthenticationError(f"Token request failed with HTTP {exc.code}") from exc
        except (urllib.error.URLError, OSError) as exc:
            raise AuthenticationError(f"Token request failed: {exc}") from exc

        try:
            document = json.loads(payload)
        except ValueError as exc:
            raise AuthenticationError(f"Invalid token response: {exc}") from exc

        token = document.get("access_token") if isinstance(document, dict) else None
        if not isinstance(token, str) or not token:
            raise AuthenticationError("Token response has no access_token")
        return token

    @override
    def get_token(self) -> str:
        with self._lock:
            now = self._clock()
            if self._token is not None and now < self._expires_at:
                return self._token
            token = self._request_token()
            self._token = token
            self._expires_at = now + self.TOKEN_LIFETIME_SECONDS
            return token

    def invalidate(self) -> None:
        with self._lock:
            self._token = None
            self._expires_at = 0.0
