"""Credential policies for the Cloud Pub/Sub REST client."""

import logging
import threading
import time
from typing import Optional

import httpx

from pullstage.exceptions import TokenError

logger = logging.getLogger(__name__)

METADATA_HOST = "metadata.google.internal"
TOKEN_PATH = "/computeMetadata/v1/instance/service-accounts/default/token"


class StaticToken:
    """Token provider that always returns the same token (emulators, tests)."""

    def __init__(self, value: str):
        self._value = value

    def token(self, scope: str) -> str:
        return self._value

    def __repr__(self) -> str:
        return "StaticToken(<redacted>)"


class MetadataServerToken:
    """
    Token provider backed by the GCE/GKE metadata server.

    Tokens are cached per scope until `leeway` seconds before they expire.
    The HTTP client is created on first use, so constructing the provider
    performs no network activity.
    """

    def __init__(
        self,
        http_client: Optional[httpx.Client] = None,
        host: str = METADATA_HOST,
        timeout: float = 5.0,
        leeway: float = 60.0,
    ):
        self._http = http_client
        self._host = host
        self._timeout = timeout
        self._leeway = leeway
        self._cache: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def token(self, scope: str) -> str:
        with self._lock:
            cached = self._cache.get(scope)
            if cached is not None and cached[1] > time.monotonic():
                return cached[0]

            access_token, expires_in = self._fetch(scope)
            self._cache[scope] = (access_token, time.monotonic() + expires_in - self._leeway)
            return access_token

    def _fetch(self, scope: str) -> tuple[str, float]:
        if self._http is None:
            self._http = httpx.Client(timeout=self._timeout)

        try:
            response = self._http.get(
                f"http://{self._host}{TOKEN_PATH}",
                params={"scopes": scope},
                headers={"Metadata-Flavor": "Google"},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise TokenError(f"unable to fetch access token from metadata server: {exc}") from exc

        try:
            return payload["access_token"], float(payload.get("expires_in", 0))
        except (KeyError, TypeError, ValueError) as exc:
            raise TokenError(f"unexpected token payload from metadata server: {exc}") from exc

    def __repr__(self) -> str:
        return f"MetadataServerToken(host={self._host!r})"
