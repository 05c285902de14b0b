"""Cloud Pub/Sub REST client implementing the WireClient protocol."""

import threading
from typing import Optional

import httpx
from pydantic import ValidationError

from pullstage.adapters.base import PullClient
from pullstage.config import ConsumerConfig
from pullstage.exceptions import TransportError
from pullstage.models.request import AcknowledgeRequest, PullRequest
from pullstage.models.response import PullResponse, ReceivedMessage
from pullstage.registry import AckRegistry

DEFAULT_BASE_URL = "https://pubsub.googleapis.com"
DEFAULT_TIMEOUT = 30.0


class GoogleApiClient(PullClient):
    """
    Default client, talking to the Cloud Pub/Sub v1 REST API.

    Every call asks the configuration's token provider for a bearer token,
    so token refresh is the provider's concern. The httpx client is created
    lazily unless one is injected.
    """

    service_name = "Cloud Pub/Sub"

    def __init__(
        self,
        http_client: Optional[httpx.Client] = None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        registry: Optional[AckRegistry] = None,
    ):
        super().__init__(registry)
        self._http = http_client
        self._owns_http = http_client is None
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._http_lock = threading.Lock()

    def _pull(self, config: ConsumerConfig, pull_request: PullRequest) -> list[ReceivedMessage]:
        payload = self._post(config, "pull", pull_request.to_body())
        try:
            return PullResponse.model_validate(payload).received_messages
        except ValidationError as exc:
            raise TransportError(f"unexpected pull response: {exc}") from exc

    def _acknowledge(self, config: ConsumerConfig, ack_ids: list[str]) -> None:
        body = AcknowledgeRequest(ack_ids=ack_ids).model_dump(by_alias=True)
        self._post(config, "acknowledge", body)

    def _post(self, config: ConsumerConfig, method: str, body: dict) -> dict:
        # Token failures surface as TokenError, a TransportError.
        token = config.token.provider.token(config.token.scope)
        url = f"{self._base_url}/v1/{config.subscription.path}:{method}"

        try:
            response = self._client().post(
                url,
                json=body,
                headers={"Authorization": f"Bearer {token}"},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"http status {exc.response.status_code} for {exc.request.url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} failed for {url}: {exc}") from exc

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(f"{method} returned invalid JSON: {exc}") from exc

    def _client(self) -> httpx.Client:
        # Pulls and acknowledgements run on different threads
        with self._http_lock:
            if self._http is None:
                self._http = httpx.Client(timeout=self._timeout)
            return self._http

    def close(self) -> None:
        super().close()
        with self._http_lock:
            if self._owns_http and self._http is not None:
                self._http.close()
                self._http = None
