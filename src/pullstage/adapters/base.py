"""Shared pull/acknowledge logic for wire clients."""

import abc
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from pullstage.config import ConsumerConfig, ProducerOptions, Subscription
from pullstage.exceptions import TransportError
from pullstage.models.message import AckHandle, Message
from pullstage.models.request import PullRequest
from pullstage.models.response import ReceivedMessage
from pullstage.registry import AckRegistry, default_registry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClientState:
    """State returned by PullClient.init() and passed to every pull."""

    subscription: Subscription
    pull_request: PullRequest
    registry_key: str


class PullClient(abc.ABC):
    """
    Base class implementing the WireClient protocol.

    Subclasses only provide the two transport calls, _pull() and
    _acknowledge(), and raise TransportError when they fail. Everything
    else lives here:
    - Registering the consumer configuration under a registry key
    - Capping each pull at the current demand
    - Wrapping deliveries into Messages carrying an AckHandle
    - Grouping acknowledgements by registry key

    Delivery is at-least-once: failed pulls are reported as empty batches
    and failed acknowledgements are logged and dropped, leaving the queue's
    redelivery to recover.
    """

    service_name = "the queue service"

    def __init__(self, registry: Optional[AckRegistry] = None):
        self.registry = registry if registry is not None else default_registry
        self._registry_keys: list[str] = []

    def init(self, options: ProducerOptions) -> ClientState:
        key = self.registry.put(options.consumer_config())
        self._registry_keys.append(key)
        return ClientState(
            subscription=options.subscription,
            pull_request=options.pull_request(),
            registry_key=key,
        )

    def receive_messages(self, demand: int, state: ClientState) -> list[Message]:
        pull_request = state.pull_request.capped(demand)
        config = self.registry.get(state.registry_key)

        try:
            received = self._pull(config, pull_request)
        except TransportError as exc:
            logger.error("Unable to fetch events from %s. Reason: %s", self.service_name, exc)
            return []
        except Exception:
            logger.exception("Unable to fetch events from %s", self.service_name)
            return []

        return [self._wrap(item, state.registry_key) for item in received]

    def acknowledge(self, handles: Iterable[AckHandle]) -> None:
        groups: dict[str, list[str]] = {}
        for handle in handles:
            groups.setdefault(handle.registry_key, []).append(handle.ack_id)

        for key, ack_ids in groups.items():
            config = self.registry.get(key)
            # At-least-once: the queue redelivers whatever we fail to ack.
            try:
                self._acknowledge(config, ack_ids)
            except TransportError as exc:
                logger.error(
                    "Unable to acknowledge messages with %s. Reason: %s", self.service_name, exc
                )
            except Exception:
                logger.exception("Unable to acknowledge messages with %s", self.service_name)

    def flush(self) -> None:
        """Run pending transport I/O. Nothing to do for request/response transports."""

    def close(self) -> None:
        """Release the registry entries this client created."""
        while self._registry_keys:
            self.registry.release(self._registry_keys.pop())

    @staticmethod
    def _wrap(received: ReceivedMessage, registry_key: str) -> Message:
        return Message(
            data=received.message.data,
            acknowledger=AckHandle(registry_key=registry_key, ack_id=received.ack_id),
            message_id=received.message.message_id,
            attributes=dict(received.message.attributes),
            publish_time=received.message.publish_time,
        )

    @abc.abstractmethod
    def _pull(self, config: ConsumerConfig, pull_request: PullRequest) -> list[ReceivedMessage]:
        """
        Perform one pull call.

        Raises:
            TransportError: if the call failed
        """

    @abc.abstractmethod
    def _acknowledge(self, config: ConsumerConfig, ack_ids: list[str]) -> None:
        """
        Acknowledge the given ack ids.

        Raises:
            TransportError: if the call failed
        """
