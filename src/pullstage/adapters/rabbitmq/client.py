"""RabbitMQ client implementing the WireClient protocol."""

import functools
import logging
from typing import Optional

import pika
import pika.exceptions
from pika.adapters.blocking_connection import BlockingChannel

from pullstage.adapters.base import PullClient
from pullstage.config import ConsumerConfig
from pullstage.exceptions import TransportError
from pullstage.models.request import PullRequest
from pullstage.models.response import PubsubMessage, ReceivedMessage
from pullstage.registry import AckRegistry

logger = logging.getLogger(__name__)


class RabbitMQClient(PullClient):
    """
    RabbitMQ client implementing the WireClient protocol.

    The queue name is the subscription id of
    "projects/<vhost-or-project>/subscriptions/<queue>". The delivery tag
    is the ack id. Credentials live in the pika connection, so the token
    provider is never consulted and return_immediately is ignored:
    each pull waits at most `timeout` seconds of inactivity.

    BlockingConnection is not thread safe: acknowledgements are scheduled
    with add_callback_threadsafe() and go out the next time the connection
    processes I/O: during a pull, on flush() while the producer is idle, or
    on close().
    """

    service_name = "RabbitMQ"

    def __init__(
        self,
        connection: pika.BlockingConnection,
        timeout: float = 1.0,
        registry: Optional[AckRegistry] = None,
    ):
        super().__init__(registry)
        self._connection = connection
        self._channel: BlockingChannel = connection.channel()
        self._timeout = timeout

    def _pull(self, config: ConsumerConfig, pull_request: PullRequest) -> list[ReceivedMessage]:
        queue = config.subscription.subscription_id
        received_messages: list[ReceivedMessage] = []
        try:
            for method, properties, body in self._channel.consume(
                queue=queue,
                auto_ack=False,
                inactivity_timeout=self._timeout,
            ):
                if method is None:
                    # Timeout reached, no more messages available
                    break

                received_messages.append(
                    ReceivedMessage(
                        ack_id=str(method.delivery_tag),
                        message=PubsubMessage(
                            data=body,
                            message_id=properties.message_id,
                            attributes={k: str(v) for k, v in (properties.headers or {}).items()},
                        ),
                    )
                )
                if len(received_messages) >= pull_request.max_messages:
                    break

            # Cancel consumer to allow reuse; prefetched deliveries are requeued
            self._channel.cancel()
        except pika.exceptions.AMQPError as exc:
            raise TransportError(f"consume from {queue!r} failed: {exc!r}") from exc

        return received_messages

    def _acknowledge(self, config: ConsumerConfig, ack_ids: list[str]) -> None:
        try:
            for ack_id in ack_ids:
                self._connection.add_callback_threadsafe(
                    functools.partial(self._channel.basic_ack, delivery_tag=int(ack_id))
                )
        except pika.exceptions.AMQPError as exc:
            raise TransportError(f"acknowledge failed: {exc!r}") from exc

    def flush(self) -> None:
        """Send queued acknowledgements and heartbeats. Called from the fetch thread."""
        try:
            if self._connection.is_open:
                self._connection.process_data_events(time_limit=0)
        except pika.exceptions.AMQPError as exc:
            logger.error("Unable to process RabbitMQ events. Reason: %r", exc)

    def close(self) -> None:
        super().close()
        try:
            if self._connection.is_open:
                # Runs acknowledgements still queued by add_callback_threadsafe()
                self._connection.process_data_events(time_limit=0)
            if self._channel.is_open:
                self._channel.close()
        except pika.exceptions.AMQPError as exc:
            logger.warning("Error while closing RabbitMQ channel: %r", exc)
