"""Producer that pulls messages on demand and acknowledges them later."""

import logging
import queue
import threading
from typing import Any, Iterable, Optional

from pullstage.config import ProducerOptions
from pullstage.exceptions import ConfigurationError, UnknownRegistryKey
from pullstage.models.message import AckHandle, Message
from pullstage.producer.fetch_loop import FetchLoop
from pullstage.protocols.handler import MessageHandler

logger = logging.getLogger(__name__)

_DEMAND = "demand"
_RECEIVE = "receive"
_STOP = "stop"


class _ImmediateReceive:
    """Timer token for a zero-delay re-poll already sitting in the event queue."""

    def cancel(self) -> None:
        pass


class Producer:
    """
    Continuously pulls messages from a subscription and hands them downstream.

    Responsibilities:
    - Validate options and initialize the wire client
    - Serialize demand and timer events through one fetch thread
    - Deliver received batches to the handler
    - Acknowledge processed messages, from any thread

    Options:
        subscription: Required. "projects/<project>/subscriptions/<subscription>"
        max_number_of_messages: Maximum messages per pull. Default 10.
        return_immediately: Ask the service not to wait for messages. Default unset.
        receive_interval: Milliseconds to wait after an empty pull. Default 5000.
        client: WireClient implementation. Default GoogleApiClient().
        token_provider: TokenProvider implementation. Default MetadataServerToken().
        scope: OAuth2 scope for the token. Default the Pub/Sub scope.

    Example:
        producer = Producer(handler, subscription="projects/my-project/subscriptions/my-sub")
        producer.start()
        producer.demand(10)
    """

    # Seconds the fetch thread waits for an event before calling client.flush()
    idle_flush_interval = 1.0

    def __init__(self, handler: MessageHandler, **options: Any):
        """
        Initialize the producer.

        Args:
            handler: Downstream handler implementing MessageHandler protocol
            **options: Producer options, see class docstring

        Raises:
            ConfigurationError: if any option is invalid; nothing is started
        """
        self.handler = handler
        self.options = ProducerOptions.from_kwargs(**options)
        self.client = self.options.client

        try:
            self.client_state = self.client.init(self.options)
        except ConfigurationError as exc:
            raise ConfigurationError(
                f"invalid options given to {type(self.client).__name__}.init: {exc}"
            ) from exc

        self._events: queue.SimpleQueue = queue.SimpleQueue()
        self._loop = FetchLoop(
            receive=self._receive,
            schedule=self._schedule,
            receive_interval=self.options.receive_interval,
        )
        self._thread: Optional[threading.Thread] = None
        self._stopping = threading.Event()
        self._stop_lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stopping.is_set()

    def start(self) -> None:
        """Start the fetch thread."""
        if self._stopping.is_set():
            raise RuntimeError("producer has been stopped")
        if self._thread is not None:
            return

        self._thread = threading.Thread(
            target=self._run,
            name=f"pullstage-{self.options.subscription.subscription_id}",
            daemon=True,
        )
        self._thread.start()
        logger.info("Producer started for %s", self.options.subscription)

    def demand(self, count: int) -> None:
        """
        Ask for `count` more messages.

        Safe to call from any thread; the request is queued for the fetch
        thread.
        """
        if isinstance(count, bool) or not isinstance(count, int) or count < 1:
            raise ValueError(f"demand must be a positive integer, got: {count!r}")
        if self._stopping.is_set():
            logger.debug("Producer stopped, ignoring demand for %d message(s)", count)
            return
        self._events.put((_DEMAND, count))

    def acknowledge(self, handles: Iterable[AckHandle]) -> None:
        """
        Acknowledge deliveries on the calling thread.

        Never waits on the fetch thread. After stop() this is a no-op and
        the queue will redeliver the messages.
        """
        handles = list(handles)
        if not handles:
            return
        if self._stopping.is_set():
            logger.debug("Producer stopped, dropping %d acknowledgement(s)", len(handles))
            return

        try:
            self.client.acknowledge(handles)
        except UnknownRegistryKey:
            # stop() released the entry while we were acknowledging
            if not self._stopping.is_set():
                raise
            logger.debug("Producer stopped, dropping %d acknowledgement(s)", len(handles))

    def ack(self, successful: Iterable[Message], failed: Iterable[Message] = ()) -> None:
        """Acknowledge successful messages; failed ones are left for redelivery."""
        failed = list(failed)
        if failed:
            logger.debug("Leaving %d failed message(s) for redelivery", len(failed))
        self.acknowledge(message.acknowledger for message in successful)

    def stop(self, timeout: Optional[float] = 30.0) -> None:
        """
        Stop fetching, cancel the pending timer and release resources.

        Idempotent. Waits up to `timeout` seconds for an in-flight pull.
        May be called from the handler; the fetch thread then exits once
        the current batch has been handled.
        """
        with self._stop_lock:
            if self._stopping.is_set():
                return
            self._stopping.set()

        self._events.put((_STOP, None))
        try:
            if self._thread is None:
                self._cancel_timer()
            elif self._thread is not threading.current_thread():
                self._thread.join(timeout)
                if self._thread.is_alive():
                    logger.warning("Fetch thread did not exit within %s seconds", timeout)
        finally:
            # Closing the client also releases its registry entry.
            close = getattr(self.client, "close", None)
            if close is not None:
                close()
            logger.info("Producer stopped for %s", self.options.subscription)

    def _run(self) -> None:
        while True:
            try:
                event, value = self._events.get(timeout=self.idle_flush_interval)
            except queue.Empty:
                if not self._stopping.is_set():
                    self._flush()
                continue

            if event == _STOP:
                self._cancel_timer()
                return
            if self._stopping.is_set():
                continue

            if event == _DEMAND:
                messages = self._loop.on_demand(value)
            else:
                messages = self._loop.on_timer()

            if messages:
                self._dispatch(messages)

    def _dispatch(self, messages: list[Message]) -> None:
        try:
            self.handler.handle_messages(messages)
        except Exception:
            logger.exception("Handler failed on a batch of %d message(s)", len(messages))

    def _flush(self) -> None:
        flush = getattr(self.client, "flush", None)
        if flush is None:
            return
        try:
            flush()
        except Exception:
            logger.exception("Client failed to flush pending I/O")

    def _receive(self, demand: int) -> list[Message]:
        return self.client.receive_messages(demand, self.client_state)

    def _schedule(self, delay_ms: int) -> Any:
        if delay_ms <= 0:
            self._events.put((_RECEIVE, None))
            return _ImmediateReceive()

        timer = threading.Timer(delay_ms / 1000, self._events.put, args=((_RECEIVE, None),))
        timer.daemon = True
        timer.start()
        return timer

    def _cancel_timer(self) -> None:
        if self._loop.receive_timer is not None:
            self._loop.receive_timer.cancel()
            self._loop.receive_timer = None
