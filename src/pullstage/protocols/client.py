"""Wire client protocol definitions."""

from typing import TYPE_CHECKING, Any, Iterable, Protocol, runtime_checkable

from pullstage.models.message import AckHandle, Message

if TYPE_CHECKING:
    from pullstage.config import ProducerOptions


@runtime_checkable
class WireClient(Protocol):
    """
    Protocol for the client that talks to the remote queue.

    The producer calls init() once, then receive_messages() from its fetch
    thread. acknowledge() may be called concurrently from any thread.
    Implementations never raise from receive_messages() or acknowledge():
    failures are logged and reported as "no messages" or dropped.

    Two further methods are optional and looked up with getattr():
    - close(): release transport resources, called once by Producer.stop()
    - flush(): run pending transport I/O, called from the fetch thread
      whenever it has been idle for Producer.idle_flush_interval seconds
    """

    def init(self, options: "ProducerOptions") -> Any:
        """
        Validate client options and register the consumer configuration.

        Args:
            options: Validated producer options

        Returns:
            Opaque client state passed back to receive_messages()

        Raises:
            ConfigurationError: if the options are unusable for this client
        """
        ...

    def receive_messages(self, demand: int, state: Any) -> list[Message]:
        """
        Pull up to demand messages.

        Args:
            demand: Number of messages wanted downstream (>= 1)
            state: Value returned by init()

        Returns:
            Received messages, empty on any failure
        """
        ...

    def acknowledge(self, handles: Iterable[AckHandle]) -> None:
        """Acknowledge the given deliveries. Best-effort."""
        ...
