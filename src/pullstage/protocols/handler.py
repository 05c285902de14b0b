"""Downstream handler protocol definitions."""

from typing import Protocol, runtime_checkable

from pullstage.models.message import Message


@runtime_checkable
class MessageHandler(Protocol):
    """
    Protocol for the consumer that receives emitted messages.

    Handlers receive batches on the producer's fetch thread and are
    responsible for:
    - Processing (or handing off) the messages
    - Acknowledging successful ones through the producer
    """

    def handle_messages(self, messages: list[Message]) -> None:
        """
        Process a batch of messages.

        Args:
            messages: Non-empty batch, each carrying an AckHandle

        Note:
            Exceptions are logged by the producer. The batch still counts
            against demand and is not acknowledged, so the queue will
            redeliver it.
        """
        ...
