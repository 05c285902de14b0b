"""Messages emitted downstream and the handles used to acknowledge them."""

from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True)
class AckHandle:
    """
    Opaque acknowledgement state attached to every emitted message.

    registry_key resolves, through the AckRegistry, to the subscription and
    credential policy of the producer that fetched the message. ack_id is the
    token the queue assigned to this particular delivery.
    """

    registry_key: str
    ack_id: str


@dataclass(frozen=True)
class Message:
    """Message handed to the downstream handler."""

    data: bytes
    acknowledger: AckHandle
    message_id: Optional[str] = None
    attributes: dict[str, str] = field(default_factory=dict, hash=False)
    publish_time: Optional[str] = None
