"""Response models matching the Cloud Pub/Sub pull payload."""

import base64
import binascii
from typing import Any, Optional

from pydantic import Field, field_validator

from pullstage.models.base import CamelCaseModel


class PubsubMessage(CamelCaseModel):
    """Message payload as delivered by the queue."""

    data: bytes = b""
    message_id: Optional[str] = None
    attributes: dict[str, str] = Field(default_factory=dict)
    publish_time: Optional[str] = None
    ordering_key: Optional[str] = None

    @field_validator("data", mode="before")
    @classmethod
    def decode_data(cls, value: Any) -> Any:
        # The REST API sends base64 text; AMQP bodies arrive as raw bytes.
        if isinstance(value, str):
            try:
                return base64.b64decode(value, validate=True)
            except binascii.Error as exc:
                raise ValueError(f"message data is not valid base64: {exc}") from exc
        return value


class ReceivedMessage(CamelCaseModel):
    """A message together with the token needed to acknowledge it."""

    ack_id: str
    message: PubsubMessage
    delivery_attempt: Optional[int] = None


class PullResponse(CamelCaseModel):
    """Pull response; an absent receivedMessages key means no messages."""

    received_messages: list[ReceivedMessage] = Field(default_factory=list)
