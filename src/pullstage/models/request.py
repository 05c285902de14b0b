"""Request bodies sent to the queue service."""

from typing import Optional

from pydantic import Field

from pullstage.models.base import CamelCaseModel


class PullRequest(CamelCaseModel):
    """Body of a subscriptions.pull call."""

    max_messages: int = Field(ge=1)
    return_immediately: Optional[bool] = None

    def capped(self, demand: int) -> "PullRequest":
        """Return a copy asking for no more than demand messages."""
        return self.model_copy(update={"max_messages": min(demand, self.max_messages)})

    def to_body(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


class AcknowledgeRequest(CamelCaseModel):
    """Body of a subscriptions.acknowledge call."""

    ack_ids: list[str]
