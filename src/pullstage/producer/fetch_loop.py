"""Demand-driven fetch state machine."""

import logging
from typing import Any, Callable, Optional

from pullstage.models.message import Message

logger = logging.getLogger(__name__)

Receive = Callable[[int], list[Message]]
Schedule = Callable[[int], Any]


class FetchLoop:
    """
    Tracks downstream demand and decides when to pull.

    The loop is idle (no timer, no demand), awaiting a timer, or servicing
    demand. It is not thread safe: the producer drives it from a single
    thread. Pulls go through `receive`; wake-ups are requested through
    `schedule(delay_ms)`, whose return value is kept as the pending timer
    until on_timer() is called.

    After servicing:
    - demand fully met: idle, no timer
    - short but non-empty batch: re-poll with zero delay
    - empty batch or failure: re-poll after `receive_interval` ms
    """

    def __init__(self, receive: Receive, schedule: Schedule, receive_interval: int):
        self._receive = receive
        self._schedule = schedule
        self.receive_interval = receive_interval
        self.demand = 0
        self.receive_timer: Optional[Any] = None

    @property
    def idle(self) -> bool:
        return self.receive_timer is None and self.demand == 0

    def on_demand(self, incoming: int) -> list[Message]:
        """
        Add downstream demand and service it if no timer is pending.

        Args:
            incoming: Number of additional messages wanted (>= 1)

        Returns:
            Messages to emit downstream
        """
        if isinstance(incoming, bool) or not isinstance(incoming, int) or incoming < 1:
            raise ValueError(f"demand must be a positive integer, got: {incoming!r}")
        self.demand += incoming
        return self.service()

    def on_timer(self) -> list[Message]:
        """Handle a scheduled wake-up."""
        self.receive_timer = None
        return self.service()

    def service(self) -> list[Message]:
        """
        Pull for the outstanding demand.

        A no-op while a timer is pending or when there is no demand, which
        keeps at most one pull in flight.
        """
        if self.receive_timer is not None or self.demand <= 0:
            return []

        messages = self._pull(self.demand)
        if len(messages) > self.demand:
            logger.warning(
                "Client returned %d messages for a demand of %d; leaving %d for redelivery",
                len(messages),
                self.demand,
                len(messages) - self.demand,
            )
            messages = messages[: self.demand]

        self.demand -= len(messages)

        if not messages:
            logger.debug("No messages received, retrying in %d ms", self.receive_interval)
            self.receive_timer = self._schedule(self.receive_interval)
        elif self.demand > 0:
            logger.debug("Short batch of %d, %d still demanded", len(messages), self.demand)
            self.receive_timer = self._schedule(0)

        return messages

    def _pull(self, demand: int) -> list[Message]:
        try:
            return list(self._receive(demand))
        except Exception:
            # Wire clients log and return [] themselves; this covers ones that raise.
            logger.exception("Receiving messages failed; treating as an empty batch")
            return []
