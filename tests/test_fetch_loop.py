"""Tests for FetchLoop."""

from unittest.mock import Mock

import pytest

from pullstage.models.message import AckHandle, Message
from pullstage.producer.fetch_loop import FetchLoop

RECEIVE_INTERVAL = 5000


def make_messages(count, key="key"):
    return [
        Message(data=f"m{i}".encode(), acknowledger=AckHandle(registry_key=key, ack_id=str(i)))
        for i in range(count)
    ]


class TestFetchLoop:
    """Test FetchLoop state machine."""

    @pytest.fixture
    def receive(self):
        """Create a mock receive callable returning no messages."""
        return Mock(return_value=[])

    @pytest.fixture
    def schedule(self):
        """Create a mock scheduler returning a distinct timer token per call."""
        return Mock(side_effect=lambda delay: Mock(name=f"timer-{delay}"))

    @pytest.fixture
    def loop(self, receive, schedule):
        """Create an idle FetchLoop."""
        return FetchLoop(receive=receive, schedule=schedule, receive_interval=RECEIVE_INTERVAL)

    def test_initial_state_is_idle(self, loop):
        """A new loop has no demand and no timer."""
        assert loop.demand == 0
        assert loop.receive_timer is None
        assert loop.idle

    def test_short_batch_schedules_immediate_repoll(self, loop, receive, schedule):
        """demand=10, 3 received: emit 3, demand 7, zero-delay re-poll."""
        receive.return_value = make_messages(3)

        emitted = loop.on_demand(10)

        receive.assert_called_once_with(10)
        assert len(emitted) == 3
        assert loop.demand == 7
        schedule.assert_called_once_with(0)
        assert loop.receive_timer is not None

    def test_empty_batch_schedules_cool_down(self, loop, receive, schedule):
        """demand=5, nothing received: demand kept, cool-down timer."""
        emitted = loop.on_demand(5)

        assert emitted == []
        assert loop.demand == 5
        schedule.assert_called_once_with(RECEIVE_INTERVAL)

    def test_full_batch_returns_to_idle(self, loop, receive, schedule):
        """Meeting all demand leaves no timer behind."""
        receive.return_value = make_messages(4)

        emitted = loop.on_demand(4)

        assert len(emitted) == 4
        assert loop.idle
        schedule.assert_not_called()

    @pytest.mark.parametrize("demand,received", [(1, 0), (1, 1), (7, 3), (10, 10), (25, 10)])
    def test_emits_min_of_demand_and_received(self, loop, receive, demand, received):
        """Exactly min(D, R) messages are emitted and demand drops by that much."""
        receive.return_value = make_messages(received)

        emitted = loop.on_demand(demand)

        assert len(emitted) == min(demand, received)
        assert loop.demand == demand - min(demand, received)

    def test_surplus_messages_are_not_emitted(self, loop, receive):
        """A client returning more than asked never drives demand negative."""
        receive.return_value = make_messages(8)

        emitted = loop.on_demand(5)

        assert len(emitted) == 5
        assert loop.demand == 0

    def test_demand_accumulates_while_timer_pending(self, loop, receive):
        """New demand during a cool-down is recorded but does not pull."""
        loop.on_demand(5)
        receive.reset_mock()

        emitted = loop.on_demand(3)

        assert emitted == []
        assert loop.demand == 8
        receive.assert_not_called()

    def test_timer_services_accumulated_demand(self, loop, receive, schedule):
        """A firing timer pulls for everything demanded so far."""
        loop.on_demand(5)
        loop.on_demand(3)
        receive.return_value = make_messages(8)

        emitted = loop.on_timer()

        receive.assert_called_with(8)
        assert len(emitted) == 8
        assert loop.idle

    def test_timer_without_demand_goes_idle(self, loop, receive):
        """A timer firing with no demand clears the timer and does nothing."""
        loop.receive_timer = Mock()

        emitted = loop.on_timer()

        assert emitted == []
        assert loop.idle
        receive.assert_not_called()

    def test_service_without_demand_is_noop(self, loop, receive, schedule):
        """Servicing with zero demand never pulls or schedules."""
        assert loop.service() == []
        receive.assert_not_called()
        schedule.assert_not_called()

    def test_failing_receive_is_treated_as_empty(self, loop, receive, schedule):
        """A raising client degrades to the cool-down retry."""
        receive.side_effect = RuntimeError("connection reset")

        emitted = loop.on_demand(2)

        assert emitted == []
        assert loop.demand == 2
        schedule.assert_called_once_with(RECEIVE_INTERVAL)

    def test_loop_recovers_after_failure(self, loop, receive):
        """The next timer pulls again after a failure."""
        receive.side_effect = [RuntimeError("boom"), make_messages(2)]

        loop.on_demand(2)
        emitted = loop.on_timer()

        assert len(emitted) == 2
        assert loop.idle

    @pytest.mark.parametrize("value", [0, -3, 1.5, "2", True])
    def test_rejects_invalid_demand(self, loop, value):
        """Demand increments must be positive integers."""
        with pytest.raises(ValueError):
            loop.on_demand(value)
        assert loop.demand == 0

    def test_demand_never_negative_over_sequence(self, loop, receive):
        """Demand stays non-negative across mixed demand and timer events."""
        batches = iter([3, 0, 10, 1, 0, 4, 2, 6])
        receive.side_effect = lambda demand: make_messages(next(batches, 0))

        for incoming in (5, 2, 1, 7):
            loop.on_demand(incoming)
            assert loop.demand >= 0
            while loop.receive_timer is not None:
                loop.on_timer()
                assert loop.demand >= 0
                if receive.call_count > 20:
                    break
