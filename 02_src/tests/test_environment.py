"""Tests for Environment (message bus)."""

import pytest

from collab.errors import RoutingWarning
from collab.event_bus import Environment
from collab.models import ADVISOR, ANALYST, BROADCAST, CauseBy, Message, Specialty, WorkerConfig
from collab.workers import Worker


def _worker(worker_id: str, mock_llm, settings) -> Worker:
    config = WorkerConfig(
        id=worker_id, name=worker_id.upper(), personality="p", specialty=Specialty.TECHNICAL
    )
    return Worker(config, mock_llm, settings)


class TestEnvironmentRegistry:
    """Tests for worker registration."""

    def test_register_and_unregister(self, environment, analyst):
        """Test that unregister reports presence and is idempotent."""
        environment.register(analyst)
        assert "analyst" in environment

        assert environment.unregister("analyst") is True
        assert environment.unregister("analyst") is False
        assert "analyst" not in environment

    def test_workers_in_registration_order(self, environment, analyst, advisor):
        """Test registration-ordered snapshot."""
        environment.register(advisor)
        environment.register(analyst)
        assert environment.worker_ids == ["advisor", "analyst"]
        assert environment.get("analyst") is analyst

    def test_worker_attach_registers(self, environment, analyst):
        """Test that attaching a worker registers it."""
        analyst.attach(environment)
        assert environment.get("analyst") is analyst


class TestEnvironmentRouting:
    """Tests for point-to-point routing."""

    def test_direct_message_reaches_only_target(self, mock_llm, settings):
        """Test that A -> B lands in B's mailbox and A's stays untouched."""
        env = Environment()
        a = _worker("A", mock_llm, settings)
        b = _worker("B", mock_llm, settings)
        env.register(a)
        env.register(b)

        env.publish(Message(content="hi", send_to={"B"}), sender="A")

        assert b.observe() == 1
        assert a.context.mailbox.is_empty()

    def test_sender_is_stamped(self, environment, analyst, advisor):
        """Test that the bus overrides sent_from with the publishing sender."""
        environment.register(analyst)
        environment.register(advisor)

        environment.publish(Message(content="hi", send_to="advisor", sent_from="x"), sender="analyst")

        assert advisor.context.mailbox.peek().sent_from == "analyst"
        assert environment.history()[0].sent_from == "analyst"

    def test_unknown_recipient_warns_and_is_dropped(self, environment, analyst):
        """Test that unknown ids are reported but never raise."""
        environment.register(analyst)

        with pytest.warns(RoutingWarning):
            assert environment.publish(Message(content="hi", send_to={"ghost", "analyst"}))

        assert analyst.context.mailbox.size() == 1
        assert len(environment.history()) == 1

    def test_message_to_nobody_still_recorded(self, environment):
        """Test that undeliverable messages are kept in history."""
        with pytest.warns(RoutingWarning):
            environment.publish(Message(content="hi", send_to="ghost"))
        assert len(environment.history()) == 1


class TestEnvironmentBroadcast:
    """Tests for broadcast delivery."""

    def test_broadcast_skips_sender(self, environment, analyst, advisor):
        """Test that a broadcast reaches everyone except the sender."""
        environment.register(analyst)
        environment.register(advisor)

        environment.publish(Message(content="all", send_to=BROADCAST), sender="analyst")

        assert analyst.context.mailbox.is_empty()
        assert advisor.context.mailbox.size() == 1

    def test_broadcast_from_outsider_reaches_all(self, environment, analyst, advisor):
        """Test broadcast from an unregistered sender."""
        environment.register(analyst)
        environment.register(advisor)

        environment.publish(Message(content="all", send_to=BROADCAST), sender="coordinator")

        assert analyst.context.mailbox.size() == 1
        assert advisor.context.mailbox.size() == 1


class TestEnvironmentHistory:
    """Tests for history queries."""

    def test_history_is_bounded(self):
        """Test that the oldest messages are evicted past the bound."""
        env = Environment(max_history=2)
        for i in range(3):
            env.publish(Message(content=f"m{i}", send_to=BROADCAST))

        assert [m.content for m in env.history()] == ["m1", "m2"]

    def test_history_limit(self, environment):
        """Test limiting history to the most recent messages."""
        for i in range(3):
            environment.publish(Message(content=f"m{i}", send_to=BROADCAST))
        assert [m.content for m in environment.history(limit=2)] == ["m1", "m2"]

    def test_conversation_between(self, environment, analyst, advisor):
        """Test filtering direct exchanges in both directions."""
        environment.register(analyst)
        environment.register(advisor)

        environment.publish(Message(content="q", send_to="advisor"), sender="analyst")
        environment.publish(Message(content="a", send_to="analyst"), sender="advisor")
        environment.publish(Message(content="all", send_to=BROADCAST), sender="analyst")

        conversation = environment.conversation_between("advisor", "analyst")
        assert [m.content for m in conversation] == ["q", "a"]

    def test_create_message_accepts_list(self, environment):
        """Test building a message from a recipient list and string tag."""
        msg = environment.create_message("hi", "analyst", ["advisor"], cause_by="Broadcast")
        assert msg.send_to == frozenset({"advisor"})
        assert msg.cause_by == CauseBy.BROADCAST


class TestEnvironmentState:
    """Tests for status and clear."""

    def test_status(self, environment, analyst, advisor):
        """Test status snapshot."""
        environment.register(analyst)
        environment.register(advisor)
        environment.publish(Message(content="x", send_to="analyst"))

        status = environment.status()
        assert status["worker_count"] == 2
        assert status["message_count"] == 1
        assert status["is_idle"] is True
        assert status["workers"] == [ANALYST.id, ADVISOR.id]

    def test_clear(self, environment, analyst):
        """Test that clear drops workers and history."""
        environment.register(analyst)
        environment.publish(Message(content="x", send_to="analyst"))
        environment.clear()

        assert environment.workers == []
        assert environment.history() == []
