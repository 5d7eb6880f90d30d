"""Tests for the Publisher fan-out."""

import pytest

from hostpulse.publisher import Publisher

from conftest import make_snapshot


def test_publish_without_listeners():
    """Test publishing to nobody is not an error."""
    Publisher().publish(make_snapshot())


def test_publish_reaches_every_listener():
    """Test each subscribed listener receives the snapshot."""
    publisher = Publisher()
    first, second = [], []
    publisher.subscribe(first.append)
    publisher.subscribe(second.append)
    snapshot = make_snapshot()

    publisher.publish(snapshot)

    assert first == [snapshot]
    assert second == [snapshot]
    assert len(publisher) == 2


def test_failing_listener_is_isolated(caplog):
    """Test a listener that raises does not block the others."""
    publisher = Publisher()
    received = []

    def broken(snapshot):
        raise RuntimeError("window closed")

    publisher.subscribe(broken)
    publisher.subscribe(received.append)

    publisher.publish(make_snapshot())

    assert len(received) == 1
    assert "listener" in caplog.text


def test_unsubscribe():
    """Test a removed listener no longer receives snapshots."""
    publisher = Publisher()
    received = []
    publisher.subscribe(received.append)

    assert publisher.unsubscribe(received.append) is True
    publisher.publish(make_snapshot())

    assert received == []
    assert publisher.unsubscribe(received.append) is False


def test_subscribe_rejects_non_callable():
    """Test subscribing something that is not callable fails fast."""
    with pytest.raises(TypeError):
        Publisher().subscribe("not a function")
