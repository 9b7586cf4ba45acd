"""Tests for WorkTracker and NodeChannel."""

import threading
import time

import pytest

from cgar.engine.channel import ChannelClosed, NodeChannel
from cgar.engine.tracker import WorkTracker


def test_wait_returns_immediately_when_idle():
    tracker = WorkTracker()
    assert tracker.wait(timeout=0.01) is True


def test_wait_times_out_while_pending():
    tracker = WorkTracker()
    tracker.add()
    assert tracker.wait(timeout=0.05) is False
    assert tracker.pending == 1
    tracker.done()
    assert tracker.wait(timeout=0.05) is True


def test_done_without_add_raises():
    tracker = WorkTracker()
    with pytest.raises(ValueError):
        tracker.done()


def test_concurrent_add_and_done():
    tracker = WorkTracker()
    tracker.add(50)

    def _worker():
        time.sleep(0.01)
        tracker.add()
        tracker.done()
        tracker.done()

    threads = [threading.Thread(target=_worker) for _ in range(50)]
    for t in threads:
        t.start()

    assert tracker.wait(timeout=5) is True
    assert tracker.pending == 0
    for t in threads:
        t.join()


def test_channel_rejects_zero_size():
    with pytest.raises(ValueError):
        NodeChannel(size=0)


def test_channel_delivers_until_closed():
    channel = NodeChannel(size=4)
    assert channel.send("a", {"memory.current": "1"})
    assert channel.send("a/b", {"memory.current": "2"})
    channel.close()

    assert list(channel) == [("a", {"memory.current": "1"}), ("a/b", {"memory.current": "2"})]


def test_send_after_close_is_dropped():
    channel = NodeChannel(size=2)
    channel.close()
    assert channel.send("late", {"x": "1"}) is False
    assert list(channel) == []


def test_close_twice_raises():
    channel = NodeChannel(size=1)
    channel.close()
    with pytest.raises(ChannelClosed):
        channel.close()


def test_full_channel_blocks_sender_until_drained():
    channel = NodeChannel(size=1)
    channel.send("first", {"f": "1"})
    sent = threading.Event()

    def _sender():
        channel.send("second", {"f": "2"})
        sent.set()

    t = threading.Thread(target=_sender)
    t.start()

    assert not sent.wait(timeout=0.2)  # buffer full, no reader yet

    received = []
    reader = threading.Thread(target=lambda: received.extend(channel))
    reader.start()

    assert sent.wait(timeout=2)
    t.join()
    channel.close()
    reader.join(timeout=2)
    assert [node for node, _ in received] == ["first", "second"]
