"""
Bounded channel carrying (node, NodeMetrics) pairs to the aggregator.

queue.Queue can't be closed, so close() marks the channel and pushes an
end marker that ends iteration. The buffer size is the backpressure
knob: a small buffer makes visitors wait on a slow aggregator, a large
one only postpones that wait.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Iterator, Optional, Tuple

from cgar.metrics import NodeMetrics

log = logging.getLogger(__name__)

DEFAULT_CHANNEL_SIZE = 100

# How often a blocked sender re-checks whether the channel was closed
_SEND_POLL_SECONDS = 0.1

_END = object()


class ChannelClosed(Exception):
    pass


class NodeChannel:

    def __init__(self, size: int = DEFAULT_CHANNEL_SIZE, logger: Optional[logging.Logger] = None):
        if size < 1:
            raise ValueError(f"channel size must be >= 1, got {size}")
        self._queue: "queue.Queue" = queue.Queue(maxsize=size)
        self._closed = threading.Event()
        self._log = logger or log
        self.size = size

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, node: str, metrics: NodeMetrics) -> bool:
        """Publish one node's metrics, blocking while the buffer is full.

        Returns False (and drops the entry) if the channel is closed.
        """
        item = (node, metrics)
        while not self._closed.is_set():
            try:
                self._queue.put(item, timeout=_SEND_POLL_SECONDS)
                return True
            except queue.Full:
                continue
        self._log.warning("Channel closed, dropping metrics for %r", node)
        return False

    def close(self):
        if self._closed.is_set():
            raise ChannelClosed("channel already closed")
        self._closed.set()
        self._queue.put(_END)

    def __iter__(self) -> Iterator[Tuple[str, NodeMetrics]]:
        while True:
            item = self._queue.get()
            if item is _END:
                return
            yield item
