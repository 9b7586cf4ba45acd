"""
Single consumer that folds every published node into one Snapshot.

The timestamp is fixed when the aggregator starts, before anything is
merged, so every entry of a run shares it no matter how slow a read was.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

from cgar.engine.channel import NodeChannel
from cgar.metrics import Snapshot, now_timestamp

log = logging.getLogger(__name__)


class Aggregator:

    def __init__(self, channel: NodeChannel, logger: Optional[logging.Logger] = None):
        self._channel = channel
        self._log = logger or log
        self._snapshot: Optional[Snapshot] = None
        self._error: Optional[BaseException] = None
        self._thread = threading.Thread(target=self._run, name="cgar-aggregator", daemon=True)

    def start(self):
        """Start consuming. Call before any walker publishes."""
        if self._snapshot is not None:
            raise RuntimeError("aggregator already started")
        self._snapshot = Snapshot(timestamp=now_timestamp())
        self._thread.start()

    def _run(self):
        snapshot = self._snapshot
        try:
            for node, metrics in self._channel:
                if node in snapshot.nodes:
                    self._log.warning("Node %r published twice, keeping the latest", node)
                snapshot.merge(node, metrics)
        except Exception as e:
            self._log.exception("Aggregator stopped early")
            self._error = e

    def result(self, timeout: Optional[float] = None) -> Snapshot:
        """Wait for the channel to close and drain, then return the snapshot."""
        if self._snapshot is None:
            raise RuntimeError("aggregator was never started")
        self._thread.join(timeout)
        if self._thread.is_alive():
            raise TimeoutError("aggregator did not finish; was the channel closed?")
        if self._error is not None:
            raise self._error
        self._log.debug("Aggregated %d nodes", self._snapshot.node_count())
        return self._snapshot
