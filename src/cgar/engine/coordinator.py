"""
Runs one collection pass: start the aggregator, walk every configured
root in parallel, wait for the tree to finish, close the channel, and
hand back the single Snapshot.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from cgar.collector.base import CgroupSource
from cgar.engine.aggregator import Aggregator
from cgar.engine.channel import DEFAULT_CHANNEL_SIZE, NodeChannel
from cgar.engine.pool import DaemonPool
from cgar.engine.tracker import WorkTracker
from cgar.engine.walker import TreeWalker
from cgar.metrics import ScanRequest, Snapshot

log = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 32


def run_collection(
    requests: Sequence[ScanRequest],
    source: CgroupSource,
    channel_size: int = DEFAULT_CHANNEL_SIZE,
    max_workers: int = DEFAULT_MAX_WORKERS,
    timeout: Optional[float] = None,
    logger: Optional[logging.Logger] = None,
) -> Snapshot:
    """Collect every request into one Snapshot.

    With a timeout, a run whose walkers haven't all finished in time is
    cut short: the error is logged, queued walks are cancelled and the
    nodes aggregated so far are returned. Walks still blocked in a read
    run on daemon threads and do not keep the process alive.
    """
    logger = logger or log
    channel = NodeChannel(size=channel_size, logger=logger)
    tracker = WorkTracker()
    aggregator = Aggregator(channel, logger=logger)

    # Consumer first, so early publishes never wait on a missing reader
    aggregator.start()

    executor = DaemonPool(max_workers=max_workers, thread_name_prefix="cgar-walk")
    finished = False
    try:
        walker = TreeWalker(source, channel, tracker, executor, logger=logger)
        for request in requests:
            logger.debug(
                "Scanning %r depth=%d controllers=%s",
                request.cgroup, request.depth, ",".join(request.controllers),
            )
            walker.spawn(request.cgroup, request.depth, request.controllers)

        finished = tracker.wait(timeout)
        if not finished:
            logger.error(
                "Collection did not finish within %.1fs (%d units pending), writing partial snapshot",
                timeout, tracker.pending,
            )
    finally:
        channel.close()
        executor.shutdown(wait=finished, cancel_futures=not finished)

    snapshot = aggregator.result()
    logger.info(
        "Collected %d nodes (%d files) from %s",
        snapshot.node_count(), snapshot.file_count(), source.name(),
    )
    return snapshot
