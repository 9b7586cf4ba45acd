"""
Node visitor and tree walker.

Each node is one unit of work: sample the node, list its children,
submit one unit per child, and return without waiting for them. The
WorkTracker reaching zero is what tells the coordinator the whole tree
is done, not the return of any particular call.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from typing import Optional, Sequence

from cgar.collector.base import CgroupSource
from cgar.engine.channel import NodeChannel
from cgar.engine.tracker import WorkTracker
from cgar.errors import DirectoryListFailure, UnsupportedController
from cgar.metrics import NodeMetrics, child_identifier

log = logging.getLogger(__name__)


def collect_node(
    source: CgroupSource,
    node: str,
    controllers: Sequence[str],
    logger: Optional[logging.Logger] = None,
) -> NodeMetrics:
    """Merge every controller's files for one node.

    Later controllers overwrite same-named files of earlier ones.
    """
    logger = logger or log
    merged: NodeMetrics = {}
    for controller in controllers:
        try:
            data = source.read(node, controller)
        except UnsupportedController as e:
            logger.error("%s", e)
            continue
        for name in data:
            if name in merged:
                logger.warning("%r: %s from %s overwrites an earlier controller", node, name, controller)
        merged.update(data)
    return merged


def visit_node(
    source: CgroupSource,
    channel: NodeChannel,
    node: str,
    controllers: Sequence[str],
    logger: Optional[logging.Logger] = None,
) -> NodeMetrics:
    """Collect one node and publish it if anything was read."""
    metrics = collect_node(source, node, controllers, logger)
    if metrics:
        channel.send(node, metrics)
    return metrics


class TreeWalker:

    def __init__(
        self,
        source: CgroupSource,
        channel: NodeChannel,
        tracker: WorkTracker,
        executor: Executor,
        logger: Optional[logging.Logger] = None,
    ):
        self._source = source
        self._channel = channel
        self._tracker = tracker
        self._executor = executor
        self._log = logger or log

    def spawn(self, node: str, depth: int, controllers: Sequence[str]):
        """Register and submit one walk unit."""
        self._tracker.add()
        try:
            self._executor.submit(self.walk, node, depth, controllers)
        except RuntimeError as e:
            # Executor already shut down (run deadline passed)
            self._log.warning("Not walking %r: %s", node, e)
            self._tracker.done()

    def walk(self, node: str, depth: int, controllers: Sequence[str]):
        """Sample `node`, then spawn walks for its children while depth > 0.

        The caller must have registered this unit with the tracker.
        """
        try:
            visit_node(self._source, self._channel, node, controllers, self._log)

            if depth > 0:
                try:
                    children = self._source.children(node)
                except DirectoryListFailure as e:
                    self._log.error("%s", e)
                    children = []

                for name in children:
                    self.spawn(child_identifier(node, name), depth - 1, controllers)
        except Exception:
            self._log.exception("Walking %r failed, skipping its subtree", node)
        finally:
            self._tracker.done()
