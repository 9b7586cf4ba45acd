"""
Base source interface.

A source is anything that can read controller files for a cgroup node
and list the node's children. The walker only talks to this interface,
so the engine doesn't care whether the data comes from /sys/fs/cgroup
or from an in-memory tree in a test.
"""

from abc import ABC, abstractmethod
from typing import List

from cgar.metrics import NodeMetrics


class CgroupSource(ABC):
    """Interface for all cgroup hierarchies."""

    @abstractmethod
    def read(self, node: str, controller: str) -> NodeMetrics:
        """Read every file of `controller` under `node`.

        Files that fail are logged and left out, so the result may be
        empty. Raises UnsupportedController for unknown controllers.
        """
        ...

    @abstractmethod
    def children(self, node: str) -> List[str]:
        """Names of the direct child groups of `node`.

        Raises DirectoryListFailure if the node can't be listed.
        """
        ...

    @abstractmethod
    def name(self) -> str:
        """Human-readable name for this source."""
        ...
