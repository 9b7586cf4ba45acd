"""
Core data definitions for cgar.

A run turns a list of ScanRequests into exactly one Snapshot: every
sampled cgroup node, keyed by its identifier, under a single timestamp.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Tuple

# file name -> file content (one trailing newline stripped)
NodeMetrics = Dict[str, str]


@dataclass(frozen=True)
class ScanRequest:
    """One configured root: where to start, how deep to go, what to read.

    depth counts additional levels below the root, so depth 0 samples
    only the root itself.
    """

    cgroup: str
    depth: int = 0
    controllers: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.depth, int) or isinstance(self.depth, bool):
            raise ValueError(f"depth must be an integer, got {self.depth!r}")
        if self.depth < 0:
            raise ValueError(f"depth must be >= 0, got {self.depth}")
        object.__setattr__(self, "cgroup", self.cgroup.strip("/"))
        object.__setattr__(self, "controllers", tuple(self.controllers))


def child_identifier(parent: str, name: str) -> str:
    """Node identifier of `name` below `parent` ("" is the hierarchy root)."""
    return f"{parent}/{name}" if parent else name


def now_timestamp() -> datetime:
    """Local time with UTC offset, second precision (RFC 3339 style)."""
    return datetime.now().astimezone().replace(microsecond=0)


@dataclass
class Snapshot:
    """All node readings of one run, sharing one timestamp."""

    timestamp: datetime
    nodes: Dict[str, NodeMetrics] = field(default_factory=dict)

    def merge(self, node: str, metrics: NodeMetrics):
        self.nodes[node] = metrics

    def to_record(self) -> dict:
        """Shape written to the log: {timestamp: {node: {file: content}}}."""
        return {self.timestamp.isoformat(): self.nodes}

    @classmethod
    def from_record(cls, record: dict) -> "Snapshot":
        if len(record) != 1:
            raise ValueError(f"expected exactly one timestamp key, got {len(record)}")
        (stamp, nodes), = record.items()
        return cls(timestamp=datetime.fromisoformat(stamp), nodes=dict(nodes))

    def node_count(self) -> int:
        return len(self.nodes)

    def file_count(self) -> int:
        return sum(len(files) for files in self.nodes.values())

    def iter_files(self) -> Iterable[Tuple[str, str, str]]:
        """Yield (node, file, content) sorted by node then file."""
        for node in sorted(self.nodes):
            for name in sorted(self.nodes[node]):
                yield node, name, self.nodes[node][name]
