"""
In-memory cgroup tree.

Used for local development on machines without cgroup v2, and by the
tests to inject slow reads and unlistable nodes. Numbers from demo()
are loosely shaped like a small systemd host.
"""

from __future__ import annotations

import random
import threading
import time
from typing import Dict, Iterable, List, Tuple

from cgar.collector.base import CgroupSource
from cgar.collector.cgroupfs import controller_files, normalize_content
from cgar.errors import DirectoryListFailure
from cgar.metrics import NodeMetrics


class MockCgroupTree(CgroupSource):
    """Tree given as {node identifier: {file name: raw content}}.

    Parent nodes are implied by their descendants, so {"a/b": {...}}
    also creates "a". The hierarchy root is "".
    """

    def __init__(
        self,
        nodes: Dict[str, Dict[str, str]],
        delay_range: Tuple[float, float] = (0.0, 0.0),
        seed: int = 42,
        unlistable: Iterable[str] = (),
    ):
        self._files: Dict[str, Dict[str, str]] = {}
        self._children: Dict[str, set] = {"": set()}
        for node, files in nodes.items():
            self._add(node.strip("/"), files)

        self._delay_range = delay_range
        self._rng = random.Random(seed)
        self._rng_lock = threading.Lock()
        self._unlistable = {n.strip("/") for n in unlistable}

        self._lock = threading.Lock()
        self.reads: List[Tuple[str, str]] = []
        self.listed: List[str] = []

    def _add(self, node: str, files: Dict[str, str]):
        self._files.setdefault(node, {}).update(files)
        parts = node.split("/") if node else []
        for i in range(len(parts)):
            parent = "/".join(parts[:i])
            child = "/".join(parts[: i + 1])
            self._children.setdefault(parent, set()).add(parts[i])
            self._children.setdefault(child, set())
            self._files.setdefault(child, {})

    def _sleep(self):
        low, high = self._delay_range
        if high <= 0:
            return
        with self._rng_lock:
            delay = self._rng.uniform(low, high)
        time.sleep(delay)

    def read(self, node: str, controller: str) -> NodeMetrics:
        files = controller_files(controller)
        self._sleep()
        with self._lock:
            self.reads.append((node, controller))

        present = self._files.get(node, {})
        return {name: normalize_content(present[name]) for name in files if name in present}

    def children(self, node: str) -> List[str]:
        with self._lock:
            self.listed.append(node)
        if node in self._unlistable or node not in self._children:
            raise DirectoryListFailure(node or "/", "Permission denied")
        return sorted(self._children[node])

    def name(self) -> str:
        return f"mock tree ({len(self._files)} nodes)"

    def visited(self) -> List[str]:
        """Distinct nodes that were read at least once."""
        with self._lock:
            return sorted({node for node, _ in self.reads})

    @classmethod
    def demo(cls, seed: int = 42, delay_range: Tuple[float, float] = (0.0, 0.0)) -> "MockCgroupTree":
        """A systemd-like tree with memory and pids files on every group."""
        rng = random.Random(seed)
        layout = {
            "system.slice": ["cron.service", "sshd.service", "systemd-journald.service"],
            "user.slice": ["user-1000.slice"],
            "user.slice/user-1000.slice": ["session-1.scope", "user@1000.service"],
            "init.scope": [],
        }

        nodes: Dict[str, Dict[str, str]] = {}
        for parent, kids in layout.items():
            for node in [parent] + [f"{parent}/{k}" for k in kids]:
                nodes[node] = _demo_files(rng)
        return cls(nodes, delay_range=delay_range, seed=seed)


def _demo_files(rng: random.Random) -> Dict[str, str]:
    current = rng.randint(2, 900) * 1024 * 1024
    anon = int(current * rng.uniform(0.3, 0.8))
    pressure = rng.uniform(0, 2)
    return {
        "memory.current": f"{current}\n",
        "memory.min": "0\n",
        "memory.low": "0\n",
        "memory.high": "max\n",
        "memory.max": "max\n",
        "memory.swap.current": "0\n",
        "memory.swap.max": "max\n",
        "memory.stat": f"anon {anon}\nfile {current - anon}\n",
        "memory.pressure": (
            f"some avg10={pressure:.2f} avg60=0.00 avg300=0.00 total=0\n"
            "full avg10=0.00 avg60=0.00 avg300=0.00 total=0\n"
        ),
        "pids.current": f"{rng.randint(1, 40)}\n",
        "pids.max": "max\n",
    }
