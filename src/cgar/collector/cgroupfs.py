"""
Reads cgroup v2 controller files straight from the unified hierarchy.

To support a new controller, add its file list to CONTROLLER_FILES.
Nothing else needs to change.
"""

from __future__ import annotations

import logging
import os
from typing import Dict, List, Optional, Tuple

from cgar.collector.base import CgroupSource
from cgar.errors import DirectoryListFailure, LeafReadFailure, UnsupportedController
from cgar.metrics import NodeMetrics

log = logging.getLogger(__name__)

DEFAULT_CGROUP_ROOT = "/sys/fs/cgroup"

CONTROLLER_FILES: Dict[str, Tuple[str, ...]] = {
    "memory": (
        "memory.current",
        "memory.high",
        "memory.min",
        "memory.pressure",
        "memory.low",
        "memory.stat",
        "memory.swap.high",
        "memory.max",
        "memory.swap.current",
        "memory.swap.max",
    ),
    "pids": ("pids.current", "pids.max", "pids.events"),
    "io": ("io.stat", "io.max", "io.pressure"),
}


def controller_files(controller: str) -> Tuple[str, ...]:
    try:
        return CONTROLLER_FILES[controller]
    except KeyError:
        raise UnsupportedController(controller) from None


def normalize_content(raw: str) -> str:
    """Kernel files end in a newline; drop exactly one."""
    return raw[:-1] if raw.endswith("\n") else raw


class CgroupFS(CgroupSource):

    def __init__(self, root: str = DEFAULT_CGROUP_ROOT, logger: Optional[logging.Logger] = None):
        self._root = root.rstrip("/") or "/"
        self._log = logger or log

    def path_for(self, node: str) -> str:
        return os.path.join(self._root, node) if node else self._root

    def _read_file(self, path: str) -> str:
        try:
            with open(path, "r", encoding="utf-8", errors="replace") as f:
                return normalize_content(f.read())
        except OSError as e:
            raise LeafReadFailure(path, e.strerror or str(e)) from e

    def read(self, node: str, controller: str) -> NodeMetrics:
        files = controller_files(controller)
        base = self.path_for(node)

        data: NodeMetrics = {}
        for name in files:
            try:
                data[name] = self._read_file(os.path.join(base, name))
            except LeafReadFailure as e:
                self._log.error("%s", e)
        return data

    def children(self, node: str) -> List[str]:
        path = self.path_for(node)
        try:
            with os.scandir(path) as entries:
                # Symlinks are not followed, same as a plain lstat walk
                return sorted(e.name for e in entries if e.is_dir(follow_symlinks=False))
        except OSError as e:
            raise DirectoryListFailure(path, e.strerror or str(e)) from e

    def name(self) -> str:
        return f"cgroupfs ({self._root})"
