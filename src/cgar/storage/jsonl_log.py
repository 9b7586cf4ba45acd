"""
Append-only JSON-lines log. One line per run, one timestamp per line.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional

from cgar.errors import SnapshotWriteFailure
from cgar.metrics import Snapshot

log = logging.getLogger(__name__)


def serialize_snapshot(snapshot: Snapshot) -> str:
    try:
        return json.dumps(snapshot.to_record(), separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise SnapshotWriteFailure(f"Cannot serialize snapshot: {e}") from e


def append_snapshot(path: str, snapshot: Snapshot, logger: Optional[logging.Logger] = None) -> bool:
    """Append the snapshot as one line. Failures are logged, never raised."""
    logger = logger or log
    try:
        line = serialize_snapshot(snapshot)
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(line + "\n")
        except OSError as e:
            raise SnapshotWriteFailure(f"Cannot write {path}: {e.strerror or e}") from e
    except SnapshotWriteFailure as e:
        logger.error("%s", e)
        return False

    logger.debug("Appended snapshot %s to %s", snapshot.timestamp.isoformat(), path)
    return True


def read_snapshots(path: str, logger: Optional[logging.Logger] = None) -> List[Snapshot]:
    """Load every well-formed line of the log, oldest first."""
    logger = logger or log
    snapshots = []
    with open(path, "r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                snapshots.append(Snapshot.from_record(json.loads(line)))
            except (ValueError, TypeError, AttributeError) as e:
                logger.warning("%s:%d: skipping malformed line (%s)", path, lineno, e)
    return snapshots
