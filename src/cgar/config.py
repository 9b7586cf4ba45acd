"""
Configuration file loading.

The file is JSON. Keys are matched case-insensitively, so files written
for cgar_collect ("Logfile", "Collect", "Cgroup", ...) load
unchanged:

    {
        "logfile": "/var/log/cgar/cgar.log",
        "collect": [
            {"cgroup": "system.slice", "depth": 1, "controllers": ["memory"]}
        ]
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cgar.collector.cgroupfs import DEFAULT_CGROUP_ROOT
from cgar.engine.channel import DEFAULT_CHANNEL_SIZE
from cgar.engine.coordinator import DEFAULT_MAX_WORKERS
from cgar.errors import ConfigLoadFailure
from cgar.metrics import ScanRequest

log = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "/etc/cgar/conf.json"


@dataclass
class CgarConfig:
    logfile: str
    collect: List[ScanRequest] = field(default_factory=list)
    cgroup_root: str = DEFAULT_CGROUP_ROOT
    channel_size: int = DEFAULT_CHANNEL_SIZE
    max_workers: int = DEFAULT_MAX_WORKERS
    timeout: Optional[float] = None
    database: Optional[str] = None


def _lower_keys(obj: Dict[str, Any], where: str) -> Dict[str, Any]:
    if not isinstance(obj, dict):
        raise ValueError(f"{where} must be an object")
    return {str(k).lower(): v for k, v in obj.items()}


def _positive_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f'"{key}" must be a positive integer')
    return value


def _parse_request(raw: Any, index: int) -> ScanRequest:
    where = f"collect[{index}]"
    entry = _lower_keys(raw, where)

    cgroup = entry.get("cgroup", "")
    if not isinstance(cgroup, str):
        raise ValueError(f'{where}: "cgroup" must be a string')

    controllers = entry.get("controllers", [])
    if not isinstance(controllers, list) or not all(isinstance(c, str) for c in controllers):
        raise ValueError(f'{where}: "controllers" must be a list of strings')

    try:
        return ScanRequest(cgroup=cgroup, depth=entry.get("depth", 0), controllers=tuple(controllers))
    except ValueError as e:
        raise ValueError(f"{where}: {e}") from e


def parse_config(data: Any) -> CgarConfig:
    """Build a CgarConfig from decoded JSON. Raises ValueError on bad input."""
    top = _lower_keys(data, "configuration")

    logfile = top.get("logfile")
    if not isinstance(logfile, str) or not logfile:
        raise ValueError('"logfile" is required')

    collect = top.get("collect", [])
    if not isinstance(collect, list):
        raise ValueError('"collect" must be a list')

    cfg = CgarConfig(
        logfile=logfile,
        collect=[_parse_request(raw, i) for i, raw in enumerate(collect)],
    )

    if "cgroup_root" in top:
        cfg.cgroup_root = str(top["cgroup_root"])
    if "channel_size" in top:
        cfg.channel_size = _positive_int(top["channel_size"], "channel_size")
    if "max_workers" in top:
        cfg.max_workers = _positive_int(top["max_workers"], "max_workers")
    if top.get("timeout") is not None:
        timeout = top["timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            raise ValueError('"timeout" must be a positive number of seconds')
        cfg.timeout = float(timeout)
    if top.get("database"):
        cfg.database = str(top["database"])

    return cfg


def load_config(filename: str = DEFAULT_CONFIG_PATH) -> CgarConfig:
    try:
        f = open(filename, "r", encoding="utf-8")
    except OSError as e:
        raise ConfigLoadFailure(f'Error opening "{filename}": {e.strerror or e}') from e

    with f:
        try:
            text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigLoadFailure(f'Error reading "{filename}": {e}') from e

    try:
        cfg = parse_config(json.loads(text))
    except ValueError as e:
        # json.JSONDecodeError is a ValueError too
        raise ConfigLoadFailure(f'Error parsing "{filename}": {e}') from e

    log.debug("Loaded %s: %d scan requests", filename, len(cfg.collect))
    return cfg
