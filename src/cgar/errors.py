"""
Failure types for cgar.

Everything below the config layer is contained where it happens: one
file, one controller, or one subtree. Only ConfigLoadFailure ends a run.
"""


class CgarError(Exception):
    """Base class for all cgar failures."""


class UnsupportedController(CgarError):
    def __init__(self, controller: str):
        self.controller = controller
        super().__init__(f'Controller "{controller}" is currently not supported.')


class LeafReadFailure(CgarError):
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class DirectoryListFailure(CgarError):
    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot list {path}: {reason}")


class ConfigLoadFailure(CgarError):
    pass


class SnapshotWriteFailure(CgarError):
    pass
