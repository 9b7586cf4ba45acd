"""cgar - cgroup accounting recorder."""

__version__ = "0.2.0"
