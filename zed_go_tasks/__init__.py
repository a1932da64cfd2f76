"""Generate Zed tasks and debug configs for Go tests."""

__version__ = "0.1.0"
