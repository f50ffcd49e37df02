"""File watching with a polling fallback, Fluent Bit manifest builders and string-list helpers."""

__version__ = "0.1.0"
__all__ = ["strutil", "poller", "filenotify", "daemonset"]