from .watch_history import (
    ParseError,
    WatchHistoryReadError,
    parse_watch_history,
    read_watch_history,
    split_line,
)

__all__ = [
    "ParseError",
    "WatchHistoryReadError",
    "parse_watch_history",
    "read_watch_history",
    "split_line",
]
