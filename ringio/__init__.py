"""A small single-threaded async runtime with timers, non-blocking sockets and Unix domain streams."""

__version__ = "0.1.0"