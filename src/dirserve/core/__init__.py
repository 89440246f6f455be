"""
=============================================================================
CORE NETWORKING MODULE
=============================================================================

Transport for the directory server: TCP in, bytes out.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   SocketServer ──accept()──▶ Connection ──submit()──▶ ThreadPool    │
    │   (listening socket)         (one client)             (workers run  │
    │                                                        HTTPServer   │
    │                                                        ._process_   │
    │                                                        connection)  │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

One thread per in-flight connection, bounded by max_workers; a full
queue is answered with 503 rather than growing without limit.

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, RequestTooLarge
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
]
