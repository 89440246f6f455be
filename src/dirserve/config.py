"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration management for the directory server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── dirserve 8000 /srv/files --workers 8                       │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── DIRSERVE_PORT=8000 DIRSERVE_ROOT=/srv/files                │
    │                                                                     │
    │   3. Defaults in ServerConfig                                       │
    │      └── port: int = 8080                                           │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional

from .handlers.index import DEFAULT_IGNORED_PATHS


@dataclass
class ServerConfig:
    """
    Configuration for the directory server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    SERVED TREE
    - root_dir, ignored_paths

    NETWORK SETTINGS
    - host, port, backlog, buffer_size, timeout

    HTTP SETTINGS
    - keep_alive, keep_alive_timeout, max_request_size

    THREADING SETTINGS
    - min_workers, max_workers

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # SERVED TREE
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "."
    """
    Directory whose contents are served. Made absolute by validate().
    """

    ignored_paths: tuple[str, ...] = DEFAULT_IGNORED_PATHS
    """
    Request paths (without the leading "/") answered with an empty 200
    and never looked up on disk. Browsers ask for /favicon.ico on their
    own, so it is ignored by default.
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "0.0.0.0"
    """
    The IP address to bind to. All interfaces by default, like most
    ad-hoc file servers; use "127.0.0.1" to keep it local.
    """

    port: int = 8080
    """
    The port number to listen on. 0 lets the OS pick a free port.
    """

    backlog: int = 128
    """Maximum number of queued connections."""

    buffer_size: int = 8192
    """Size of the receive buffer in bytes."""

    timeout: Optional[float] = 30.0
    """
    Socket timeout in seconds. None blocks forever.
    """

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    """Allow several requests on one TCP connection."""

    keep_alive_timeout: float = 5.0
    """Idle seconds before a keep-alive connection is closed."""

    max_request_size: int = 1024 * 1024  # 1 MB
    """
    Maximum request size in bytes. The server only answers GET and HEAD
    meaningfully, so bodies are small.
    """

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    """Worker threads created at startup."""

    max_workers: int = 16
    """Upper bound on worker threads."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    INFO shows one `request "<path>"` line per request.
    """

    log_format: str = "text"
    """Access log format: 'json' or 'text'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "dirserve/1.0"
    """Value of the Server response header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        DIRSERVE_HOST       Bind address (default: 0.0.0.0)
        DIRSERVE_PORT       Port (default: 8080)
        DIRSERVE_ROOT       Served directory (default: .)
        DIRSERVE_WORKERS    Max worker threads (default: 16)
        DIRSERVE_TIMEOUT    Socket timeout in seconds (default: 30)
        DIRSERVE_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================
        USAGE
        =====================================================================

        # From shell:
        DIRSERVE_ROOT=/srv/files DIRSERVE_LOG_LEVEL=DEBUG python -m dirserve

        =====================================================================
        """
        return cls(
            host=os.getenv("DIRSERVE_HOST", "0.0.0.0"),
            port=int(os.getenv("DIRSERVE_PORT", "8080")),
            root_dir=os.getenv("DIRSERVE_ROOT", "."),
            max_workers=int(os.getenv("DIRSERVE_WORKERS", "16")),
            timeout=float(os.getenv("DIRSERVE_TIMEOUT", "30")),
            log_level=os.getenv("DIRSERVE_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Called once at startup; raises ValueError on the first problem.
        root_dir is made absolute as a side effect.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format!r}")

        self.root_dir = os.path.abspath(self.root_dir)
        if not os.path.isdir(self.root_dir):
            raise ValueError(f"Not a directory: {self.root_dir}")
