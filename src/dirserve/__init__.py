"""
=============================================================================
DIRSERVE
=============================================================================

A small multi-threaded HTTP/1.1 server that exposes a directory tree:
directories get a generated index page, regular files are sent as-is,
everything else is refused.

    $ dirserve 8000 /srv/files
    $ curl http://localhost:8000/docs/

=============================================================================
PACKAGE LAYOUT
=============================================================================

    dirserve/
    ├── __main__.py      CLI (dirserve PORT ROOT_DIR)
    ├── config.py        ServerConfig
    ├── server.py        HTTPServer: transport + middleware + handler
    ├── core/            SocketServer, Connection, ThreadPool
    ├── http/            Request parsing, responses, status codes, MIME
    ├── middleware/      Pipeline and access logging
    ├── handlers/        DirectoryIndexHandler, FileServer
    └── listing/         Entry classification, directory reads, HTML index

=============================================================================
"""

__version__ = "1.0.0"

from .server import HTTPServer, create_app
from .config import ServerConfig

__all__ = ["HTTPServer", "create_app", "ServerConfig", "__version__"]
