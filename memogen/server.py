from __future__ import annotations

import logging
import threading
from functools import partial
from http.server import SimpleHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from .errors import ServeError

LOGGER = logging.getLogger(__name__)


class LoggingRequestHandler(SimpleHTTPRequestHandler):
    def log_message(self, format, *args):
        LOGGER.info("%s - %s", self.address_string(), format % args)


def start_server(directory: Path, port: int, host: str = "127.0.0.1") -> ThreadingHTTPServer:
    """Serve ``directory`` over HTTP from a daemon thread and return the server.

    The handler reads files on each request, so clients always see whatever
    the last generation run wrote.
    """
    handler = partial(LoggingRequestHandler, directory=str(directory))
    try:
        httpd = ThreadingHTTPServer((host, port), handler)
    except OSError as exc:
        raise ServeError(f"Cannot serve on {host}:{port}: {exc}") from exc
    thread = threading.Thread(target=httpd.serve_forever, name="memogen-server", daemon=True)
    thread.start()
    LOGGER.info("Serving %s at http://%s:%d", directory, host, httpd.server_address[1])
    return httpd
