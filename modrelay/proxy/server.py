"""
Module proxy HTTP server for modrelay.

Implements the GOPROXY module-fetch protocol (GET only):

    /<module>/@v/list               newline-separated versions
    /<module>/@latest               not served (falls through)
    /<module>/@v/<version>.info     version metadata
    /<module>/@v/<version>.mod      go.mod
    /<module>/@v/<version>.zip      module source

Status codes follow what the go command expects from a proxy in a
GOPROXY list. 404 makes it try the next proxy; 403 stops the lookup.
A module claimed by a configured route therefore answers 403 on any
backend failure so it never leaks through to a public proxy.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Iterator, Optional, Tuple
from urllib.parse import unquote, urlsplit

from ..domain.artifact import ArtifactRequest, parse_artifact_request, split_request_path
from ..exit_codes import (
    BackendError,
    BackendNotFound,
    MalformedRequest,
    OperationUnsupported,
)
from ..router import PatternRouter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProxyResponse:
    """Status, body and content type answering one proxy request."""
    status: int
    body: bytes = b""
    content_type: str = "text/plain; charset=utf-8"


class ProtocolTranslator:
    """
    Translates module proxy requests into repository backend calls.

    Stateless apart from the immutable router, so one instance serves
    all request threads.

    Example:
        translator = ProtocolTranslator(router)
        response = translator.handle("GET", "/github.com/acme/widgets/@v/list")
    """

    def __init__(self, router: PatternRouter):
        self.router = router

    def handle(self, method: str, raw_path: str) -> ProxyResponse:
        """Answer a single request."""
        if method != "GET":
            return ProxyResponse(HTTPStatus.METHOD_NOT_ALLOWED)

        path = unquote(urlsplit(raw_path).path)

        try:
            module_path, suffix = split_request_path(path)
        except MalformedRequest as e:
            logger.warning(str(e))
            return ProxyResponse(HTTPStatus.BAD_REQUEST)

        request: Optional[ArtifactRequest] = None
        unsupported: Optional[OperationUnsupported] = None
        try:
            request = parse_artifact_request(suffix)
        except MalformedRequest as e:
            logger.warning(f"Error parsing request path: {path}: {e}")
            return ProxyResponse(HTTPStatus.BAD_REQUEST)
        except OperationUnsupported as e:
            unsupported = e

        route = self.router.resolve_entry(module_path)
        if route is None:
            logger.debug(f"No route for module: {module_path}")
            return ProxyResponse(HTTPStatus.NOT_FOUND)

        if unsupported is not None:
            logger.warning(
                f"Rejected {module_path}/{suffix} (route {route.pattern}, {route.backend!r}): {unsupported}"
            )
            return ProxyResponse(HTTPStatus.FORBIDDEN)

        try:
            body = route.backend.fetch(module_path, request)
        except OperationUnsupported as e:
            logger.info(f"Unclaimed {module_path}/{request} (route {route.pattern}): {e}")
            return ProxyResponse(HTTPStatus.NOT_FOUND)
        except BackendNotFound as e:
            logger.info(f"Not found {module_path}/{request} (route {route.pattern}): {e}")
            return ProxyResponse(HTTPStatus.NOT_FOUND)
        except BackendError as e:
            logger.error(f"Rejected {module_path}/{request} (route {route.pattern}): {e}")
            return ProxyResponse(HTTPStatus.FORBIDDEN)
        except Exception as e:
            # A claimed module must never fall through to a public proxy
            logger.exception(
                f"Unexpected error for {module_path}/{request} "
                f"(route {route.pattern}, {route.backend!r}): {e}"
            )
            return ProxyResponse(HTTPStatus.FORBIDDEN)

        logger.info(
            f"Served {module_path}/{request} (route {route.pattern}, "
            f"{route.backend!r}, {len(body)} bytes)"
        )
        return ProxyResponse(HTTPStatus.OK, body, request.content_type)


class ProxyRequestHandler(BaseHTTPRequestHandler):
    """Adapts ProtocolTranslator to http.server."""

    server: 'ProxyServer'

    def _respond(self, response: ProxyResponse) -> None:
        try:
            self.send_response(response.status)
            self.send_header('Content-Type', response.content_type)
            self.send_header('Content-Length', str(len(response.body)))
            self.end_headers()
            if self.command != "HEAD" and response.body:
                self.wfile.write(response.body)
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.debug(f"Error writing response: {self.path}: {e}")

    def _dispatch(self) -> None:
        self._respond(self.server.translator.handle(self.command, self.path))

    do_GET = _dispatch
    do_HEAD = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_DELETE = _dispatch
    do_PATCH = _dispatch
    do_OPTIONS = _dispatch

    def log_message(self, format, *args):
        logger.debug(format % args)


class ProxyServer(ThreadingHTTPServer):
    """Threaded HTTP server bound to one translator."""

    daemon_threads = True

    def __init__(self, address: Tuple[str, int], translator: ProtocolTranslator):
        super().__init__(address, ProxyRequestHandler)
        self.translator = translator

    @property
    def url(self) -> str:
        host, port = self.server_address[:2]
        return f"http://{host}:{port}"


def create_proxy_server(router: PatternRouter, host: str = "127.0.0.1", port: int = 0) -> ProxyServer:
    """Create a proxy server; ``port=0`` picks a free port."""
    return ProxyServer((host, port), ProtocolTranslator(router))


@contextmanager
def running_proxy(router: PatternRouter, host: str = "127.0.0.1", port: int = 0) -> Iterator[ProxyServer]:
    """
    Serve the proxy from a background thread for the duration of the block.

    Example:
        with running_proxy(router) as server:
            subprocess.run(["go", "mod", "download"], env={"GOPROXY": server.url})
    """
    server = create_proxy_server(router, host, port)
    thread = threading.Thread(target=server.serve_forever, name="modrelay-proxy", daemon=True)
    thread.start()
    logger.debug(f"Proxy listening on {server.url}")
    try:
        yield server
    finally:
        server.shutdown()
        server.server_close()
        thread.join()


def run_proxy_server(router: PatternRouter, host: str = "127.0.0.1", port: int = 8765) -> None:
    """Serve the proxy in the foreground until interrupted."""
    server = create_proxy_server(router, host, port)
    logger.info(f"Starting modrelay proxy on {server.url}")
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Proxy stopped")
    finally:
        server.server_close()
