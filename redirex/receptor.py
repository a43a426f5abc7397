"""Receptor service: an HTTP front that asks the redirector where to send each visitor."""

from __future__ import annotations

import http.client
import json
import logging
import signal
import socket
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, BinaryIO, Optional, Union

from redirex.commands import Command
from redirex.ioc import IoC
from redirex.ioc import resolve as _default_resolve

logger = logging.getLogger(__name__)

DEFAULT_PORT = 8080
REDIRECTOR_HOST = "127.0.0.1"
REDIRECTOR_PORT = 18081
_POLL_INTERVAL = 0.5
_MAX_LINE = 65536

_WELCOME_PAGE = (
    '<html><head><title>Receptor</title><meta charset="utf8"/></head>'
    "<body><h1>Добро пожаловать!</h1>"
    "</body></html>"
)
_STOPPED_PAGE = (
    '<html><head><title>Receptor</title><meta charset="utf8"/></head>'
    "<body><h1>Приложение остановлено!</h1>"
    "</body></html>"
)
_SERVER_ERROR_PAGE = (
    '<html><head><title>Ошибка сервера</title><meta charset="utf8"/></head>'
    "<body><h1>500 Internal server error</h1>"
    "</body></html>"
)
_NO_RULE_PAGE = (
    '<html><head><title>Ошибка</title><meta charset="utf8"/></head>'
    "<body><h1>Правило не определено</h1>"
    "</body></html>"
)
_REDIRECT_PAGE = (
    '<html><head><title>Перемещено</title><meta charset="utf8"/></head>'
    "<body><h1>307 Temporary redirect</h1>"
    "</body></html>"
)

Headers = Union[Mapping[str, str], Iterable[tuple[str, str]]]


class Redirector(ABC):
    """Asks for a redirect decision about a serialized request."""

    @abstractmethod
    def request(self, body: str) -> str:
        """Return the answer to body, or an empty string on failure."""


class HttpRedirector(Redirector):
    """POSTs the request as JSON to a redirector service over HTTP."""

    def __init__(self, host: str = REDIRECTOR_HOST, port: int = REDIRECTOR_PORT) -> None:
        self.host = host
        self.port = port

    def request(self, body: str) -> str:
        connection = http.client.HTTPConnection(self.host, self.port)
        try:
            connection.request(
                "POST",
                "/",
                body=body.encode("utf-8"),
                headers={"Content-Type": "application/json", "User-Agent": "redirex"},
            )
            response = connection.getresponse()
            return response.read().decode("utf-8", errors="replace")
        except (OSError, http.client.HTTPException) as error:
            logger.error("Error: %s", error)
            return ""
        finally:
            connection.close()


@dataclass
class Response:
    """An HTML response to a visitor."""

    status: HTTPStatus = HTTPStatus.OK
    body: str = ""
    headers: dict[str, str] = field(
        default_factory=lambda: {"Content-Type": "text/html"}
    )
    keep_alive: bool = True

    def to_bytes(self) -> bytes:
        """Return the response as HTTP/1.1 wire bytes."""
        body = self.body.encode("utf-8")
        lines = [f"HTTP/1.1 {self.status.value} {self.status.phrase}"]
        lines.extend(f"{name}: {value}" for name, value in self.headers.items())
        lines.append(f"Content-Length: {len(body)}")
        lines.append("Connection: keep-alive" if self.keep_alive else "Connection: close")
        return ("\r\n".join(lines) + "\r\n\r\n").encode("utf-8") + body


class _ProtocolError(Exception):
    pass


@dataclass
class _Request:
    target: str
    headers: list[tuple[str, str]]
    keep_alive: bool


def _readline(rfile: BinaryIO) -> bytes:
    line = rfile.readline(_MAX_LINE + 1)
    if len(line) > _MAX_LINE:
        raise _ProtocolError("line too long")
    return line


def _read_exact(rfile: BinaryIO, size: int) -> bytes:
    data = rfile.read(size)
    if len(data) < size:
        raise _ProtocolError("partial message")
    return data


def _skip_body(rfile: BinaryIO, headers: http.client.HTTPMessage) -> None:
    if "chunked" in headers.get("Transfer-Encoding", "").lower():
        while True:
            line = _readline(rfile)
            if not line:
                raise _ProtocolError("partial message")
            try:
                size = int(line.split(b";", 1)[0].strip(), 16)
            except ValueError as error:
                raise _ProtocolError("bad chunk size") from error
            if size == 0:
                while _readline(rfile) not in (b"\r\n", b"\n", b""):
                    pass
                return
            _read_exact(rfile, size)
            _readline(rfile)
    length = headers.get("Content-Length")
    if length is None:
        return
    try:
        size = int(length)
    except ValueError as error:
        raise _ProtocolError("bad content length") from error
    if size < 0:
        raise _ProtocolError("bad content length")
    _read_exact(rfile, size)


def _read_request(rfile: BinaryIO) -> Optional[_Request]:
    """Read one request; None at the end of the stream."""
    line = _readline(rfile)
    while line in (b"\r\n", b"\n"):
        line = _readline(rfile)
    if not line:
        return None
    parts = line.decode("latin-1").split()
    if len(parts) != 3 or not parts[2].startswith("HTTP/"):
        raise _ProtocolError("bad request line")
    _method, target, version = parts
    try:
        headers = http.client.parse_headers(rfile)
    except http.client.HTTPException as error:
        raise _ProtocolError(str(error)) from error
    _skip_body(rfile, headers)
    tokens = {
        token.strip().lower() for token in headers.get("Connection", "").split(",")
    }
    if version == "HTTP/1.0":
        keep_alive = "keep-alive" in tokens
    else:
        keep_alive = "close" not in tokens
    return _Request(target, list(headers.items()), keep_alive)


def _serve(port: int, stopped: Callable[[], bool], session: Callable[[BinaryIO, BinaryIO], None]) -> None:
    """Accept connections on port one at a time until stopped() is true."""
    with socket.create_server(("0.0.0.0", port)) as listener:
        listener.settimeout(_POLL_INTERVAL)
        while not stopped():
            try:
                connection, _ = listener.accept()
            except socket.timeout:
                continue
            try:
                with connection:
                    connection.settimeout(None)
                    with connection.makefile("rb") as rfile, connection.makefile(
                        "wb"
                    ) as wfile:
                        session(rfile, wfile)
            except OSError as error:
                logger.error("Connection error: %s", error)


class ReceptorServer(Command):
    """Answers visitors: a welcome page, a shutdown page, or a redirect decision."""

    def __init__(self, ioc: Optional[IoC] = None, port: int = DEFAULT_PORT) -> None:
        self._resolve = ioc.resolve if ioc is not None else _default_resolve
        self.port = port

    def _redirect(
        self, target: str, headers: Iterable[tuple[str, str]], response: Response
    ) -> None:
        document: dict[str, str] = {"target": target}
        first: dict[str, str] = {}
        for name, value in headers:
            document[name] = first.setdefault(name.lower(), value)
        text = json.dumps(document, separators=(",", ":"), ensure_ascii=False)

        redirector = self._resolve("Redirector.Get")
        result = redirector.request(text) if redirector else ""
        logger.info("Redirector.Get: %s", result)

        if not result:
            response.status = HTTPStatus.INTERNAL_SERVER_ERROR
            response.body = _SERVER_ERROR_PAGE
            return
        try:
            received = json.loads(result)
        except json.JSONDecodeError:
            return
        if not isinstance(received, dict):
            return
        if "error" in received:
            response.body = _NO_RULE_PAGE
        elif "redirect" in received:
            location = received["redirect"]
            response.status = HTTPStatus.TEMPORARY_REDIRECT
            response.headers["Location"] = (
                location if isinstance(location, str) else json.dumps(location)
            )
            response.body = _REDIRECT_PAGE

    def handle_request(self, target: str, headers: Headers, keep_alive: bool) -> Response:
        """Build the response to a request for target with the given headers."""
        pairs = headers.items() if isinstance(headers, Mapping) else headers
        response = Response(keep_alive=keep_alive)
        if target == "/":
            response.body = _WELCOME_PAGE
        elif target == "/shutdown":
            self._resolve("Server.Shutdown.Set", 1)
            response.body = _STOPPED_PAGE
        else:
            self._redirect(target, pairs, response)
        return response

    def do_session(self, rfile: BinaryIO, wfile: BinaryIO) -> None:
        """Answer requests on one connection until it ends, fails or asks to close."""
        logger.info("Create session")
        while True:
            try:
                request = _read_request(rfile)
            except (_ProtocolError, OSError) as error:
                logger.error("Read error: %s", error)
                return
            if request is None:
                break
            response = self.handle_request(
                request.target, request.headers, request.keep_alive
            )
            try:
                wfile.write(response.to_bytes())
                wfile.flush()
            except OSError as error:
                logger.error("Write error: %s", error)
                return
            if not response.keep_alive:
                break
        logger.info("Close session")

    def execute(self) -> None:
        """Listen on the port until shutdown is requested."""
        try:
            _serve(
                self.port,
                lambda: self._resolve("Server.Shutdown.Get") != 0,
                self.do_session,
            )
        except Exception as error:
            logger.error("Error: %s", error)


def create_environment(ioc: IoC) -> None:
    """Register every dependency the receptor service needs in the current scope."""
    state = {"shutdown": 0}

    def register(dependency: str, resolver: Callable[..., Any]) -> None:
        ioc.resolve("IoC.Register", dependency, resolver).execute()

    def set_shutdown(value: int) -> None:
        state["shutdown"] = value

    register("Server.Shutdown.Get", lambda: state["shutdown"])
    register("Server.Shutdown.Set", set_shutdown)
    register("ServerProcessCommand", lambda: ReceptorServer(ioc))
    register("Redirector.Get", HttpRedirector)


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the receptor service; it takes no options."""
    ioc = IoC()
    create_environment(ioc)

    def on_interrupt(signum: int, frame: Any) -> None:
        ioc.resolve("Server.Shutdown.Set", 1)
        print("Ctrl+C handled")

    try:
        signal.signal(signal.SIGINT, on_interrupt)
    except (ValueError, OSError):
        print("Error install signal action")
        return 1

    ioc.resolve("ServerProcessCommand").execute()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())