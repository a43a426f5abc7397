"""Endpoints that read a request body and answer with a JSON response."""

from __future__ import annotations

import http.client
import json
from abc import ABC, abstractmethod
from http import HTTPStatus
from typing import BinaryIO

_MAX_LINE = 65536


class EndPointError(RuntimeError):
    """Raised when an endpoint cannot read or write."""


class EndPoint(ABC):
    """Reads a request and writes either a final answer or an error."""

    @abstractmethod
    def read(self) -> str:
        """Return the body of the next request."""

    @abstractmethod
    def write_done(self, data: str) -> None:
        """Send a successful answer."""

    @abstractmethod
    def write_error(self, data: str) -> None:
        """Send an error answer."""


class HttpEndPoint(EndPoint):
    """HTTP/1.1 over a pair of binary streams, one request and response at a time."""

    def __init__(self, rfile: BinaryIO, wfile: BinaryIO) -> None:
        self._rfile = rfile
        self._wfile = wfile

    def _readline(self) -> bytes:
        line = self._rfile.readline(_MAX_LINE + 1)
        if len(line) > _MAX_LINE:
            raise EndPointError("line too long")
        return line

    def _read_exact(self, size: int) -> bytes:
        data = self._rfile.read(size)
        if len(data) < size:
            raise EndPointError("partial message")
        return data

    def _read_chunked(self) -> bytes:
        parts = []
        while True:
            line = self._readline()
            if not line:
                raise EndPointError("partial message")
            try:
                size = int(line.split(b";", 1)[0].strip(), 16)
            except ValueError as error:
                raise EndPointError("bad chunk size") from error
            if size == 0:
                while self._readline() not in (b"\r\n", b"\n", b""):
                    pass
                return b"".join(parts)
            parts.append(self._read_exact(size))
            self._readline()

    def _read_body(self, headers: http.client.HTTPMessage) -> bytes:
        if "chunked" in headers.get("Transfer-Encoding", "").lower():
            return self._read_chunked()
        length = headers.get("Content-Length")
        if length is None:
            return b""
        try:
            size = int(length)
        except ValueError as error:
            raise EndPointError("bad content length") from error
        if size < 0:
            raise EndPointError("bad content length")
        return self._read_exact(size)

    def read(self) -> str:
        """Read one request and return its body; EndPointError at end of stream."""
        try:
            line = self._readline()
            while line in (b"\r\n", b"\n"):
                line = self._readline()
            if not line:
                raise EndPointError("EOF received")
            parts = line.decode("latin-1").split()
            if len(parts) != 3 or not parts[2].startswith("HTTP/"):
                raise EndPointError("bad request line")
            headers = http.client.parse_headers(self._rfile)
            body = self._read_body(headers)
        except EndPointError:
            raise
        except (OSError, http.client.HTTPException) as error:
            raise EndPointError(str(error)) from error
        return body.decode("utf-8", errors="replace")

    def _send(self, status: HTTPStatus, data: str) -> None:
        body = data.encode("utf-8")
        head = (
            f"HTTP/1.1 {status.value} {status.phrase}\r\n"
            "Content-Type: application/json\r\n"
            f"Content-Length: {len(body)}\r\n"
            "\r\n"
        )
        try:
            self._wfile.write(head.encode("latin-1") + body)
            self._wfile.flush()
        except OSError as error:
            raise EndPointError(str(error)) from error

    def write(self, data: str) -> None:
        """Send a 200 response with a JSON body."""
        self._send(HTTPStatus.OK, data)

    def write_done(self, data: str) -> None:
        """Send a 200 response with a JSON body."""
        self._send(HTTPStatus.OK, data)

    def write_error(self, data: str) -> None:
        """Send a 406 response with a JSON body."""
        self._send(HTTPStatus.NOT_ACCEPTABLE, data)


def _serialize(value: dict) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


class JsonEndPoint(EndPoint):
    """Wraps an endpoint: only JSON bodies are read, answers are JSON objects."""

    def __init__(self, endpoint: EndPoint) -> None:
        self._endpoint = endpoint

    def read(self) -> str:
        """Return the next body if it is valid JSON, else an empty string."""
        body = self._endpoint.read()
        try:
            json.loads(body)
        except json.JSONDecodeError:
            return ""
        return body

    def write_done(self, data: str) -> None:
        """Answer with {"redirect": data}."""
        self._endpoint.write_done(_serialize({"redirect": data}))

    def write_error(self, data: str) -> None:
        """Answer with {"error": data}."""
        self._endpoint.write_error(_serialize({"error": data}))