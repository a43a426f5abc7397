import io
import json
import re
import socket
import threading
import time
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from redirex.ioc import IoC
from redirex.receptor import (
    HttpRedirector,
    ReceptorServer,
    Redirector,
    Response,
    create_environment,
)


class _FakeRedirector(Redirector):
    def __init__(self, reply):
        self.reply = reply
        self.sent = []

    def request(self, body):
        self.sent.append(body)
        return self.reply


def _ioc_with(redirector):
    container = IoC()
    container.resolve("IoC.Register", "Redirector.Get", lambda: redirector).execute()
    return container


def test_root_page_welcomes():
    response = ReceptorServer(IoC()).handle_request("/", [], True)
    assert response.status == HTTPStatus.OK
    assert "Добро пожаловать" in response.body


def test_shutdown_sets_flag():
    container = IoC()
    calls = []
    container.resolve("IoC.Register", "Server.Shutdown.Set", calls.append).execute()
    response = ReceptorServer(container).handle_request("/shutdown", [], True)
    assert calls == [1]
    assert "Приложение остановлено" in response.body


def test_redirect_answer_gives_temporary_redirect():
    fake = _FakeRedirector('{"redirect":"https://example.com/"}')
    response = ReceptorServer(_ioc_with(fake)).handle_request("/x", [], True)
    assert response.status == HTTPStatus.TEMPORARY_REDIRECT
    assert response.headers["Location"] == "https://example.com/"
    assert "307 Temporary redirect" in response.body


def test_error_answer_gives_no_rule_page():
    fake = _FakeRedirector('{"error":"no_rule"}')
    response = ReceptorServer(_ioc_with(fake)).handle_request("/x", [], True)
    assert response.status == HTTPStatus.OK
    assert "Правило не определено" in response.body


def test_empty_answer_is_server_error():
    response = ReceptorServer(_ioc_with(_FakeRedirector(""))).handle_request(
        "/x", [], True
    )
    assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR
    assert "500 Internal server error" in response.body


def test_missing_redirector_is_server_error():
    response = ReceptorServer(_ioc_with(None)).handle_request("/x", [], True)
    assert response.status == HTTPStatus.INTERNAL_SERVER_ERROR


def test_unparsable_answer_gives_empty_page():
    response = ReceptorServer(_ioc_with(_FakeRedirector("garbage"))).handle_request(
        "/x", [], True
    )
    assert (response.status, response.body) == (HTTPStatus.OK, "")


def test_request_is_sent_as_json_with_target_and_headers():
    fake = _FakeRedirector('{"error":"no_rule"}')
    ReceptorServer(_ioc_with(fake)).handle_request(
        "/page", [("User-Agent", "Firefox"), ("Accept-Language", "ru-RU")], True
    )
    assert json.loads(fake.sent[0]) == {
        "target": "/page",
        "User-Agent": "Firefox",
        "Accept-Language": "ru-RU",
    }


def test_repeated_header_takes_first_value():
    fake = _FakeRedirector('{"error":"no_rule"}')
    ReceptorServer(_ioc_with(fake)).handle_request(
        "/page", [("Accept", "a"), ("Accept", "b")], True
    )
    assert json.loads(fake.sent[0])["Accept"] == "a"


def test_response_bytes_carry_length_and_connection():
    raw = Response(body="привет", keep_alive=False).to_bytes()
    head, _, body = raw.partition(b"\r\n\r\n")
    length = int(re.search(rb"Content-Length: (\d+)", head).group(1))
    assert length == len(body)
    assert body.decode("utf-8") == "привет"
    assert b"Connection: close" in head


def _session(server, data: bytes) -> bytes:
    out = io.BytesIO()
    server.do_session(io.BytesIO(data), out)
    return out.getvalue()


def test_session_answers_pipelined_requests():
    request = b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n"
    raw = _session(ReceptorServer(IoC()), request * 2)
    assert raw.count(b"HTTP/1.1 200 OK") == 2


def test_session_stops_after_connection_close():
    request = b"GET / HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n"
    raw = _session(ReceptorServer(IoC()), request * 2)
    assert raw.count(b"HTTP/1.1 200 OK") == 1


def test_session_http10_closes_by_default():
    request = b"GET / HTTP/1.0\r\n\r\n"
    raw = _session(ReceptorServer(IoC()), request * 2)
    assert raw.count(b"HTTP/1.1 200 OK") == 1


def test_session_bad_request_line_gets_no_answer():
    assert _session(ReceptorServer(IoC()), b"nonsense\r\n\r\n") == b""


def test_session_forwards_headers():
    fake = _FakeRedirector('{"redirect":"https://example.com/"}')
    request = b"GET /page HTTP/1.1\r\nHost: a\r\nUser-Agent: Firefox\r\n\r\n"
    raw = _session(ReceptorServer(_ioc_with(fake)), request)
    assert raw.startswith(b"HTTP/1.1 307 ")
    assert b"Location: https://example.com/" in raw
    assert json.loads(fake.sent[0]) == {
        "target": "/page",
        "Host": "a",
        "User-Agent": "Firefox",
    }


class _Echo(BaseHTTPRequestHandler):
    def do_POST(self):
        body = self.rfile.read(int(self.headers["Content-Length"]))
        reply = json.dumps(
            {"got": body.decode("utf-8"), "type": self.headers["Content-Type"]}
        ).encode("utf-8")
        self.send_response(200)
        self.send_header("Content-Length", str(len(reply)))
        self.end_headers()
        self.wfile.write(reply)

    def log_message(self, *args):
        pass


@pytest.fixture
def echo_server():
    server = HTTPServer(("127.0.0.1", 0), _Echo)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield server.server_address[1]
    server.shutdown()
    server.server_close()


def test_http_redirector_posts_json(echo_server):
    result = HttpRedirector("127.0.0.1", echo_server).request('{"a":1}')
    assert json.loads(result) == {"got": '{"a":1}', "type": "application/json"}


def _free_port() -> int:
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        return probe.getsockname()[1]


def test_http_redirector_returns_empty_on_failure():
    assert HttpRedirector("127.0.0.1", _free_port()).request("{}") == ""


def test_environment_shutdown_flag():
    container = IoC()
    create_environment(container)
    assert container.resolve("Server.Shutdown.Get") == 0
    container.resolve("Server.Shutdown.Set", 1)
    assert container.resolve("Server.Shutdown.Get") == 1


def test_environment_builds_server_and_redirector():
    container = IoC()
    create_environment(container)
    server = container.resolve("ServerProcessCommand")
    redirector = container.resolve("Redirector.Get")
    assert isinstance(server, ReceptorServer) and server.port == 8080
    assert (redirector.host, redirector.port) == ("127.0.0.1", 18081)


def _connect(port: int) -> socket.socket:
    deadline = time.monotonic() + 5
    while True:
        try:
            return socket.create_connection(("127.0.0.1", port), timeout=5)
        except OSError:
            if time.monotonic() > deadline:
                raise
            time.sleep(0.05)


def test_execute_stops_after_shutdown_request():
    container = IoC()
    create_environment(container)
    port = _free_port()
    server = threading.Thread(
        target=ReceptorServer(container, port).execute, daemon=True
    )
    server.start()
    with _connect(port) as client:
        client.sendall(
            b"GET /shutdown HTTP/1.1\r\nHost: localhost\r\nConnection: close\r\n\r\n"
        )
        raw = b""
        while chunk := client.recv(4096):
            raw += chunk
    server.join(5)
    assert not server.is_alive()
    assert raw.startswith(b"HTTP/1.1 200 OK")
    assert container.resolve("Server.Shutdown.Get") == 1