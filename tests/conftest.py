"""Fixtures starting a fake upstream and a relay on ephemeral ports."""

import threading
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from planrelay.forwarder import Relay
from planrelay.server import RelayServer

ORIGIN = "https://planner.test"


class UpstreamHandler(BaseHTTPRequestHandler):
    """Records each POST and answers with the server's canned reply."""

    def log_message(self, format, *args):
        pass  # Quiet logging

    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length) if length > 0 else b""
        self.server.received.append({
            "path": self.path,
            "content_type": self.headers.get("Content-Type"),
            "body": body,
        })

        status, text, content_type = self.server.reply
        data = text if isinstance(text, bytes) else text.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(data)))
        self.end_headers()
        self.wfile.write(data)


class UpstreamServer(HTTPServer):
    def __init__(self):
        super().__init__(("127.0.0.1", 0), UpstreamHandler)
        self.received = []
        self.reply = (200, '{"accepted": true}', "application/json")

    @property
    def url(self):
        return f"http://127.0.0.1:{self.server_address[1]}/plans"


def _start(server):
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    return thread


@pytest.fixture
def upstream():
    server = UpstreamServer()
    _start(server)
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def relay_server():
    """Factory starting a relay server for a given Relay; returns its URL."""
    servers = []

    def start(relay):
        server = RelayServer(("127.0.0.1", 0), relay)
        _start(server)
        servers.append(server)
        return f"http://127.0.0.1:{server.server_address[1]}/"

    yield start
    for server in servers:
        server.shutdown()
        server.server_close()


@pytest.fixture
def relay_url(upstream, relay_server):
    return relay_server(Relay(upstream.url, ORIGIN))


@pytest.fixture
def dead_relay_url(relay_server):
    """Relay whose upstream port has nothing listening."""
    listener = HTTPServer(("127.0.0.1", 0), BaseHTTPRequestHandler)
    port = listener.server_address[1]
    listener.server_close()

    return relay_server(Relay(f"http://127.0.0.1:{port}/plans", ORIGIN))
