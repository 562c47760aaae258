"""
Pytest shared fixtures

Provides a threaded mock HTTP server that answers every connection with the
next canned response in its cycle, optionally over TLS with a self-signed
certificate generated for the test session.
"""

import shutil
import socket
import ssl
import subprocess
import threading
from typing import List, Optional, Sequence, Union

import pytest

from Jockey import Endpoint


class MockServer:
    """
    Minimal HTTP server sending pre-designated responses.

    For each connection it reads the request up to the blank line, waits
    `delay` seconds, writes the next response in the cycle and closes.
    """

    def __init__(self, responses: Sequence[Sequence[Union[str, bytes]]], delay: float = 0.0,
                 tls_context: Optional[ssl.SSLContext] = None):
        self.responses: List[List[bytes]] = [
            [part.encode('latin-1') if isinstance(part, str) else part for part in response]
            for response in responses
        ]
        self.delay = delay
        self.tls_context = tls_context
        self.requests: List[bytes] = []
        self._stop = threading.Event()
        self._listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        self._listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        self._listener.bind(('127.0.0.1', 0))
        self._listener.listen(16)
        self._listener.settimeout(0.05)
        self._thread = threading.Thread(target=self._serve, daemon=True)

    @property
    def port(self) -> int:
        return self._listener.getsockname()[1]

    @property
    def scheme(self) -> str:
        return 'https' if self.tls_context else 'http'

    @property
    def url(self) -> str:
        return f"{self.scheme}://127.0.0.1:{self.port}"

    @property
    def endpoint(self) -> Endpoint:
        return Endpoint(self.scheme, '127.0.0.1', self.port)

    def response_lengths(self) -> List[int]:
        return [sum(len(part) for part in response) for response in self.responses]

    def start(self) -> 'MockServer':
        self._thread.start()
        return self

    def stop(self):
        self._stop.set()
        self._thread.join(timeout=5)
        self._listener.close()

    def _serve(self):
        i = 0
        while not self._stop.is_set():
            try:
                client, _ = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            if self.tls_context is not None:
                try:
                    client = self.tls_context.wrap_socket(client, server_side=True)
                except OSError:
                    # Handshake refused by the client (certificate checks)
                    client.close()
                    continue
            with client:
                self._handle(client, self.responses[i])
            i = (i + 1) % len(self.responses)

    def _handle(self, client: socket.socket, response: List[bytes]):
        reader = client.makefile('rb')
        lines = []
        while True:
            line = reader.readline()
            if not line or line in (b"\r\n", b"\n"):
                break
            lines.append(line)
        reader.close()
        self.requests.append(b"".join(lines))

        if self.delay and self._stop.wait(self.delay):
            return
        try:
            for part in response:
                client.sendall(part)
        except OSError:
            # Client went away (aborted requests)
            pass


@pytest.fixture(scope="session")
def tls_server_context(tmp_path_factory) -> ssl.SSLContext:
    """Server-side TLS context holding a freshly generated self-signed certificate."""
    openssl = shutil.which("openssl")
    if openssl is None:
        pytest.skip("openssl is needed to generate a test certificate")
    directory = tmp_path_factory.mktemp("tls")
    cert, key = directory / "cert.pem", directory / "key.pem"
    subprocess.run(
        [openssl, "req", "-x509", "-newkey", "rsa:2048", "-nodes", "-days", "1",
         "-subj", "/CN=localhost", "-keyout", str(key), "-out", str(cert)],
        check=True, capture_output=True)
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
    context.load_cert_chain(str(cert), str(key))
    return context


@pytest.fixture
def mock_server():
    """Factory fixture: mock_server(responses, delay=0.0, tls_context=None) -> running MockServer."""
    servers = []

    def start(responses, delay=0.0, tls_context=None):
        server = MockServer(responses, delay, tls_context).start()
        servers.append(server)
        return server

    yield start
    for server in servers:
        server.stop()


@pytest.fixture
def closed_port() -> int:
    """A localhost port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(('127.0.0.1', 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
