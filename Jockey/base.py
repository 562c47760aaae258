import io, logging, mmap, re, socket, ssl, threading, time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from .counter import CountingReader
from .exceptions import (JockeyError, ConnectionError, RequestWriteError, ProtocolError,
                         BadStatusLineError, ResponseReadError, RequestAbortedError)
from .models import Endpoint, HTTPRequest, ResponseOutcome

logger = logging.getLogger(__name__)

# See https://tools.ietf.org/html/rfc2616#section-6.1
# The trailing line ending is stripped before matching
STATUS_LINE_RE = re.compile(rb"(?:HTTP|http)/\d\.\d (\d{3}) (?:[\x21-\x7E\x80-\xFF][\x20-\x7E\x80-\xFF]*)?")

HTTP_CONTINUE = 100


# Engine Configuration
@dataclass
class ClientConfig:
    """Settings shared by every request a client makes."""
    user_agent: str = "Mozilla/5.0"
    buffer_pages: int = 16
    max_line_length: int = 65536
    connect_timeout: Optional[float] = None
    read_timeout: Optional[float] = None
    verify_tls: bool = False

    def __post_init__(self):
        if self.buffer_pages < 1:
            raise ValueError(f"buffer_pages must be at least 1, got {self.buffer_pages}")
        if self.max_line_length < 1:
            raise ValueError(f"max_line_length must be at least 1, got {self.max_line_length}")
        for name in ('connect_timeout', 'read_timeout'):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be positive or None, got {value}")

    @property
    def buffer_size(self) -> int:
        return mmap.PAGESIZE * self.buffer_pages


class DiscardSink:
    """Output sink that drops everything written to it."""

    def write(self, data) -> int:
        return len(data)

    def flush(self):
        pass


# Cancellation
class AbortSignal:
    """
    Lets a caller cut a request short from another thread.

    `abort(grace_period)` closes the connection once grace_period seconds have
    passed; `close()` closes it right away. Only the first call has any effect,
    and a signal that already fired aborts any request it is handed to.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._fired = False
        self._grace_period: Optional[float] = None
        self._listeners: List[Callable[[], None]] = []

    @property
    def fired(self) -> bool:
        return self._fired

    @property
    def grace_period(self) -> Optional[float]:
        return self._grace_period

    def abort(self, grace_period: Optional[float] = None):
        if grace_period is not None and grace_period < 0:
            raise ValueError(f"grace_period cannot be negative, got {grace_period}")
        with self._lock:
            if self._fired:
                return
            self._fired = True
            self._grace_period = grace_period
            listeners = list(self._listeners)
        for listener in listeners:
            listener()

    def close(self):
        self.abort(None)

    def add_listener(self, listener: Callable[[], None]):
        with self._lock:
            if not self._fired:
                self._listeners.append(listener)
                return
        listener()

    def remove_listener(self, listener: Callable[[], None]):
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)


def _force_close(sock: socket.socket):
    """Shut the socket down so a read blocked in another thread returns."""
    try:
        # Bypass SSLSocket.shutdown, which drops the TLS object under the reader
        socket.socket.shutdown(sock, socket.SHUT_RDWR)
    except OSError as e:
        logger.debug(f"Shutdown of aborted connection failed: {e}")


class AbortWatcher(threading.Thread):
    """Background waiter that races an AbortSignal against request completion."""

    def __init__(self, signal: AbortSignal, sock: socket.socket):
        super().__init__(name="jockey-abort-watcher", daemon=True)
        self._signal = signal
        self._sock = sock
        self._wake = threading.Event()
        self._done = threading.Event()
        self._lock = threading.Lock()
        self.fired = False

    def run(self):
        self._wake.wait()
        if self._done.is_set():
            return
        grace_period = self._signal.grace_period
        if grace_period:
            logger.debug(f"Abort received, closing connection in {grace_period:.3f}s")
            if self._done.wait(grace_period):
                return
        # A request that finished as the grace period ran out keeps its outcome
        with self._lock:
            if self._done.is_set():
                return
            self.fired = True
            logger.debug("Abort fired, closing connection")
            _force_close(self._sock)

    def __enter__(self) -> 'AbortWatcher':
        self._signal.add_listener(self._wake.set)
        self.start()
        return self

    def finish(self) -> bool:
        """Mark the request complete; returns whether the abort already fired."""
        with self._lock:
            self._done.set()
            return self.fired

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finish()
        self._wake.set()
        self.join()
        self._signal.remove_listener(self._wake.set)


# Connection Management
class ConnectionFactory:
    """Opens a fresh TCP connection per request, upgrading to TLS for https."""

    def __init__(self, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig()
        self._tls_context: Optional[ssl.SSLContext] = None

    def _get_tls_context(self) -> ssl.SSLContext:
        if self._tls_context is None:
            context = ssl.create_default_context()
            if not self.config.verify_tls:
                context.check_hostname = False
                context.verify_mode = ssl.CERT_NONE
            self._tls_context = context
        return self._tls_context

    def open(self, endpoint: Endpoint) -> socket.socket:
        try:
            sock = socket.create_connection((endpoint.host, endpoint.port),
                                            timeout=self.config.connect_timeout)
        except OSError as e:
            raise ConnectionError(f"could not connect to {endpoint.authority}: {e}")
        sock.settimeout(self.config.read_timeout)
        logger.debug(f"Connected to {endpoint.authority}")

        if endpoint.scheme == 'https':
            try:
                sock = self._get_tls_context().wrap_socket(sock, server_hostname=endpoint.host)
            except OSError as e:
                sock.close()
                raise ConnectionError(f"TLS handshake with {endpoint.authority} failed: {e}")
            logger.debug(f"Negotiated {sock.version()} with {endpoint.host}")
        return sock


# Core Request Execution Logic
class RequestExecutor:
    """
    Sends a single GET request over a fresh connection and reads the response.

    The response body is streamed into a sink while every byte received
    (status line, headers and body) is counted. Request failures never raise
    out of `execute`; they come back in the outcome's `error`.
    """

    def __init__(self, config: Optional[ClientConfig] = None,
                 connection_factory: Optional[ConnectionFactory] = None):
        self.config = config or ClientConfig()
        self.connection_factory = connection_factory or ConnectionFactory(self.config)

    def build_headers(self, endpoint: Endpoint,
                      overrides: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Default headers merged with overrides; names are matched case-insensitively."""
        headers = {
            'Host': endpoint.authority,
            'User-Agent': self.config.user_agent,
            'Accept': '*/*',
            'Accept-Encoding': 'identity',
            'Connection': 'close',
        }
        for name, value in (overrides or {}).items():
            for existing in [key for key in headers if key.lower() == name.lower()]:
                del headers[existing]
            headers[name] = value
        return headers

    def encode_request(self, request: HTTPRequest) -> bytes:
        lines = [f"GET {request.endpoint.request_uri} HTTP/1.1"]
        for name, value in self.build_headers(request.endpoint, request.headers).items():
            if any(c in f"{name}{value}" for c in '\r\n') or not name or ':' in name:
                raise RequestWriteError(f"invalid header: {name!r}")
            lines.append(f"{name}: {value}")
        try:
            return ("\r\n".join(lines) + "\r\n\r\n").encode('latin-1')
        except UnicodeEncodeError as e:
            raise RequestWriteError(f"request cannot be encoded: {e}")

    def execute(self, request: HTTPRequest, sink=None,
                abort: Optional[AbortSignal] = None) -> ResponseOutcome:
        """Execute a GET request and stream the response body into sink."""
        sink = sink if sink is not None else DiscardSink()
        outcome = ResponseOutcome()
        start_time = time.perf_counter()

        try:
            data = self.encode_request(request)
            sock = self.connection_factory.open(request.endpoint)
        except JockeyError as error:
            outcome.error = error
            outcome.elapsed = time.perf_counter() - start_time
            return outcome

        try:
            try:
                sock.sendall(data)
            except OSError as e:
                raise RequestWriteError(f"error sending request: {e}")
            logger.debug(f"Request sent: GET {request.endpoint.url}")

            if abort is None:
                self._read_response(sock, sink, outcome)
            else:
                with AbortWatcher(abort, sock) as watcher:
                    try:
                        self._read_response(sock, sink, outcome)
                    except ResponseReadError as error:
                        if not watcher.fired:
                            raise
                        raise RequestAbortedError(f"request aborted: {error}")
                    # The body ends at EOF, which a forced close also produces
                    if watcher.finish():
                        raise RequestAbortedError("request aborted")
        except JockeyError as error:
            error.status = outcome.status
            error.bytes_read = outcome.bytes_read
            outcome.error = error
        finally:
            sock.close()
            outcome.elapsed = time.perf_counter() - start_time

        return outcome

    def _read_response(self, sock: socket.socket, sink, outcome: ResponseOutcome):
        """Parse status line and headers, then copy the body into sink."""
        raw = sock.makefile('rb', buffering=0)
        counter = CountingReader(raw)
        reader = io.BufferedReader(counter, buffer_size=self.config.buffer_size)
        try:
            # Interim 100 Continue responses, headers included, are skipped
            while True:
                line = self._read_line(reader, "status line")
                match = STATUS_LINE_RE.fullmatch(line)
                if match is None:
                    raise BadStatusLineError(line.decode('latin-1'))
                outcome.status = int(match.group(1))
                logger.debug(f"Status line: {line.decode('latin-1')}")
                if outcome.status != HTTP_CONTINUE:
                    break
                outcome.status = None
                self._skip_headers(reader)

            self._skip_headers(reader)

            while True:
                try:
                    chunk = reader.read1(self.config.buffer_size)
                except OSError as e:
                    raise ResponseReadError(f"error reading response body: {e}")
                if not chunk:
                    break
                try:
                    sink.write(chunk)
                except (OSError, ValueError) as e:
                    raise ResponseReadError(f"error writing response body: {e}")
        finally:
            outcome.bytes_read = counter.count
            reader.close()
            raw.close()

    def _skip_headers(self, reader):
        while self._read_line(reader, "headers"):
            pass

    def _read_line(self, reader, phase: str) -> bytes:
        limit = self.config.max_line_length + 2
        try:
            line = reader.readline(limit)
        except OSError as e:
            raise ResponseReadError(f"error reading {phase}: {e}")
        if not line:
            raise ResponseReadError(f"connection closed while reading {phase}")
        if len(line) >= limit and not line.endswith(b"\n"):
            raise ProtocolError(f"line too long while reading {phase}")
        if line.endswith(b"\n"):
            line = line[:-1]
            if line.endswith(b"\r"):
                line = line[:-1]
        return line


def make_request(endpoint: Endpoint, sink=None, headers: Optional[Dict[str, str]] = None,
                 abort: Optional[AbortSignal] = None,
                 config: Optional[ClientConfig] = None) -> ResponseOutcome:
    """Send one GET request to endpoint; see RequestExecutor.execute."""
    return RequestExecutor(config).execute(HTTPRequest(endpoint, dict(headers or {})), sink, abort)
