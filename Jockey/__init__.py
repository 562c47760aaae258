"""Jockey - A raw-socket HTTP/1.1 client for fetching and profiling URLs."""

# Import key classes for easier access
from .base import AbortSignal, ClientConfig, DiscardSink, RequestExecutor, make_request
from .counter import CountingReader
from .exceptions import (
    JockeyError,
    ConnectionError,
    RequestWriteError,
    ProtocolError,
    BadStatusLineError,
    ResponseReadError,
    RequestAbortedError,
    SelectionError
)
from .middlewares import BaseMiddleware, LoggingMiddleware, UserAgentMiddleware
from .models import Endpoint, HTTPRequest, ResponseOutcome
from .profile import ProfileResults, run_profile
from .quickselect import quickselect, median
from .top import SyncJockeyClient, AsyncJockeyClient
from .client_factory import (
    create_sync_client,
    create_async_client,
    load_client_config,
    ClientFactory
)
from .utils import parse_fuzzy_url, parse_header_args

__version__ = "0.1.0"
__author__ = "Moises-Tohias"
