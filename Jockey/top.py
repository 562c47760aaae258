"""
Jockey clients: fetch a URL once, or profile it with repeated requests.
Both clients normalize loose URLs ("example.com:8080/x") before sending.
"""

import asyncio
import threading
from typing import Dict, List, Optional, Union

from .base import AbortSignal, ClientConfig, RequestExecutor
from .middlewares import BaseMiddleware, LoggingMiddleware
from .models import Endpoint, HTTPRequest, ResponseOutcome
from .profile import ProfileResults, run_profile
from .utils import parse_fuzzy_url


def _resolve(target: Union[str, Endpoint]) -> Endpoint:
    return target if isinstance(target, Endpoint) else parse_fuzzy_url(target)


# Synchronous Client
class SyncJockeyClient:
    """Synchronous client: one request at a time, one connection per request."""

    def __init__(self, config: Optional[ClientConfig] = None,
                 middleware: Optional[List[BaseMiddleware]] = None,
                 executor: Optional[RequestExecutor] = None):
        self.config = config or ClientConfig()
        self._executor = executor or RequestExecutor(self.config)
        self.middleware = [LoggingMiddleware()] if middleware is None else middleware

    def execute(self, request: HTTPRequest, sink=None,
                abort: Optional[AbortSignal] = None) -> ResponseOutcome:
        """Run a request through the middleware and the executor."""
        for middleware in self.middleware:
            request = middleware.process_request(request)

        outcome = self._executor.execute(request, sink, abort)

        for middleware in reversed(self.middleware):
            outcome = middleware.process_outcome(request, outcome)
        return outcome

    def fetch(self, target: Union[str, Endpoint], sink=None,
              headers: Optional[Dict[str, str]] = None,
              abort: Optional[AbortSignal] = None) -> ResponseOutcome:
        """Fetch target, writing the body to sink. Raises on request failure."""
        request = HTTPRequest(_resolve(target), dict(headers or {}))
        outcome = self.execute(request, sink, abort)
        outcome.raise_for_error()
        return outcome

    def profile(self, target: Union[str, Endpoint], repetitions: int,
                headers: Optional[Dict[str, str]] = None,
                stop_event: Optional[threading.Event] = None) -> ProfileResults:
        """Request target `repetitions` times and return the statistics."""
        return run_profile(repetitions, _resolve(target), headers,
                           executor=self, stop_event=stop_event)


# Asynchronous Client
class AsyncJockeyClient:
    """Asynchronous wrapper that runs the blocking client in the loop's executor."""

    def __init__(self, config: Optional[ClientConfig] = None,
                 middleware: Optional[List[BaseMiddleware]] = None,
                 executor: Optional[RequestExecutor] = None):
        self._client = SyncJockeyClient(config, middleware, executor)

    @property
    def config(self) -> ClientConfig:
        return self._client.config

    async def fetch(self, target: Union[str, Endpoint], sink=None,
                    headers: Optional[Dict[str, str]] = None,
                    abort: Optional[AbortSignal] = None) -> ResponseOutcome:
        """Fetch target; cancelling the awaiting task closes the connection."""
        loop = asyncio.get_event_loop()
        abort = abort or AbortSignal()
        try:
            return await loop.run_in_executor(None, self._client.fetch, target, sink, headers, abort)
        except asyncio.CancelledError:
            abort.close()
            raise

    async def profile(self, target: Union[str, Endpoint], repetitions: int,
                      headers: Optional[Dict[str, str]] = None) -> ProfileResults:
        """Profile target; cancelling the awaiting task stops before the next request."""
        loop = asyncio.get_event_loop()
        stop_event = threading.Event()
        try:
            return await loop.run_in_executor(None, self._client.profile, target, repetitions,
                                              headers, stop_event)
        except asyncio.CancelledError:
            stop_event.set()
            raise
