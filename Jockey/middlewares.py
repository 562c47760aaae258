import logging
# Configure logging
logger = logging.getLogger(__name__)

from typing import Optional

from .models import *

# Middleware System
class BaseMiddleware:
    """Base class for request middleware."""

    def process_request(self, request: HTTPRequest) -> HTTPRequest:
        """Process the request before it's sent."""
        return request

    def process_outcome(self, request: HTTPRequest, outcome: ResponseOutcome) -> ResponseOutcome:
        """Process the outcome of a request, successful or not."""
        return outcome

class LoggingMiddleware(BaseMiddleware):
    """Middleware for logging requests and their outcomes."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def process_request(self, request: HTTPRequest) -> HTTPRequest:
        self.logger.debug(f"Request: GET {request.endpoint.url}")
        return request

    def process_outcome(self, request: HTTPRequest, outcome: ResponseOutcome) -> ResponseOutcome:
        if outcome.error is not None:
            self.logger.debug(f"Request failed: GET {request.endpoint.url} - {outcome.error}")
        else:
            self.logger.debug(f"Response: {outcome.status} {outcome.bytes_read} bytes ({outcome.elapsed:.3f}s)")
        return outcome

class UserAgentMiddleware(BaseMiddleware):
    """Middleware for adding a User-Agent header."""

    def __init__(self, user_agent: str):
        self.user_agent = user_agent

    def process_request(self, request: HTTPRequest) -> HTTPRequest:
        if not any(name.lower() == 'user-agent' for name in request.headers):
            request.headers['User-Agent'] = self.user_agent
        return request
