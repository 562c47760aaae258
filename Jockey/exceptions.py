from typing import Optional

# Exceptions
class JockeyError(Exception):
    """Base exception for request failures."""
    def __init__(self, message: str, status: Optional[int] = None, bytes_read: int = 0):
        super().__init__(message)
        self.status = status
        self.bytes_read = bytes_read

class ConnectionError(JockeyError):
    """Raised when the connection (DNS, TCP connect or TLS handshake) fails."""
    pass

class RequestWriteError(JockeyError):
    """Raised when the request could not be fully sent."""
    pass

class ProtocolError(JockeyError):
    """Raised when the server response violates the HTTP grammar."""
    pass

class BadStatusLineError(ProtocolError):
    """Raised when the status line does not match the expected grammar."""
    def __init__(self, line: str, bytes_read: int = 0):
        super().__init__(f"bad status line: {line}", bytes_read=bytes_read)
        self.line = line

class ResponseReadError(JockeyError):
    """Raised when reading the response (or writing its body out) fails."""
    pass

class RequestAbortedError(ResponseReadError):
    """Raised when the abort signal force-closed the connection."""
    pass

class SelectionError(ValueError):
    """Raised on an invalid rank or an empty sequence."""
    pass
