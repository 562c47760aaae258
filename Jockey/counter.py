import io


class CountingReader(io.RawIOBase):
    """Raw stream that counts the bytes pulled from the stream it wraps.

    The count reflects bytes received from the underlying stream, so a
    buffered reader stacked on top may have counted bytes it has not yet
    handed to its own caller.
    """

    def __init__(self, raw):
        super().__init__()
        self._raw = raw
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        n = self._raw.readinto(buffer)
        if n:
            self._count += n
        return n

    def close(self):
        # The wrapped stream belongs to the caller
        self._raw = None
        super().close()
