"""
Delimiter-based line framing for serial output.
"""

from serialgate.core.exceptions import ConfigError


class LineFramer:
    """
    Splits an unbounded byte stream into text lines.

    Bytes are buffered across feeds until the delimiter is seen. The
    delimiter is stripped from emitted lines and empty lines are dropped.
    """

    def __init__(self, delimiter: str = "\n", encoding: str = "utf-8"):
        if not delimiter:
            raise ConfigError("Line delimiter must not be empty")
        self.delimiter = delimiter
        self.encoding = encoding
        self._delim = delimiter.encode(encoding)
        self._buffer = bytearray()

    def feed(self, data: bytes) -> list[str]:
        """Add bytes and return any complete lines, in arrival order."""
        self._buffer.extend(data)
        lines = []
        while True:
            pos = self._buffer.find(self._delim)
            if pos == -1:
                break
            chunk = bytes(self._buffer[:pos])
            del self._buffer[: pos + len(self._delim)]
            if chunk:
                lines.append(chunk.decode(self.encoding, errors="replace"))
        return lines

    @property
    def pending(self) -> int:
        """Number of buffered bytes awaiting a delimiter."""
        return len(self._buffer)

    def reset(self) -> None:
        """Discard any partial line."""
        self._buffer.clear()
