"""Streaming encoder for SQL hex byte literals."""

from __future__ import annotations


class HexEncoder:
    """Appends written bytes as a quoted ``'\\x...'`` literal to a prefix.

    If nothing was written before :meth:`close`, ``NULL`` is appended instead.
    """

    def __init__(self, prefix: bytes = b"") -> None:
        self._buf = bytearray(prefix)
        self._written = False

    def write(self, data: bytes) -> int:
        """Encode ``data`` and return the number of bytes consumed."""
        if not self._written:
            self._buf += b"'\\x"
            self._written = True
        self._buf += bytes(data).hex().encode("ascii")
        return len(data)

    def close(self) -> None:
        """Terminate the literal."""
        self._buf += b"'" if self._written else b"NULL"

    def getvalue(self) -> bytes:
        """Return everything accumulated so far."""
        return bytes(self._buf)

    def __enter__(self) -> HexEncoder:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()