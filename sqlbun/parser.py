"""A small cursor over text used to scan query templates."""

from __future__ import annotations

import re

_DIGITS = re.compile(r"[0-9]+")


def _is_num(c: str) -> bool:
    return "0" <= c <= "9"


def _is_alpha(c: str) -> bool:
    return "a" <= c <= "z" or "A" <= c <= "Z"


class Parser:
    """Reads characters from a string, keeping track of a position."""

    def __init__(self, data: str) -> None:
        self._data = data
        self._pos = 0

    def valid(self) -> bool:
        """Return True while there is input left."""
        return self._pos < len(self._data)

    def remaining(self) -> str:
        """Return the unread input."""
        return self._data[self._pos:]

    def read(self) -> str:
        """Consume and return one character, or "" at the end."""
        c = self.peek()
        if c:
            self._pos += 1
        return c

    def peek(self) -> str:
        """Return the next character without consuming it, or "" at the end."""
        return self._data[self._pos] if self.valid() else ""

    def advance(self) -> None:
        """Move past one character."""
        self._pos += 1

    def skip(self, char: str) -> bool:
        """Consume ``char`` if it comes next."""
        if self.valid() and self.peek() == char:
            self.advance()
            return True
        return False

    def skip_bytes(self, prefix: str) -> bool:
        """Consume ``prefix`` if the input continues with it."""
        if self._data.startswith(prefix, self._pos):
            self._pos += len(prefix)
            return True
        return False

    def read_sep(self, sep: str) -> tuple[str, bool]:
        """Read up to ``sep`` and consume it.

        Returns the text read and whether the separator was found; without it
        the rest of the input is returned.
        """
        ind = self._data.find(sep, self._pos)
        if ind == -1:
            text = self._data[self._pos:]
            self._pos = len(self._data)
            return text, False
        text = self._data[self._pos:ind]
        self._pos = ind + len(sep)
        return text, True

    def read_identifier(self) -> tuple[str, bool]:
        """Read an identifier or a parenthesised name.

        Returns the name and whether it is purely numeric.
        """
        if self.peek() == "(":
            end = self._data.find(")", self._pos + 1)
            if end != -1:
                name = self._data[self._pos + 1:end]
                self._pos = end + 1
                return name, False

        rest = self.remaining()
        length = len(rest)
        alpha = False
        for i, c in enumerate(rest):
            if _is_num(c):
                continue
            if _is_alpha(c) or (i > 0 and alpha and c == "_"):
                alpha = True
                continue
            length = i
            break
        if length == 0:
            return "", False
        self._pos += length
        return rest[:length], not alpha

    def read_number(self) -> int:
        """Read a run of decimal digits, returning 0 if there is none."""
        match = _DIGITS.match(self._data, self._pos)
        if match is None:
            return 0
        self._pos = match.end()
        return int(match.group())