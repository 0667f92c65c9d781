"""Parsing of struct-style field tags such as ``name,pk,type:varchar(50)``."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Tag:
    """A parsed tag: a leading name and repeated ``key:value`` options."""

    name: str = ""
    options: dict[str, list[str]] | None = None

    def is_zero(self) -> bool:
        """Return True for a tag parsed from an empty string."""
        return self.name == "" and self.options is None

    def has_option(self, name: str) -> bool:
        """Return True if the option is present."""
        return self.options is not None and name in self.options

    def option(self, name: str) -> str | None:
        """Return the last value given for an option, or None if absent."""
        if self.options is None or name not in self.options:
            return None
        return self.options[name][-1]


class _TagParser:
    def __init__(self, s: str) -> None:
        self.s = s
        self.i = 0
        self.tag = Tag()
        self.seen_name = False

    def set_name(self, name: str) -> None:
        if self.seen_name:
            self.add_option(name, "")
        else:
            self.seen_name = True
            self.tag.name = name

    def add_option(self, key: str, value: str) -> None:
        self.seen_name = True
        if not key:
            return
        if self.tag.options is None:
            self.tag.options = {}
        self.tag.options.setdefault(key, []).append(value)

    def valid(self) -> bool:
        return self.i < len(self.s)

    def read(self) -> str:
        if not self.valid():
            return ""
        c = self.s[self.i]
        self.i += 1
        return c

    def peek(self) -> str:
        return self.s[self.i] if self.valid() else ""

    def parse(self) -> Tag:
        while self.valid():
            self.parse_key_value()
            if self.peek() == ",":
                self.i += 1
        return self.tag

    def parse_key_value(self) -> None:
        start = self.i
        while self.valid():
            c = self.read()
            if c == ",":
                self.set_name(self.s[start:self.i - 1])
                return
            if c == ":":
                key = self.s[start:self.i - 1]
                self.add_option(key, self.parse_value())
                return
            if c == '"':
                self.set_name(self.parse_quoted_value())
                return
        self.set_name(self.s[start:self.i])

    def parse_value(self) -> str:
        start = self.i
        while self.valid():
            c = self.read()
            if c == '"':
                return self.parse_quoted_value()
            if c == ",":
                return self.s[start:self.i - 1]
            if c == "(":
                self.skip_pairs("(", ")")
        return self.s[start:self.i]

    def parse_quoted_value(self) -> str:
        end = self.s.find('"', self.i)
        if end >= 0 and self.s[end - 1] != "\\":
            value = self.s[self.i:end]
            self.i = end + 1
            return value

        out: list[str] = []
        while self.valid():
            c = self.read()
            if c == "\\":
                out.append(self.read())
            elif c == '"':
                return "".join(out)
            else:
                out.append(c)
        return ""

    def skip_pairs(self, start: str, end: str) -> None:
        level = 0
        while self.valid():
            c = self.read()
            if c == '"':
                self.parse_quoted_value()
            elif c == start:
                level += 1
            elif c == end:
                if level == 0:
                    return
                level -= 1


def parse(s: str) -> Tag:
    """Parse a tag string."""
    if not s:
        return Tag()
    return _TagParser(s).parse()