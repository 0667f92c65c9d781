"""Bit flags stored in a single integer."""

from __future__ import annotations


class Flag(int):
    """An immutable set of bit flags."""

    def has(self, other: int) -> bool:
        """Return True if any bit of ``other`` is set."""
        return self & other != 0

    def set(self, other: int) -> Flag:
        """Return a copy with the bits of ``other`` set."""
        return Flag(self | other)

    def remove(self, other: int) -> Flag:
        """Return a copy with the bits of ``other`` cleared."""
        return Flag(self & ~other)

    def __repr__(self) -> str:
        return f"Flag({int(self):#x})"