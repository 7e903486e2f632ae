from typing import Any


class Key:
    """Case-insensitive identity for nicks, event names and driver codes.

    ``Key("HAM") == Key("ham")`` and both hash the same, so keys can be
    compared directly or used in sets and dicts.
    """

    __slots__ = ("raw", "folded")

    def __init__(self, raw: str):
        self.raw = raw
        self.folded = raw.casefold()

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Key):
            return self.folded == other.folded
        if isinstance(other, str):
            return self.folded == other.casefold()
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.folded)

    def __repr__(self) -> str:
        return f"Key({self.raw!r})"

    def __str__(self) -> str:
        return self.raw
