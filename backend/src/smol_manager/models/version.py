"""Comparable mod versions.

Versions are ``major.minor.patch`` with an optional build/qualifier.
Components compare numerically on their leading digits (``0.15 > 0.2``),
then by whatever text follows.  A missing component sorts below a present
one, so ``1.0 < 1.0.0`` and every pair of versions is ordered.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_SPLIT_RE = re.compile(r"[.\-_+ ]+")
_DIGITS = "0123456789"


def _component_key(component: str | None) -> tuple[int, int, str]:
    if component is None or component == "":
        return (0, 0, "")
    text = component.strip().lower()
    rest = text.lstrip(_DIGITS)
    digits = text[: len(text) - len(rest)]
    return (1, int(digits) if digits else -1, rest)


@dataclass(frozen=True, slots=True)
class Version:
    raw: str
    major: str | None = None
    minor: str | None = None
    patch: str | None = None
    build: str | None = None

    @classmethod
    def parse(cls, raw: str | None) -> Version:
        """Split a free-form version string like ``1.2.3a`` or ``0.9.5-RC2``."""
        text = (raw or "").strip()
        parts = [p for p in _SPLIT_RE.split(text) if p]
        major, minor, patch = (parts + [None, None, None])[:3]
        build = ".".join(parts[3:]) or None
        return cls(raw=text, major=major, minor=minor, patch=patch, build=build)

    @classmethod
    def from_components(
        cls,
        major: str | int | None,
        minor: str | int | None = None,
        patch: str | int | None = None,
        build: str | int | None = None,
    ) -> Version:
        comps = [None if c is None or str(c) == "" else str(c) for c in (major, minor, patch, build)]
        raw = ".".join(c for c in comps[:3] if c is not None)
        if comps[3] is not None:
            raw = f"{raw}-{comps[3]}" if raw else comps[3]
        return cls(raw=raw, major=comps[0], minor=comps[1], patch=comps[2], build=comps[3])

    def sort_key(self) -> tuple[tuple[int, int, str], ...]:
        return tuple(_component_key(c) for c in (self.major, self.minor, self.patch, self.build))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() <= other.sort_key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() > other.sort_key()

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.sort_key() >= other.sort_key()

    def __str__(self) -> str:
        return self.raw
