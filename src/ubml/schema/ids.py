"""Identifier formatting, parsing and validation."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

_ID_PARTS_RE = re.compile(r"^([A-Z]+)(\d+)$")


@dataclass(frozen=True)
class IdConfig:
    """Workspace-wide identifier settings (``x-ubml-id-config``)."""

    digit_length: int = 5
    init_offset: int = 1


@dataclass(frozen=True)
class IdScheme:
    """The prefix table plus digit width that together define valid IDs.

    >>> scheme = IdScheme({"AC": "actor", "PR": "process"})
    >>> scheme.format_id("AC", 1)
    'AC00001'
    >>> scheme.is_valid_id("PR00012"), scheme.is_valid_id("PR12")
    (True, False)
    """

    prefixes: Mapping[str, str]
    config: IdConfig = IdConfig()
    _pattern: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # Longest prefix first so ROI is tried before any two-letter prefix.
        alternation = "|".join(sorted(self.prefixes, key=lambda p: (-len(p), p)))
        pattern = re.compile(rf"^({alternation})\d{{{self.config.digit_length},}}$")
        object.__setattr__(self, "_pattern", pattern)

    @property
    def pattern(self) -> re.Pattern[str]:
        return self._pattern

    def is_valid_id(self, value: object) -> bool:
        return isinstance(value, str) and self._pattern.match(value) is not None

    def format_id(self, prefix: str, number: int) -> str:
        return f"{prefix}{str(number).zfill(self.config.digit_length)}"

    def get_id_prefix(self, value: str) -> str | None:
        match = _ID_PARTS_RE.match(value)
        if match is None or match.group(1) not in self.prefixes:
            return None
        return match.group(1)

    def get_element_type(self, value: str) -> str | None:
        prefix = self.get_id_prefix(value)
        return self.prefixes[prefix] if prefix else None

    def get_next_id(
        self, prefix: str, existing: Iterable[str], start_from: int | None = None
    ) -> str:
        """First free ID for ``prefix`` at or after ``start_from``."""
        taken = set(existing)
        number = self.config.init_offset if start_from is None else start_from
        candidate = self.format_id(prefix, number)
        while candidate in taken:
            number += 1
            candidate = self.format_id(prefix, number)
        return candidate


def parse_id_number(value: str) -> int | None:
    """Numeric part of an ID, e.g. ``PR01000`` -> ``1000``."""
    match = _ID_PARTS_RE.match(value)
    return int(match.group(2)) if match else None


def split_id(value: str) -> tuple[str, str] | None:
    """Split ``AC00001`` into ``("AC", "00001")`` without checking the prefix."""
    match = _ID_PARTS_RE.match(value)
    return (match.group(1), match.group(2)) if match else None
