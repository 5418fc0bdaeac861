"""Received header chain reconstruction.

The chain is the list of raw ``Received`` header lines in the order they appear
in the message (most recent hop first). Lines are never reordered, deduplicated
or rewritten.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from mail_provenance.models import HeaderLine

RECEIVED = "received"

_WHITESPACE = re.compile(r"\s+")
_FROM = re.compile(r"\bfrom\s+(\S+)", re.IGNORECASE)
_BY = re.compile(r"\bby\s+(\S+)", re.IGNORECASE)
_WITH = re.compile(r"\bwith\s+(\S+)", re.IGNORECASE)
_IPV4 = re.compile(r"\[(\d{1,3}(?:\.\d{1,3}){3})\]")


@dataclass(frozen=True)
class RelayHop:
    """Display-only breakdown of one Received line."""

    raw: str
    from_host: str | None = None
    by_host: str | None = None
    protocol: str | None = None
    ip: str | None = None


def extract_chain(header_lines: Iterable[HeaderLine]) -> list[str]:
    """Return the raw Received lines in original order."""
    return [h.line for h in header_lines if h.key == RECEIVED]


def describe_hop(line: str) -> RelayHop:
    """Pull the from/by/with/IP tokens out of a Received line.

    This is presentation only. Received headers are free-form and any field may
    be missing or wrong.
    """

    one = _WHITESPACE.sub(" ", line).strip()

    def _first(pattern: re.Pattern[str]) -> str | None:
        match = pattern.search(one)
        return match.group(1) if match else None

    return RelayHop(
        raw=one,
        from_host=_first(_FROM),
        by_host=_first(_BY),
        protocol=_first(_WITH),
        ip=_first(_IPV4),
    )
