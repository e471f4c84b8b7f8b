"""
Coercion of `limit`/`offset` query parameters for review listings.

Values arrive as raw strings so that anything unparseable falls back to a
default instead of failing the request.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# Largest offset a 64-bit database integer can hold. Anything past it is an
# empty page on every backend.
MAX_OFFSET = 2**63 - 1

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class PageWindow:
    limit: int
    offset: int


def _parse_int(raw: Optional[str]) -> Optional[int]:
    """Read the leading integer of `raw`, so "2abc" and "2.9" both give 2."""
    if raw is None:
        return None
    match = _LEADING_INT.match(raw)
    if not match:
        return None
    return int(match.group(1))


def coerce_window(
    raw_limit: Optional[str],
    raw_offset: Optional[str],
    *,
    default_limit: int,
    max_limit: int,
) -> PageWindow:
    """Turn query strings into a usable limit/offset pair.

    A missing, non-numeric, zero or negative limit becomes `default_limit`;
    a missing, non-numeric or negative offset becomes 0. The limit is then
    clamped to `max_limit` and the offset to `MAX_OFFSET`.
    """
    limit = _parse_int(raw_limit)
    if not limit or limit < 0:
        limit = default_limit
    offset = _parse_int(raw_offset)
    if not offset or offset < 0:
        offset = 0
    return PageWindow(limit=min(limit, max_limit), offset=min(offset, MAX_OFFSET))
