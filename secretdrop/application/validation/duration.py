"""
Duration string parsing for TTL values.
See docs/CleanArchitecture.md (Phase 2) for the architectural rationale.

Accepts the compact form used by Vault and its clients: an optionally signed
sequence of decimal numbers, each with an optional fraction and a unit suffix,
e.g. "300ms", "1.5h", "2h45m". Valid units are "ns", "us" (or "µs"), "ms",
"s", "m", "h". Days are not a unit.
"""

import re
from datetime import timedelta
from decimal import Decimal

_NANOS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

# Longer units first so "ms" wins over "m".
_COMPONENT = re.compile(r"([0-9]*)(?:\.([0-9]*))?(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(value: str) -> timedelta:
    """Parse *value* into a timedelta.

    Raises:
        ValueError: if *value* is empty or does not follow the grammar.
    """
    text = value
    if not text:
        raise ValueError("empty duration")

    negative = text[0] == "-"
    if text[0] in "+-":
        text = text[1:]

    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError(f"invalid duration {value!r}")

    nanos = Decimal(0)
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        if match is None:
            raise ValueError(f"invalid duration {value!r}")
        whole, fraction, unit = match.groups()
        if not whole and not fraction:
            raise ValueError(f"invalid duration {value!r}")
        number = Decimal(f"{whole or '0'}.{fraction or '0'}")
        nanos += number * _NANOS_PER_UNIT[unit]
        pos = match.end()

    if negative:
        nanos = -nanos
    try:
        return timedelta(microseconds=int(nanos / 1000))
    except OverflowError as exc:
        raise ValueError(f"duration {value!r} out of range") from exc
