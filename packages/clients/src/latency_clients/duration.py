"""Duration strings for ``-delay``.

Accepts the Go-style duration syntax used by the NATS tooling: an optional
sign followed by one or more ``<number><unit>`` groups, e.g. ``"10ms"``,
``"1.5s"`` or ``"1h2m3s"``. A bare ``"0"`` is also accepted.
"""

import re

from latency_common import DurationError

# Seconds per unit
UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_COMPONENT = re.compile(r"(\d+\.?\d*|\.\d+)([^\d.]+)")


def parse_duration(text: str) -> float:
    """Parse a duration string into seconds.

    Args:
        text: Duration such as ``"10ms"`` or ``"-1m30s"``

    Returns:
        Duration in seconds (may be negative)

    Raises:
        DurationError: If the string is empty, has a missing or unknown
            unit, or contains anything besides number/unit groups
    """
    s = text
    if not s:
        raise DurationError(f"invalid duration {text!r}")

    sign = 1.0
    if s[0] in "+-":
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]

    if s == "0":
        return 0.0
    if not s:
        raise DurationError(f"invalid duration {text!r}")

    total = 0.0
    pos = 0
    while pos < len(s):
        match = _COMPONENT.match(s, pos)
        if match is None:
            if s[pos:].replace(".", "", 1).isdigit():
                raise DurationError(f"missing unit in duration {text!r}")
            raise DurationError(f"invalid duration {text!r}")

        number, unit = match.groups()
        if unit not in UNITS:
            raise DurationError(f"unknown unit {unit!r} in duration {text!r}")

        total += float(number) * UNITS[unit]
        pos = match.end()

    return sign * total
