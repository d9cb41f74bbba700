import re
from datetime import time
from typing import Annotated, Any

from pydantic import BeforeValidator, PlainSerializer

_HHMM_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def parse_hhmm(value: Any) -> Any:
    """Accept 24h "HH:mm" strings; time objects (e.g. from the ORM) pass through."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0)
    if isinstance(value, str):
        match = _HHMM_PATTERN.match(value.strip())
        if not match:
            raise ValueError("Time must be in HH:mm format")
        return time(int(match.group(1)), int(match.group(2)))
    raise ValueError("Time must be in HH:mm format")


def format_hhmm(value: time) -> str:
    return value.strftime("%H:%M")


# Wall-clock time exchanged as "HH:mm" (24h, no seconds)
ClockTime = Annotated[
    time,
    BeforeValidator(parse_hhmm),
    PlainSerializer(format_hhmm, return_type=str, when_used="json"),
]

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"
