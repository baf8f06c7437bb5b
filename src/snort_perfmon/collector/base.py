"""Value samples and the numeric conversion policy for data source types."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..errors import FormatError

UINT64_MAX = 2**64 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1

_UNSIGNED = re.compile(r"\+?[0-9]+", re.ASCII)
_SIGNED = re.compile(r"[+-]?[0-9]+", re.ASCII)
_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)", re.ASCII)


class DataSourceType(Enum):
    """Rate semantics the downstream sink applies to successive values."""

    GAUGE = "gauge"
    COUNTER = "counter"
    DERIVE = "derive"
    ABSOLUTE = "absolute"

    @classmethod
    def from_string(cls, token: str) -> DataSourceType:
        """Match one of GAUGE, COUNTER, DERIVE, ABSOLUTE, ignoring case."""
        try:
            return cls[token.strip().upper()]
        except KeyError:
            raise ValueError(f"unrecognized data source type {token!r}") from None


@dataclass
class ValueSample:
    """A single value dispatched to a sink."""

    host: str
    plugin: str
    plugin_instance: str
    type: str
    type_instance: str
    value: float | int
    ds_type: DataSourceType
    time: int
    interval: float
    interface: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Serialize the sample to a plain dictionary."""
        return {
            "host": self.host,
            "plugin": self.plugin,
            "plugin_instance": self.plugin_instance,
            "type": self.type,
            "type_instance": self.type_instance,
            "value": self.value,
            "ds_type": self.ds_type.name,
            "time": self.time,
            "interval": self.interval,
            "interface": self.interface,
        }


def _parse_int(text: str, signed: bool) -> int:
    pattern = _SIGNED if signed else _UNSIGNED
    if not pattern.fullmatch(text):
        if not signed and _SIGNED.fullmatch(text):
            raise FormatError(f"negative value {text!r} for an unsigned type")
        raise FormatError(f"cannot parse {text!r} as an integer")
    value = int(text)
    low, high = (INT64_MIN, INT64_MAX) if signed else (0, UINT64_MAX)
    if not low <= value <= high:
        raise FormatError(f"value {text!r} is out of range")
    return value


def parse_timestamp(text: str) -> int:
    """Return the leading integer of *text*, ignoring anything after it.

    ``"1700000000.5"`` gives 1700000000. Raises :class:`FormatError` when
    *text* does not start with digits.
    """
    match = _LEADING_INT.match(text)
    if match is None:
        raise FormatError(f"invalid timestamp {text!r}")
    return int(match.group(1))


def parse_value(text: str, ds_type: DataSourceType) -> float | int:
    """Convert one textual field according to *ds_type*.

    GAUGE yields a float; COUNTER and ABSOLUTE yield non-negative integers;
    DERIVE yields a signed integer. Raises :class:`FormatError` on failure.
    """
    text = text.strip()
    if not text:
        raise FormatError("empty field")

    if ds_type is DataSourceType.GAUGE:
        try:
            value = float(text)
        except ValueError:
            raise FormatError(f"cannot parse {text!r} as a gauge") from None
        return value
    if ds_type is DataSourceType.DERIVE:
        return _parse_int(text, signed=True)
    return _parse_int(text, signed=False)
