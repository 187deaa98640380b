# bitgraph/common/probe/decoders.py
"""
Typed decode combinators for ffprobe's JSON.

ffprobe stringifies most numbers ("pts_time": "1.001", "size": "4096") and
uses the literal "N/A" for values it could not determine. These helpers turn
such strings into strict Python values and plug into pydantic models through
`PlainValidator`, so pydantic's own lax coercion never kicks in: a bare JSON
number where ffprobe would have written a string is a decode error.
"""
from __future__ import annotations

import math
from typing import Annotated, Any, Callable, Optional, TypeVar

from pydantic import PlainValidator

T = TypeVar("T")

NA = "N/A"

Decoder = Callable[[Any], T]


def _type_name(parse: Callable[[str], Any], name: Optional[str]) -> str:
    return name or getattr(parse, "__name__", repr(parse))


def _invalid(value: Any, expected: str) -> ValueError:
    return ValueError(f"invalid type: {value!r}, expected {expected}")


def from_string(parse: Callable[[str], T], *, name: Optional[str] = None) -> Decoder[T]:
    """
    Build a decoder accepting only `str` values and parsing them with `parse`
    (e.g. `int`, `float`). Anything else raises ValueError.
    """
    expected = f"FromStr<{_type_name(parse, name)}>"

    def _decode(value: Any) -> T:
        if not isinstance(value, str):
            raise _invalid(value, expected)
        # Python's int()/float() are more forgiving than ffprobe's number text
        if value != value.strip() or "_" in value:
            raise _invalid(value, expected)
        try:
            return parse(value)
        except (TypeError, ValueError) as e:
            raise _invalid(value, expected) from e

    return _decode


def na_or(parse: Callable[[str], T], *, name: Optional[str] = None) -> Decoder[Optional[T]]:
    """Like `from_string`, but the sentinel "N/A" decodes to None."""
    inner = from_string(parse, name=name)
    expected = f"`{NA}` or FromStr<{_type_name(parse, name)}>"

    def _decode(value: Any) -> Optional[T]:
        if value == NA:
            return None
        try:
            return inner(value)
        except ValueError as e:
            raise _invalid(value, expected) from e

    return _decode


def non_negative(decoder: Decoder[Any]) -> Decoder[Any]:
    """Reject negative results of `decoder` (ffprobe's unsigned fields)."""

    def _decode(value: Any):
        out = decoder(value)
        if out is not None and out < 0:
            raise _invalid(value, "a non-negative number")
        return out

    return _decode


def finite(decoder: Decoder[Any]) -> Decoder[Any]:
    """Reject NaN and infinities, which float() happily accepts."""

    def _decode(value: Any):
        out = decoder(value)
        if out is not None and not math.isfinite(out):
            raise _invalid(value, "a finite number")
        return out

    return _decode


# ---- pydantic field types ------------------------------------------------------
FiniteStrFloat = Annotated[float, PlainValidator(finite(from_string(float)))]
StrUInt = Annotated[int, PlainValidator(non_negative(from_string(int, name="u64")))]
OptStrFloat = Annotated[Optional[float], PlainValidator(na_or(float))]
