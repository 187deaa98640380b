# bitgraph/domain/entities/probe.py
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from bitgraph.common.probe.decoders import FiniteStrFloat, OptStrFloat, StrUInt
from bitgraph.domain.errors import DecodeFailure


class _ProbeModel(BaseModel):
    # ffprobe emits far more keys than we consume; ignore the rest
    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class Packet(_ProbeModel):
    stream_index: StrictInt = Field(ge=0)
    pts: StrictInt
    pts_time: FiniteStrFloat
    size: StrUInt


class Stream(_ProbeModel):
    index: StrictInt = Field(ge=0)
    codec_name: StrictStr


class Format(_ProbeModel):
    filename: StrictStr
    format_name: StrictStr
    format_long_name: StrictStr
    start_time: OptStrFloat = None
    duration: OptStrFloat = None
    size: StrUInt
    bit_rate: StrUInt


class ProbeError(_ProbeModel):
    code: StrictInt
    message: StrictStr = Field(alias="string")


class ProbeData(_ProbeModel):
    """
    One ffprobe run, decoded. Every section is optional: ffprobe only prints
    what was requested and could be computed, and prints `error` instead of
    the rest when the input is unreadable. No cross-field checks happen here.
    """
    packets: Optional[List[Packet]] = None
    streams: Optional[List[Stream]] = None
    format: Optional[Format] = None
    error: Optional[ProbeError] = None


class ProgramVersion(_ProbeModel):
    version: StrictStr
    copyright: StrictStr
    compiler_ident: StrictStr
    configuration: StrictStr


class ProgramVersionWrap(_ProbeModel):
    program_version: ProgramVersion


# ---- decode entry points ------------------------------------------------------
def _first_error_field(exc: ValidationError) -> Optional[str]:
    errors = exc.errors(include_url=False)
    if not errors:
        return None
    loc = errors[0].get("loc") or ()
    return ".".join(str(p) for p in loc) or None


def decode_json(model: type[_ProbeModel], raw: bytes | str, *, rc: Optional[int] = None):
    """
    Decode ffprobe's stdout into `model`. Malformed JSON and schema mismatches
    both surface as DecodeFailure, naming the first field that failed.
    """
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        field = _first_error_field(e)
        first = e.errors(include_url=False)[0] if e.error_count() else {}
        if first.get("type") == "json_invalid":
            raise DecodeFailure(f"ffprobe produced invalid JSON: {first.get('msg')}", rc=rc) from e
        raise DecodeFailure(
            f"Failed to decode {model.__name__}: {first.get('msg', e)}", field=field, rc=rc
        ) from e


def decode_probe_data(raw: bytes | str, *, rc: Optional[int] = None) -> ProbeData:
    return decode_json(ProbeData, raw, rc=rc)


def decode_program_version(raw: bytes | str, *, rc: Optional[int] = None) -> ProgramVersion:
    return decode_json(ProgramVersionWrap, raw, rc=rc).program_version
