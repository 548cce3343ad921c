"""
Normalization of raw Rserve results.

The engine answers ``processAnomsTs`` and ``processAnomsVec`` with an R list
holding the anomalies and the raw PNG plot. pyRserve hands that back as
tagged lists, numpy arrays and bytes. The raw result is first flattened into
plain Python (dicts, lists, bytes, scalars), then validated against the schema
of the method that produced it.
"""

from collections.abc import Mapping
from typing import Annotated, Any

import numpy as np
import structlog
from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    StrictBytes,
    StrictInt,
    ValidationError,
)

from .errors import DecodeError
from .models import METHOD_TS, METHOD_VEC, Datapoint, Result

logger = structlog.get_logger(__name__)

FiniteFloat = Annotated[float, Field(strict=True, allow_inf_nan=False)]


def _integral_float_to_int(value: Any) -> Any:
    # R numerics arrive as doubles; whole ones are valid indices
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


Index = Annotated[StrictInt, BeforeValidator(_integral_float_to_int)]


class VecAnoms(BaseModel):
    """Anomalies located by their position in the input vector"""

    model_config = ConfigDict(extra="ignore")

    index: list[Index]
    anoms: list[FiniteFloat]


class VecResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    anoms: VecAnoms
    data: StrictBytes


class TsAnoms(BaseModel):
    """Anomalies located by Unix timestamp"""

    model_config = ConfigDict(extra="ignore")

    timestamp: list[FiniteFloat]
    anoms: list[FiniteFloat]


class TsResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    anoms: TsAnoms
    data: StrictBytes


def to_neutral(raw: Any) -> Any:
    """Convert a raw pyRserve result into plain Python values.

    Named R lists become dicts keyed by lower-cased name, unnamed ones become
    lists. Arrays become lists, numpy scalars become Python scalars and raw
    vectors stay bytes.
    """
    if raw is None or isinstance(raw, (str, bool, int, float)):
        return raw
    if isinstance(raw, (bytes, bytearray, memoryview)):
        return bytes(raw)
    if isinstance(raw, np.generic):
        return raw.item()
    if isinstance(raw, np.ndarray):
        if raw.dtype == np.uint8:
            return raw.tobytes()
        if raw.ndim == 0:
            return raw.item()
        return [to_neutral(item) for item in raw.tolist()]
    if isinstance(raw, Mapping):
        return {str(key).lower(): to_neutral(value) for key, value in raw.items()}
    if hasattr(raw, "astuples"):
        # pyRserve TaggedList
        pairs = raw.astuples()
        if pairs and all(key for key, _ in pairs):
            return {str(key).lower(): to_neutral(value) for key, value in pairs}
        return [to_neutral(value) for _, value in pairs]
    if isinstance(raw, (list, tuple)):
        return [to_neutral(item) for item in raw]

    raise DecodeError(f"unsupported value of type {type(raw).__name__} in result")


def decode_vec(neutral: Any) -> VecResponse:
    try:
        return VecResponse.model_validate(neutral)
    except ValidationError as e:
        raise DecodeError(f"vec decode err: {e}") from e


def decode_ts(neutral: Any) -> TsResponse:
    try:
        return TsResponse.model_validate(neutral)
    except ValidationError as e:
        raise DecodeError(f"ts decode err: {e}") from e


def format_response_vec(response: VecResponse) -> Result:
    """Build a Result whose anomaly timestamps are vector indices"""
    ra = response.anoms
    if len(ra.index) != len(ra.anoms):
        raise DecodeError(
            f"non-equal number of indices and anomalies ({len(ra.index)} != {len(ra.anoms)})"
        )

    anomalies = [Datapoint(timestamp=idx, value=value) for idx, value in zip(ra.index, ra.anoms)]
    return Result(method=METHOD_VEC, anomalies=anomalies, png_data=response.data)


def format_response_ts(response: TsResponse) -> Result:
    """Build a Result whose anomaly timestamps are truncated to whole seconds"""
    ra = response.anoms
    if len(ra.anoms) != len(ra.timestamp):
        raise DecodeError(
            f"non-equal number of anomalies and timestamps ({len(ra.anoms)} != {len(ra.timestamp)})"
        )

    anomalies = [Datapoint(timestamp=int(ts), value=value) for ts, value in zip(ra.timestamp, ra.anoms)]
    return Result(method=METHOD_TS, anomalies=anomalies, png_data=response.data)


def normalize(raw: Any, method: str) -> Result:
    """Decode a raw engine result produced by the given method.

    Args:
        raw: Whatever the channel returned
        method: 'ts' or 'vec'

    Returns:
        Result tagged with the method

    Raises:
        DecodeError: If the result does not match the method's schema
        ValueError: If method is unknown
    """
    if method == METHOD_VEC:
        result = format_response_vec(decode_vec(to_neutral(raw)))
    elif method == METHOD_TS:
        result = format_response_ts(decode_ts(to_neutral(raw)))
    else:
        raise ValueError(f"unrecognized method '{method}'")

    logger.debug("Result decoded", method=method, anomalies=len(result.anomalies))
    return result
