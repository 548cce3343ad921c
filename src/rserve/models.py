"""
Data models for samples and detection results.
"""

import base64
import math
from dataclasses import dataclass, field
from typing import Any

from .errors import SampleDecodeError

METHOD_TS = "ts"
METHOD_VEC = "vec"


@dataclass(frozen=True)
class Datapoint:
    """A Unix timestamp (seconds) and the value observed at it"""

    timestamp: int
    value: float

    def to_json(self) -> list:
        """Encode as the [timestamp, value] wire pair"""
        return [self.timestamp, self.value]

    @classmethod
    def from_json(cls, data: Any) -> "Datapoint":
        """Decode a [timestamp, value] pair.

        Timestamps decoded from the engine's own output arrive as floats, so a
        float timestamp is truncated to whole seconds.

        Raises:
            SampleDecodeError: If data is not a pair of finite numbers
        """
        if not isinstance(data, (list, tuple)) or len(data) != 2:
            raise SampleDecodeError(f"expected [timestamp, value] pair, got {data!r}")

        raw_ts, raw_value = data
        if not _is_number(raw_ts):
            raise SampleDecodeError(f"timestamp must be a number, got {raw_ts!r}")
        if not _is_number(raw_value):
            raise SampleDecodeError(f"value must be a number, got {raw_value!r}")
        if not math.isfinite(raw_ts) or not math.isfinite(raw_value):
            raise SampleDecodeError(f"non-finite number in {data!r}")

        return cls(timestamp=int(raw_ts), value=float(raw_value))


def _is_number(obj: Any) -> bool:
    return isinstance(obj, (int, float)) and not isinstance(obj, bool)


def decode_batch(data: Any) -> list[Datapoint]:
    """Decode a JSON array of [timestamp, value] pairs"""
    if not isinstance(data, list):
        raise SampleDecodeError(f"expected an array of samples, got {type(data).__name__}")
    return [Datapoint.from_json(item) for item in data]


@dataclass
class Result:
    """Anomalies found by the engine, the PNG plot it rendered and the method used"""

    method: str
    anomalies: list[Datapoint] = field(default_factory=list)
    png_data: bytes = b""

    def to_dict(self) -> dict:
        """Convert to dict for JSON serialization"""
        return {
            "anomalies": [anomaly.to_json() for anomaly in self.anomalies],
            "pngData": base64.b64encode(self.png_data).decode("ascii"),
            "method": self.method,
        }
