"""
Rserve anomaly detection client.

Exports sample batches to a scratch table, runs Twitter's AnomalyDetection
package on a local Rserve daemon and normalizes the result.
"""

from .client import RserveChannel, split_host_port
from .errors import (
    ChannelBusyError,
    ChannelConnectError,
    ConfigError,
    DecodeError,
    EvalError,
    ExportError,
    GorpError,
    PipelineError,
    SampleDecodeError,
)
from .export import export_samples, write_csv
from .models import METHOD_TS, METHOD_VEC, Datapoint, Result, decode_batch
from .pipeline import DetectionPipeline, build_command
from .results import normalize

__all__ = [
    "RserveChannel",
    "split_host_port",
    "DetectionPipeline",
    "build_command",
    "Datapoint",
    "Result",
    "decode_batch",
    "export_samples",
    "write_csv",
    "normalize",
    "METHOD_TS",
    "METHOD_VEC",
    "GorpError",
    "ConfigError",
    "ChannelConnectError",
    "ChannelBusyError",
    "EvalError",
    "DecodeError",
    "ExportError",
    "PipelineError",
    "SampleDecodeError",
]
