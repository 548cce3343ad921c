"""
Detection pipeline: export a batch, ask the engine for anomalies and
normalize the answer.

The time-series method is tried first. It needs meaningfully spaced
timestamps and fails on data it cannot model that way, in which case the
vector method, which ignores time, is tried on the same scratch table.
"""

from collections.abc import Sequence
from typing import Any, Protocol

import structlog

from .errors import DecodeError, EvalError, PipelineError
from .export import discard_scratch, export_samples
from .models import METHOD_TS, METHOD_VEC, Datapoint, Result
from .results import normalize

logger = structlog.get_logger(__name__)

COMMANDS = {
    METHOD_TS: "processAnomsTs",
    METHOD_VEC: "processAnomsVec",
}


class Channel(Protocol):
    def evaluate(self, command: str) -> Any: ...


def _r_string(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'


def build_command(method: str, path: str) -> str:
    """Build the engine call for method with the scratch table path as its argument

    Raises:
        ValueError: If method is not 'ts' or 'vec'
    """
    if method not in COMMANDS:
        raise ValueError("method must be 'ts' or 'vec'")
    return f"{COMMANDS[method]}({_r_string(path)})"


class DetectionPipeline:
    """Runs a sample batch through the engine with ts to vec fallback"""

    def __init__(self, channel: Channel, scratch_dir: str | None = None, keep_scratch: bool = False):
        self.channel = channel
        self.scratch_dir = scratch_dir
        self.keep_scratch = keep_scratch

    def run(self, samples: Sequence[Datapoint]) -> Result:
        """Detect anomalies in a batch of samples

        Args:
            samples: Datapoints in any order

        Returns:
            Result from the ts method, or from the vec method if ts failed

        Raises:
            ExportError: If the scratch table cannot be written
            ChannelBusyError: If the channel turned the request away
            PipelineError: If both methods failed
        """
        path = export_samples(samples, directory=self.scratch_dir)
        logger.debug("Batch exported", path=path, samples=len(samples))

        try:
            try:
                return self._process(METHOD_TS, path)
            except (EvalError, DecodeError) as e:
                ts_error = e
                logger.info("ts method failed, falling back to vec", error=str(e))

            try:
                return self._process(METHOD_VEC, path)
            except (EvalError, DecodeError) as e:
                logger.warning(
                    "Both detection methods failed",
                    ts_error=str(ts_error),
                    vec_error=str(e),
                )
                raise PipelineError(e, ts_error=ts_error) from e
        finally:
            if self.keep_scratch:
                logger.info("Scratch table retained", path=path)
            else:
                discard_scratch(path)

    def _process(self, method: str, path: str) -> Result:
        raw = self.channel.evaluate(build_command(method, path))
        result = normalize(raw, method)
        logger.info("Anomalies detected", method=method, anomalies=len(result.anomalies))
        return result
