"""
Scratch table export.

The engine reads its input from a CSV file by path, so each batch is written
to a temporary file sorted by timestamp before any command is sent.
"""

import os
import tempfile
from collections.abc import Iterable
from datetime import datetime
from typing import TextIO

import numpy as np
import pandas as pd
import structlog

from .errors import ExportError
from .models import Datapoint

logger = structlog.get_logger(__name__)

SCRATCH_PREFIX = "gorp-"
SCRATCH_SUFFIX = ".csv"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _format_timestamp(ts: int) -> str:
    # Local naive time, as the engine parses it
    return datetime.fromtimestamp(ts).strftime(DATE_FORMAT)


def _format_value(value: float) -> str:
    return np.format_float_positional(value, trim="-")


def to_frame(samples: Iterable[Datapoint]) -> pd.DataFrame:
    """Build the date,value table for a batch, sorted ascending by timestamp.

    The input is not modified.
    """
    samples = list(samples)
    frame = pd.DataFrame(
        {
            "timestamp": pd.Series([s.timestamp for s in samples], dtype="int64"),
            "value": pd.Series([s.value for s in samples], dtype="float64"),
        }
    )
    frame = frame.sort_values("timestamp", kind="stable")

    return pd.DataFrame(
        {
            "date": [_format_timestamp(int(ts)) for ts in frame["timestamp"]],
            "value": [_format_value(v) for v in frame["value"]],
        },
        columns=["date", "value"],
    )


def write_csv(samples: Iterable[Datapoint], stream: TextIO) -> None:
    """Write samples to stream as a date,value CSV table"""
    to_frame(samples).to_csv(stream, index=False, lineterminator="\n")


def export_samples(samples: Iterable[Datapoint], directory: str | None = None) -> str:
    """Write samples to a new scratch CSV file and return its absolute path.

    The file is closed before returning, so it can be opened by path right away.

    Args:
        samples: The batch to export, in any order
        directory: Where to create the file. Defaults to the system temp dir.

    Raises:
        ExportError: If the file cannot be created, rendered or written
    """
    try:
        tf = tempfile.NamedTemporaryFile(
            mode="w",
            prefix=SCRATCH_PREFIX,
            suffix=SCRATCH_SUFFIX,
            dir=directory,
            delete=False,
            encoding="utf-8",
            newline="",
        )
    except OSError as e:
        raise ExportError(f"tempfile err: {e}") from e

    path = os.path.abspath(tf.name)
    try:
        with tf:
            write_csv(samples, tf)
    except (OSError, OverflowError, ValueError) as e:
        discard_scratch(path)
        raise ExportError(f"writeCsv err: {e}") from e

    logger.debug("Scratch table written", path=path)
    return path


def discard_scratch(path: str) -> None:
    """Remove a scratch file, ignoring one that is already gone"""
    try:
        os.remove(path)
        logger.debug("Scratch table removed", path=path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Failed to remove scratch table", path=path, error=str(e))
