"""
Exception hierarchy for the detection pipeline and the Rserve channel.
"""


class GorpError(Exception):
    """Base class for all gorp errors"""


class ConfigError(GorpError):
    """Invalid channel address, port or non-local host"""


class ChannelConnectError(GorpError):
    """The Rserve daemon could not be reached"""


class ChannelBusyError(GorpError):
    """The channel admission queue is full"""


class EvalError(GorpError):
    """A command failed on the remote engine"""


class DecodeError(GorpError):
    """A remote result did not match the expected schema"""


class ExportError(GorpError):
    """The scratch table could not be created or written"""


class SampleDecodeError(ValueError):
    """An inbound sample is not a [timestamp, value] pair"""


class PipelineError(GorpError):
    """Both detection methods failed.

    The message is the cause of the final (vec) attempt. The cause of the
    discarded ts attempt is kept on ``ts_error`` for diagnostics.
    """

    def __init__(self, cause: Exception, ts_error: Exception | None = None):
        super().__init__(f"processVec err: {cause}")
        self.cause = cause
        self.ts_error = ts_error

    def describe(self) -> str:
        """Both causes, for operators"""
        if self.ts_error is None:
            return str(self)
        return f"{self} (processTs err: {self.ts_error})"
