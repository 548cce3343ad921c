"""
Evaluation channel to a local Rserve daemon.

Rserve has no authentication, so the channel refuses any host other than
localhost. A single connection is shared by all requests: evaluations run one
at a time, and at most ``queue_capacity`` callers may be admitted (running or
waiting) at once.
"""

import threading
from typing import Any

import pyRserve
import structlog

from .errors import ChannelBusyError, ChannelConnectError, ConfigError, EvalError

logger = structlog.get_logger(__name__)

LOCAL_HOSTS = ("", "localhost")
DEFAULT_QUEUE_CAPACITY = 16


def split_host_port(address: str) -> tuple[str, int]:
    """Split 'host:port' into its host and integer port.

    Raises:
        ConfigError: If the port is missing, not a number or out of range
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigError(f"missing port in address '{address}'")
    if not (port.isascii() and port.isdigit()):
        raise ConfigError(f"invalid port '{port}' in address '{address}'")

    iport = int(port)
    if not 0 < iport < 65536:
        raise ConfigError(f"port {iport} out of range in address '{address}'")

    return host, iport


def check_local(host: str) -> None:
    """Reject any evaluation host that is not localhost"""
    if host not in LOCAL_HOSTS:
        raise ConfigError("remote evaluation channel must be local")


class RserveChannel:
    """Serialized command channel to an Rserve daemon"""

    def __init__(self, host: str, port: int, queue_capacity: int = DEFAULT_QUEUE_CAPACITY):
        check_local(host)
        if queue_capacity < 1:
            raise ConfigError(f"queue capacity must be positive, got {queue_capacity}")

        self.host = host or "localhost"
        self.port = port
        self.queue_capacity = queue_capacity
        self.connection = None

        self._lock = threading.Lock()
        self._slots = threading.BoundedSemaphore(queue_capacity)
        self._connect()

    @classmethod
    def connect(cls, address: str, queue_capacity: int = DEFAULT_QUEUE_CAPACITY) -> "RserveChannel":
        """Open a channel to the daemon at 'host:port'

        Raises:
            ConfigError: If the address is malformed or not local
            ChannelConnectError: If the daemon cannot be reached
        """
        host, port = split_host_port(address)
        return cls(host, port, queue_capacity=queue_capacity)

    def _connect(self):
        """Establish connection to Rserve"""
        try:
            # atomicArray keeps length-1 R vectors as arrays instead of scalars
            self.connection = pyRserve.connect(host=self.host, port=self.port, atomicArray=True)
            logger.info("Rserve connection established", host=self.host, port=self.port)
        except Exception as e:
            logger.error("Failed to connect to Rserve", host=self.host, port=self.port, error=str(e))
            raise ChannelConnectError(f"rserve connect err: {e}") from e

    def evaluate(self, command: str) -> Any:
        """Run one command on the daemon and return its raw result.

        Blocks until the daemon answers. Callers beyond the queue capacity are
        turned away instead of waiting.

        Raises:
            ChannelBusyError: If the admission queue is full
            EvalError: If the command fails on the daemon or the connection breaks
        """
        if not self._slots.acquire(blocking=False):
            logger.warning("Evaluation queue full", capacity=self.queue_capacity)
            raise ChannelBusyError(f"evaluation queue full ({self.queue_capacity} pending)")

        try:
            with self._lock:
                logger.debug("Evaluating command", command=command)
                return self.connection.eval(command)
        except Exception as e:
            logger.warning("Command failed", command=command, error=str(e))
            raise EvalError(f"r eval err: {e}") from e
        finally:
            self._slots.release()

    def close(self):
        """Close the Rserve connection"""
        if self.connection:
            self.connection.close()
            logger.info("Rserve connection closed")
