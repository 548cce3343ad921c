"""
Tests for the Rserve evaluation channel.
"""

import threading
from unittest.mock import MagicMock, patch

import pytest

from src.rserve.client import RserveChannel, check_local, split_host_port
from src.rserve.errors import ChannelBusyError, ChannelConnectError, ConfigError, EvalError


class TestSplitHostPort:
    """Tests for address parsing."""

    @pytest.mark.parametrize(
        "address,expected",
        [
            ("localhost:6311", ("localhost", 6311)),
            (":6311", ("", 6311)),
            ("0.0.0.0:8080", ("0.0.0.0", 8080)),
        ],
    )
    def test_valid(self, address, expected):
        assert split_host_port(address) == expected

    @pytest.mark.parametrize(
        "address",
        ["localhost", "localhost:", "localhost:zzz", "localhost:-1", "localhost:0", "localhost:70000"],
    )
    def test_invalid(self, address):
        with pytest.raises(ConfigError):
            split_host_port(address)


class TestCheckLocal:
    """Tests for the localhost-only rule."""

    @pytest.mark.parametrize("host", ["", "localhost"])
    def test_local(self, host):
        check_local(host)

    @pytest.mark.parametrize("host", ["remote.example.com", "10.0.0.5", "example.localhost.com"])
    def test_remote(self, host):
        with pytest.raises(ConfigError, match="must be local"):
            check_local(host)


class TestRserveChannel:
    """Tests for RserveChannel."""

    @patch("src.rserve.client.pyRserve.connect")
    def test_connect_success(self, mock_connect):
        """Test a local address opens a pyRserve connection."""
        mock_connection = MagicMock()
        mock_connect.return_value = mock_connection

        channel = RserveChannel.connect("localhost:6311")

        mock_connect.assert_called_once_with(host="localhost", port=6311, atomicArray=True)
        assert channel.connection == mock_connection
        assert channel.host == "localhost"
        assert channel.port == 6311

    @patch("src.rserve.client.pyRserve.connect")
    def test_connect_empty_host(self, mock_connect):
        """Test an empty host means localhost."""
        channel = RserveChannel.connect(":6311")

        mock_connect.assert_called_once_with(host="localhost", port=6311, atomicArray=True)
        assert channel.host == "localhost"

    @pytest.mark.parametrize(
        "address",
        ["remote.example.com:6311", "localhost", "localhost:", "localhost:zzz"],
    )
    @patch("src.rserve.client.pyRserve.connect")
    def test_connect_rejects_bad_address(self, mock_connect, address):
        """Test bad or remote addresses fail before any connection attempt."""
        with pytest.raises(ConfigError):
            RserveChannel.connect(address)

        mock_connect.assert_not_called()

    @patch("src.rserve.client.pyRserve.connect")
    def test_connect_refused(self, mock_connect):
        """Test an unreachable daemon raises ChannelConnectError."""
        mock_connect.side_effect = ConnectionRefusedError("Connection refused")

        with pytest.raises(ChannelConnectError, match="Connection refused"):
            RserveChannel.connect("localhost:6311")

    @patch("src.rserve.client.pyRserve.connect")
    def test_invalid_queue_capacity(self, mock_connect):
        with pytest.raises(ConfigError, match="queue capacity"):
            RserveChannel.connect("localhost:6311", queue_capacity=0)

    @patch("src.rserve.client.pyRserve.connect")
    def test_evaluate(self, mock_connect):
        """Test evaluate returns the raw result of the command."""
        mock_connection = MagicMock()
        mock_connection.eval.return_value = b"test"
        mock_connect.return_value = mock_connection

        channel = RserveChannel.connect("localhost:6311")
        result = channel.evaluate("test")

        mock_connection.eval.assert_called_once_with("test")
        assert result == b"test"

    @patch("src.rserve.client.pyRserve.connect")
    def test_evaluate_error(self, mock_connect):
        """Test remote failures are raised as EvalError."""
        mock_connection = MagicMock()
        mock_connection.eval.side_effect = Exception('could not find function "processAnomsTs"')
        mock_connect.return_value = mock_connection

        channel = RserveChannel.connect("localhost:6311")

        with pytest.raises(EvalError, match="could not find function"):
            channel.evaluate('processAnomsTs("/tmp/x.csv")')

    @patch("src.rserve.client.pyRserve.connect")
    def test_evaluate_releases_slot_on_error(self, mock_connect):
        """Test a failed evaluation frees its queue slot."""
        mock_connection = MagicMock()
        mock_connection.eval.side_effect = [Exception("boom"), "ok"]
        mock_connect.return_value = mock_connection

        channel = RserveChannel.connect("localhost:6311", queue_capacity=1)

        with pytest.raises(EvalError):
            channel.evaluate("first")
        assert channel.evaluate("second") == "ok"

    @patch("src.rserve.client.pyRserve.connect")
    def test_evaluate_queue_full(self, mock_connect):
        """Test callers beyond capacity are turned away while one is running."""
        started = threading.Event()
        release = threading.Event()

        def slow_eval(command):
            started.set()
            release.wait(timeout=5)
            return command

        mock_connection = MagicMock()
        mock_connection.eval.side_effect = slow_eval
        mock_connect.return_value = mock_connection

        channel = RserveChannel.connect("localhost:6311", queue_capacity=1)

        results = []
        worker = threading.Thread(target=lambda: results.append(channel.evaluate("slow")))
        worker.start()
        assert started.wait(timeout=5)

        try:
            with pytest.raises(ChannelBusyError):
                channel.evaluate("fast")
        finally:
            release.set()
            worker.join(timeout=5)

        assert results == ["slow"]
        assert channel.evaluate("after") == "after"

    @patch("src.rserve.client.pyRserve.connect")
    def test_evaluations_are_serialized(self, mock_connect):
        """Test concurrent evaluations never overlap on the connection."""
        active = []
        overlaps = []
        lock = threading.Lock()

        def tracking_eval(command):
            with lock:
                active.append(command)
                if len(active) > 1:
                    overlaps.append(list(active))
            threading.Event().wait(0.01)
            with lock:
                active.remove(command)
            return command

        mock_connection = MagicMock()
        mock_connection.eval.side_effect = tracking_eval
        mock_connect.return_value = mock_connection

        channel = RserveChannel.connect("localhost:6311", queue_capacity=8)
        threads = [threading.Thread(target=channel.evaluate, args=(f"cmd{i}",)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)

        assert overlaps == []
        assert mock_connection.eval.call_count == 4

    @patch("src.rserve.client.pyRserve.connect")
    def test_close(self, mock_connect):
        mock_connection = MagicMock()
        mock_connect.return_value = mock_connection

        channel = RserveChannel.connect("localhost:6311")
        channel.close()

        mock_connection.close.assert_called_once()
