"""
Pytest configuration and shared fixtures.
"""

import os
import re

import numpy as np
import pytest

from src.gateway.models import GatewayConfig
from src.rserve.errors import EvalError
from src.rserve.models import Datapoint

PNG_DATA = b"\x89PNG\r\n\x1a\n" + b"\x00\x00\x00\rIHDR" + bytes(range(32))


class FakeChannel:
    """Evaluation channel answering by command name.

    Responses that are exceptions are raised. Records each command and
    whether its scratch table existed while it was evaluated.
    """

    def __init__(self, responses: dict):
        self.responses = responses
        self.commands = []
        self.paths = []
        self.path_existed = []

    def evaluate(self, command: str):
        self.commands.append(command)
        match = re.search(r'\("(.*)"\)$', command)
        path = match.group(1) if match else None
        self.paths.append(path)
        self.path_existed.append(path is not None and os.path.exists(path))

        response = self.responses[command.split("(")[0]]
        if isinstance(response, Exception):
            raise response
        return response


class FakeTaggedList:
    """Stand-in for an R list as returned by pyRserve"""

    def __init__(self, pairs):
        self.pairs = pairs

    def astuples(self):
        return list(self.pairs)


# Sample fixtures
@pytest.fixture
def test_points():
    """Three samples, out of timestamp order."""
    return [
        Datapoint(1456080911, 6.24),
        Datapoint(1456080851, 6.23),
        Datapoint(1456080971, 6.39),
    ]


@pytest.fixture
def png_data():
    return PNG_DATA


# Raw engine results, shaped like pyRserve output
@pytest.fixture
def raw_vec_result():
    """Vector result with anomalies at positions 0 and 2."""
    return {
        "anoms": {
            "index": np.array([0.0, 2.0]),
            "anoms": np.array([6.23, 6.39]),
        },
        "data": PNG_DATA,
    }


@pytest.fixture
def raw_ts_result():
    """Time-series result as a tagged list with float timestamps."""
    return FakeTaggedList(
        [
            (
                "anoms",
                FakeTaggedList(
                    [
                        ("timestamp", np.array([1456080851.0, 1456080971.0])),
                        ("anoms", np.array([6.23, 6.39])),
                    ]
                ),
            ),
            ("data", PNG_DATA),
        ]
    )


# Channel fixtures
@pytest.fixture
def make_channel():
    """Factory for FakeChannel, taking a {command name: response} dict."""
    return FakeChannel


@pytest.fixture
def tagged_list():
    """Factory for pyRserve-style tagged lists."""
    return FakeTaggedList


@pytest.fixture
def vec_only_channel(raw_vec_result):
    """Channel that rejects the ts method and answers the vec method."""
    return FakeChannel(
        {
            "processAnomsTs": EvalError("r eval err: ts needs evenly spaced data"),
            "processAnomsVec": raw_vec_result,
        }
    )


@pytest.fixture
def gateway_config(tmp_path):
    """Gateway configuration writing scratch tables to a private directory."""
    return GatewayConfig(scratch_dir=str(tmp_path))
