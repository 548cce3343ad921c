"""
gorp HTTP gateway.

Usage:
    python -m src.gateway.serve --addr localhost:8080 --raddr localhost:6311
"""

from .models import GatewayConfig
from .server import create_app

__all__ = ["GatewayConfig", "create_app"]

__version__ = "1.0.0"
