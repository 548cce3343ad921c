"""
Configuration for the HTTP gateway.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class GatewayConfig:
    """Configuration for the gorp gateway"""

    # HTTP settings
    listen_addr: str = "localhost:8080"

    # Rserve settings (the daemon must run on localhost)
    rserve_addr: str = "localhost:6311"
    queue_capacity: int = 16  # Requests admitted to the channel at once

    # Scratch tables
    scratch_dir: Optional[str] = None  # None = system temp dir
    keep_scratch: bool = False  # Keep scratch tables after each request

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # 'console' or 'json'
