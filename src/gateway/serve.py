"""
CLI for the gorp gateway.

Usage:
    python -m src.gateway.serve [options]
"""

import argparse
import os
import sys

import structlog
import uvicorn

from src.core.logger import level_from_name, setup_logging
from src.rserve import GorpError, RserveChannel, split_host_port

from .models import GatewayConfig
from .server import create_app

logger = structlog.get_logger(__name__)


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").lower() in ("1", "true", "yes")


def parse_arguments(argv=None):
    """Parse command-line arguments"""
    parser = argparse.ArgumentParser(
        description="HTTP gateway to AnomalyDetection on a local Rserve daemon",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
        Examples:
        # Basic usage
        python -m src.gateway.serve

        # Custom addresses, keep scratch tables for debugging
        python -m src.gateway.serve --addr 0.0.0.0:8080 --raddr localhost:6311 --keep-scratch
        """,
    )

    parser.add_argument(
        "--addr",
        default=os.getenv("GORP_ADDR", "localhost:8080"),
        help="Address to listen for HTTP requests on (default: localhost:8080)",
    )
    parser.add_argument(
        "--raddr",
        default=os.getenv("GORP_RADDR", "localhost:6311"),
        help="Address of the Rserve daemon, must be on localhost (default: localhost:6311)",
    )
    parser.add_argument(
        "--queue-capacity",
        type=int,
        default=os.getenv("GORP_QUEUE_CAPACITY", "16"),
        help="Requests admitted to the Rserve channel at once (default: 16)",
    )

    # Scratch tables
    parser.add_argument(
        "--scratch-dir",
        default=os.getenv("GORP_SCRATCH_DIR"),
        help="Directory for scratch tables (default: system temp dir)",
    )
    parser.add_argument(
        "--keep-scratch",
        action="store_true",
        default=_env_flag("GORP_KEEP_SCRATCH"),
        help="Keep scratch tables after each request",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=os.getenv("LOG_LEVEL", "INFO"),
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=os.getenv("LOG_FORMAT", "console"),
        help="Log output format (default: console)",
    )

    return parser.parse_args(argv)


def build_config(args) -> GatewayConfig:
    """Build configuration from arguments"""
    return GatewayConfig(
        listen_addr=args.addr,
        rserve_addr=args.raddr,
        queue_capacity=args.queue_capacity,
        scratch_dir=args.scratch_dir,
        keep_scratch=args.keep_scratch,
        log_level=args.log_level,
        log_format=args.log_format,
    )


def main(argv=None):
    """Main entry point"""
    args = parse_arguments(argv)
    config = build_config(args)

    setup_logging(
        level=level_from_name(config.log_level),
        json_format=config.log_format == "json",
    )

    try:
        host, port = split_host_port(config.listen_addr)
        channel = RserveChannel.connect(config.rserve_addr, queue_capacity=config.queue_capacity)
    except GorpError as e:
        logger.error("Startup failed", error=str(e))
        return 1

    try:
        app = create_app(channel, config)
        logger.info("Listening", addr=config.listen_addr, raddr=config.rserve_addr)
        uvicorn.run(app, host=host or "0.0.0.0", port=port, log_level=config.log_level.lower())
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0

    except Exception as e:
        logger.error("Gateway failed", error=str(e), exc_info=True)
        return 1

    finally:
        channel.close()


if __name__ == "__main__":
    sys.exit(main())
