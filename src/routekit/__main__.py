"""
Command-line entry point: serves the demo application.

    python -m routekit
    python -m routekit --port 9001 --log-format json
    python -m routekit --static ./public --log-level DEBUG

Flags override ROUTEKIT_* environment variables, which override defaults.
"""

import argparse
import logging
import sys

from . import __version__
from .config import LOG_FORMATS, ServerConfig
from .demo import build_app
from .middleware import LoggingMiddleware


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="routekit",
        description="Run the routekit demo server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m routekit                        # 127.0.0.1:9000
  python -m routekit --host 0.0.0.0         # Listen on all interfaces
  python -m routekit --workers 8            # 8-16 worker threads
  python -m routekit --static ./public      # Serve ./public under /static
        """,
    )
    parser.add_argument("--host", "-H", help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, help="Port to listen on (default: 9000)")
    parser.add_argument(
        "--workers", "-w", type=int,
        help="Initial worker threads; up to twice as many under load",
    )
    parser.add_argument("--static", "-s", help="Static file directory (default: assets)")
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-format", choices=LOG_FORMATS, help="Access log format")
    parser.add_argument("--version", "-v", action="version", version=f"routekit {__version__}")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ServerConfig:
    config = ServerConfig.from_env()
    if args.host:
        config.host = args.host
    if args.port is not None:
        config.port = args.port
    if args.workers:
        config.min_workers = args.workers
        config.max_workers = args.workers * 2
    if args.static:
        config.static_dir = args.static
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format
    return config


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        config = build_config(args)
        app = build_app(config)
    except ValueError as e:
        logging.basicConfig()
        logging.getLogger("routekit").error(f"Invalid configuration: {e}")
        return 2

    app.use(LoggingMiddleware(log_format=config.log_format))
    print(f"routekit {__version__} on http://{config.host}:{config.port} (Ctrl+C to stop)")
    app.router.print_routes()
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
