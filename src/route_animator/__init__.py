"""Route Animator: animated route overlays rendered to video."""

import logging
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("route-animator")
except PackageNotFoundError:
    __version__ = "0.0.0"


def main() -> None:
    """
    Main entry point for the route-animator CLI.

    Parses command-line arguments, configures logging and starts the web server.
    """
    import argparse  # noqa: PLC0415

    from route_animator.config import get_settings  # noqa: PLC0415
    from route_animator.web import run as start_api  # noqa: PLC0415

    parser = argparse.ArgumentParser(
        "route-animator",
        description="Route Animator: export animated routes over a background image",
    )

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host to run the web server on (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to run the web server on (default: 2025 or PORT env var)",
    )

    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for the web server",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: ROUTE_ANIMATOR_LOG_LEVEL or INFO)",
    )

    args = parser.parse_args()
    log_level = args.log_level or get_settings().log_level

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    return start_api(
        port=args.port,
        host=args.host,
        reload=args.reload,
        log_level=log_level,
    )


__all__ = ["__version__", "main"]
