import logging
import argparse
from typing import Any, List, Tuple


def parse_args() -> Tuple[argparse.Namespace, List[str]]:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser("SIGVerse Object Controller")
    parser.add_argument("--url", default=None, help="rosbridge websocket URL (default: ROSBRIDGE_URL)")
    parser.add_argument(
        "--dry-run",
        default=False,
        action="store_true",
        help="Log publishes instead of connecting to rosbridge",
    )
    parser.add_argument("--debug", default=False, action="store_true", help="Enable debug logging")
    return parser.parse_known_args()


def setup_logger(debug: bool) -> logging.Logger:
    """Set up the logger."""
    log_level = "DEBUG" if debug else "INFO"
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s:%(lineno)d | %(message)s",
    )
    logger = logging.getLogger(__name__)

    # Suppress websocket frame-level logs
    logging.getLogger("websockets").setLevel(logging.WARNING)
    return logger


def log_connection_troubleshooting(logger: logging.Logger, url: Any) -> None:
    """Explain how to reach the simulator when rosbridge cannot be contacted."""
    logger.error(
        f"Could not reach rosbridge at {url}.\n"
        "Make sure the simulator side is running, for example:\n"
        "  roslaunch rosbridge_server rosbridge_websocket.launch\n"
        "or run with --dry-run to try the controller without a simulator."
    )
