"""Entrypoint for the SIGVerse object controller."""

import sys
import argparse

from object_controller.utils import parse_args, setup_logger, log_connection_troubleshooting


def main() -> None:
    """Entrypoint for the object controller."""
    args, _ = parse_args()
    sys.exit(run(args))


def run(args: argparse.Namespace) -> int:
    """Build the controller from configuration and run it; return the exit status."""
    # Import after logging is configured so config loading is reported
    logger = setup_logger(args.debug)

    from object_controller.config import config
    from object_controller.keyboard import RawTerminal, KeyboardPoller, InputStreamError
    from object_controller.transport import Transport, TransportError, LoggingTransport, RosbridgeTransport
    from object_controller.controller import EXIT_FAILURE, ObjectController

    logger.info("Starting object controller")

    url = args.url or config.ROSBRIDGE_URL
    transport: Transport
    if args.dry_run:
        transport = LoggingTransport()
    else:
        transport = RosbridgeTransport(
            url,
            transform_topic=config.TRANSFORM_TOPIC,
            message_topic=config.MESSAGE_TOPIC,
            inbound_topic=config.INBOUND_TOPIC,
        )

    controller = ObjectController(
        transport,
        keyboard=KeyboardPoller(),
        terminal=RawTerminal(),
        tracked_objects=config.TRACKED_OBJECTS,
        loop_hz=config.LOOP_HZ,
        timer_period=config.TIMER_PERIOD,
        include_orientation=config.PUBLISH_ROTATION,
    )

    try:
        return controller.run()
    except TransportError as e:
        logger.debug(f"Transport error: {e}")
        log_connection_troubleshooting(logger, url)
        return EXIT_FAILURE
    except InputStreamError as e:
        logger.error(f"Operator input failed, exiting: {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    main()
