import os
import logging
from typing import Dict, List, Tuple

from dotenv import find_dotenv, load_dotenv


logger = logging.getLogger(__name__)

# Locate .env file (search upward from current working directory)
dotenv_path = find_dotenv(usecwd=True)

if dotenv_path:
    # Load .env and override environment variables
    load_dotenv(dotenv_path=dotenv_path, override=True)
    logger.info(f"Configuration loaded from {dotenv_path}")
else:
    logger.debug("No .env file found, using environment variables")


DEFAULT_TRACKED_OBJECTS = "bear_doll:0.5,dog_doll:0.6,rabbit_doll:0.7"


def parse_tracked_objects(value: str) -> List[Tuple[str, float]]:
    """Parse ``"name:speed,name:speed"`` into ``[(name, speed), ...]``.

    Later entries for the same name replace earlier ones, keeping the first
    position in the list.
    """
    objects: Dict[str, float] = {}
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        name, sep, speed = item.partition(":")
        name = name.strip()
        if not sep or not name:
            raise RuntimeError(
                f"Invalid tracked object entry {item!r}.\n"
                "Expected OBJECT_CONTROLLER_TRACKED_OBJECTS=name:speed[,name:speed...]"
            )
        try:
            objects[name] = float(speed)
        except ValueError:
            raise RuntimeError(f"Invalid angular speed {speed!r} for tracked object {name!r}") from None
    return list(objects.items())


def parse_positive_float(name: str, value: str) -> float:
    """Parse a strictly positive float setting."""
    try:
        number = float(value)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {value!r}") from None
    if number <= 0:
        raise RuntimeError(f"{name} must be positive, got {number}")
    return number


def parse_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Configuration class for the object controller."""

    ROSBRIDGE_URL = os.getenv("ROSBRIDGE_URL", "ws://localhost:9090")

    TRANSFORM_TOPIC = os.getenv("OBJECT_CONTROLLER_TRANSFORM_TOPIC", "/goods/transform")
    MESSAGE_TOPIC = os.getenv("OBJECT_CONTROLLER_MESSAGE_TOPIC", "/goods/message/from_ros")
    INBOUND_TOPIC = os.getenv("OBJECT_CONTROLLER_INBOUND_TOPIC", "/goods/message/from_sigverse")

    LOOP_HZ = parse_positive_float("OBJECT_CONTROLLER_LOOP_HZ", os.getenv("OBJECT_CONTROLLER_LOOP_HZ", "50"))
    TIMER_PERIOD = parse_positive_float(
        "OBJECT_CONTROLLER_TIMER_PERIOD", os.getenv("OBJECT_CONTROLLER_TIMER_PERIOD", "0.05")
    )

    TRACKED_OBJECTS = parse_tracked_objects(
        os.getenv("OBJECT_CONTROLLER_TRACKED_OBJECTS", DEFAULT_TRACKED_OBJECTS)
    )
    PUBLISH_ROTATION = parse_bool(os.getenv("OBJECT_CONTROLLER_PUBLISH_ROTATION", "true"))

    logger.debug(f"rosbridge: {ROSBRIDGE_URL}, loop: {LOOP_HZ}Hz, timer period: {TIMER_PERIOD}s")
    logger.debug(f"Tracked objects: {TRACKED_OBJECTS}")


config = Config()
