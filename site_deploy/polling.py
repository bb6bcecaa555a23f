import logging
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def poll_until(
    check: Callable[[], T],
    is_done: Callable[[T], bool],
    max_attempts: int,
    interval: float,
    backoff: float = 1.0,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "resource",
) -> Optional[T]:
    """
    Calls `check` until `is_done` accepts its result or the attempts run out.

    Simple Explanation:
    Some AWS resources are not ready the moment you create them. This keeps
    asking "is it there yet?" a fixed number of times, taking a nap between
    questions. It never naps after the last question, so a resource that
    shows up on attempt k costs exactly k calls to `check`.

    Args:
        check (Callable[[], T]): Fetches the current value. Exceptions are not caught.
        is_done (Callable[[T], bool]): Returns True when the value is usable.
        max_attempts (int): Upper bound on calls to `check`. Must be at least 1.
        interval (float): Seconds to wait after the first failed attempt.
        backoff (float): Multiplier applied to the wait after every failed attempt.
            1.0 keeps a fixed interval.
        sleep (Callable[[float], None]): Sleep function, swapped out in tests.
        description (str): What is being waited for, used in log lines.

    Returns:
        Optional[T]: The first accepted value, or None when every attempt failed.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    delay = interval
    for attempt in range(1, max_attempts + 1):
        logger.info(f"Retrieving {description} (attempt {attempt}/{max_attempts})...")
        result = check()
        if is_done(result):
            return result
        if attempt < max_attempts:
            logger.info(f"{description[:1].upper()}{description[1:]} not available yet. Retrying in {delay:g} seconds...")
            sleep(delay)
            delay *= backoff

    logger.debug(f"Gave up on {description} after {max_attempts} attempts.")
    return None
