import sys
from typing import List, Optional
from loguru import logger
import os

CONSOLE_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def setup_logging(debug_mode: bool = True, log_dir: Optional[str] = "logs") -> List[int]:
    """
    Configures Loguru logger.

    Args:
        debug_mode: DEBUG on the console when True, INFO otherwise
        log_dir: Directory for the rotating file sink; None disables it

    Returns:
        Handler ids of the sinks added, for later logger.remove()
    """
    # Remove default handler
    logger.remove()

    level = "DEBUG" if debug_mode else "INFO"
    handler_ids = [logger.add(sys.stderr, level=level, format=CONSOLE_FORMAT)]

    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handler_ids.append(
            logger.add(os.path.join(log_dir, "querysync_{time}.log"), rotation="10 MB", retention="1 week", level="DEBUG")
        )

    logger.info(f"Logging initialized (console={level}, file={'on' if log_dir else 'off'})")
    return handler_ids
