import logging
import os
import sys
from typing import Optional


def setup_logging(verbosity_level: int = 0, log_file: Optional[str] = None) -> int:
    """
    Configures the root logger for the dashboard and the build script.
    Logs to the console and, if ``log_file`` is given, to that file.

    Verbosity levels:
    0 (default): WARNING
    1 (-v):      INFO
    2+ (-vv...): DEBUG
    """
    if verbosity_level <= 0:
        log_level = logging.WARNING
    elif verbosity_level == 1:
        log_level = logging.INFO
    else:
        log_level = logging.DEBUG

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="[%(asctime)s] [%(name)-24s] [%(levelname)-8s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )

    # Suppress overly verbose libraries
    logging.captureWarnings(True)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logger configured. Level: {logging.getLevelName(log_level)}. Log file: {log_file or '-'}"
    )
    return log_level
