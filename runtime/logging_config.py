# runtime/logging_config.py

import logging
from typing import Optional

LOGGER_NAME = "cg_descent"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def _file_handler(log_file: str, level: int, formatter: logging.Formatter):
    handler = logging.FileHandler(log_file, mode="w")
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    log_file: Optional[str],
    *,
    quiet: bool = False,
    debug: bool = False,
) -> logging.Logger:
    """Attach handlers to the ``cg_descent`` logger and return it.

    Iteration traces and line search diagnostics go to the console at INFO
    unless ``quiet`` is set; ``debug`` lowers the logger (and the optional
    ``log_file``) to DEBUG. Calling this again replaces the previous handlers.
    A log file that cannot be opened is reported as a warning on the logger
    itself and the run continues without it.
    """
    logger = logging.getLogger(LOGGER_NAME)
    # Records still reach the root logger, so caplog sees them when quiet
    logger.propagate = True

    level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    if not quiet:
        console = logging.StreamHandler()
        console.setLevel(logging.INFO)
        console.setFormatter(formatter)
        logger.addHandler(console)

    if log_file:
        try:
            logger.addHandler(_file_handler(log_file, level, formatter))
        except OSError as exc:
            logger.warning(
                "Could not open log file %s (%s); continuing without it.", log_file, exc
            )

    return logger
