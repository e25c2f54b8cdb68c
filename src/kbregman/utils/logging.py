"""Package logger configuration."""

import logging

PACKAGE_LOGGER = "kbregman"


def setup_logger(level: int = logging.INFO) -> logging.Logger:
    """
    Configure the ``kbregman`` package logger.

    Adds a single stream handler on first use; later calls only change the
    level. Module loggers (``kbregman.algorithms.base`` and so on) propagate
    to it.

    :param level: minimum log level
    :return: the configured :class:`logging.Logger`
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.propagate = False

    return logger


def verbosity_to_level(verbose: int) -> int:
    """Map the estimator's verbose flag (0, 1, 2) to a logging level."""
    if verbose >= 2:
        return logging.DEBUG
    if verbose >= 1:
        return logging.INFO
    return logging.WARNING
