"""
Logging setup for adcontext.

Library modules only call logging.getLogger(__name__); the host decides
whether anything is emitted. configure_logging() is the switch behind
ContextConfig.logging_enabled.
"""

import logging
from typing import Optional

PACKAGE_LOGGER = "adcontext"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_handler: Optional[logging.Handler] = None


def configure_logging(enabled: bool, level: int = logging.DEBUG) -> logging.Logger:
    """Enable or silence the package logger."""
    global _handler
    logger = logging.getLogger(PACKAGE_LOGGER)

    if enabled:
        if _handler is None:
            _handler = logging.StreamHandler()
            _handler.setFormatter(logging.Formatter(LOG_FORMAT))
            logger.addHandler(_handler)
        logger.setLevel(level)
        logger.disabled = False
    else:
        if _handler is not None:
            logger.removeHandler(_handler)
            _handler = None
        logger.setLevel(logging.CRITICAL + 1)

    return logger
