from __future__ import annotations

import logging
from typing import Optional

PACKAGE_LOGGER = __name__.rsplit(".", 2)[0]

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO", *, extra_handler: Optional[logging.Handler] = None) -> logging.Logger:
    """Configure the package logger once; repeated calls only adjust the level."""

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    if not any(getattr(h, "_email_approval", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        handler._email_approval = True
        logger.addHandler(handler)

    if extra_handler is not None and extra_handler not in logger.handlers:
        logger.addHandler(extra_handler)
    return logger
