"""Logging configuration for the clearance service.

``setup_logger(settings)`` runs once per application build and configures
the ``clearance`` package logger; every module logs through
``logging.getLogger(__name__)`` and propagates to it.

Workflow modules log state transitions at INFO. Collaborator modules
(notifier, certificate generator, worker pool) log failures at WARNING and
above, and are never filtered below WARNING: a swallowed delivery or
generation failure must always leave a trace, even when the service runs
at ERROR.
"""

import logging
import logging.handlers
import os
from typing import IO, Optional

from clearance.core.config import Settings

PACKAGE_LOGGER = "clearance"

COLLABORATOR_LOGGERS = (
    "clearance.core.workflow.issuance",
    "clearance.services.certificates",
    "clearance.services.dispatch",
    "clearance.services.notifications",
)

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


# Set on handlers installed here so a rebuild replaces rather than stacks them
_HANDLER_MARKER = "_clearance_handler"


def _tag(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARKER, True)
    return handler


def parse_level(level: str) -> int:
    """Numeric level for a level name; raises ValueError for unknown names."""
    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(
            f"Invalid log level: {level}. "
            f"Must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL"
        )
    return value


def setup_logger(settings: Settings, stream: Optional[IO[str]] = None) -> logging.Logger:
    """Configure service logging from settings.

    - ``log_level`` sets the package level
    - ``log_to_file`` adds ``<log_dir>/clearance.log`` with rotation
    - ``debug`` turns on SQL statement logging (``sqlalchemy.engine`` at INFO)

    Returns:
        The package logger
    """
    level = parse_level(settings.log_level)
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in [h for h in logger.handlers if getattr(h, _HANDLER_MARKER, False)]:
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = _tag(logging.StreamHandler(stream))
    console.setFormatter(formatter)
    logger.addHandler(console)

    if settings.log_to_file:
        os.makedirs(settings.log_dir, exist_ok=True)
        file_handler = _tag(logging.handlers.RotatingFileHandler(
            os.path.join(settings.log_dir, f"{PACKAGE_LOGGER}.log"),
            maxBytes=LOG_FILE_MAX_BYTES,
            backupCount=LOG_FILE_BACKUPS,
        ))
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for name in COLLABORATOR_LOGGERS:
        logging.getLogger(name).setLevel(min(level, logging.WARNING))

    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )

    return logger
