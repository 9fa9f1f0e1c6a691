"""
Log setup for hosts embedding a SaleSession.

Swap lifecycle events (``swap_submitted``, ``swap_finished``) are structlog
events under the ``lbp_sale`` logger tree; everything else is plain stdlib
logging. ``setup_logging`` renders both through one handler, as JSON lines
unless ``json_logs`` is off or the level is DEBUG.
"""

import logging
import sys
from typing import IO, List, Optional

import structlog

from .config import settings

PACKAGE_LOGGER = "lbp_sale"

# Chatty below WARNING: one line per LCD request or poll
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def _processors(json_logs: bool) -> List[structlog.types.Processor]:
    processors: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_logs:
        processors.append(structlog.processors.format_exc_info)
    return processors


def setup_logging(
    log_level: Optional[str] = None,
    *,
    json_logs: Optional[bool] = None,
    stream: Optional[IO[str]] = None,
) -> logging.Handler:
    """Route ``lbp_sale`` logs and structlog events to ``stream``.

    Args:
        log_level: Level for the ``lbp_sale`` loggers (default: settings.log_level)
        json_logs: Force JSON or console rendering (default: console only at DEBUG)
        stream: Output stream (default: stdout)

    Returns the installed handler. Calling again replaces it.
    """
    level = logging.getLevelName((log_level or settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO
    if json_logs is None:
        json_logs = level != logging.DEBUG

    shared = _processors(json_logs)
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    handler.set_name(PACKAGE_LOGGER)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(package_logger.handlers):
        if existing.get_name() == PACKAGE_LOGGER:
            package_logger.removeHandler(existing)
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return handler


def bind_session(wallet_address: str, chain_id: str) -> None:
    """Attach wallet and chain to every log line emitted by this task tree."""
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(wallet=wallet_address or None, chain_id=chain_id)
