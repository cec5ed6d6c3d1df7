"""structlog setup for applications embedding the cache.

The cache logs debug events (evictions, skipped sets, failed
materializations) through stdlib logging. Nothing is written until the host
either configures stdlib handlers itself or calls configure_logging().
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

import structlog

from costlru import config


def configure_logging(level: Optional[str] = None, json: Optional[bool] = None) -> None:
    level_name = (level or config.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)
    use_json = config.LOG_JSON if json is None else json

    if use_json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Render through stdlib handlers
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(log_level)
