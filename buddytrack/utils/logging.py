# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Structured logging for BuddyTrack using structlog.

The domain services log through the standard library (``logging.getLogger``
with %-style arguments) while the wiring layer logs through structlog. Both
end up in one handler whose ProcessorFormatter renders them the same way,
and both carry the caller bound by ``bind_actor`` for the current scope.

Example:
    >>> from buddytrack.utils.logging import setup_logging, get_logger
    >>> from buddytrack.core.config import get_settings
    >>> setup_logging(get_settings())
    >>> logger = get_logger(__name__)
    >>> logger.info("Week synced", curriculum_id="...", synced=3)
"""

import logging
import sys
from typing import TYPE_CHECKING

import structlog
from structlog.types import Processor

if TYPE_CHECKING:
    from buddytrack.core.config.settings import Settings
    from buddytrack.models.common import Principal

# Context keys owned by bind_actor()/unbind_actor().
ACTOR_KEYS = ("user_id", "role", "buddy_id", "mentor_id")

# SQL echo and driver chatter; raised to WARNING.
QUIET_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "alembic",
    "aiosqlite",
    "asyncpg",
    "asyncio",
)


def _context_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def _renderer(settings: "Settings") -> Processor:
    if settings.is_development or settings.debug:
        return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    return structlog.processors.JSONRenderer()


def setup_logging(settings: "Settings") -> None:
    """Route structlog and stdlib records through one stdout handler.

    Development (or debug) renders a console view; staging and production
    render one JSON object per line.

    Args:
        settings: Application settings (log_level, environment, debug).
    """
    log_level = logging.getLevelName(settings.log_level)

    structlog.configure(
        processors=[
            *_context_processors(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[
                *_context_processors(),
                structlog.stdlib.ExtraAdder(),
            ],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                _renderer(settings),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for the given module name."""
    return structlog.get_logger(name)


def bind_actor(actor: "Principal") -> None:
    """Attach the caller to every record logged in the current context.

    Only the identifiers the principal carries are bound, so a manager's
    records have no buddy_id or mentor_id.
    """
    identity = {
        "user_id": actor.user_id,
        "role": actor.role.value,
        "buddy_id": actor.buddy_id,
        "mentor_id": actor.mentor_id,
    }
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in identity.items() if value is not None}
    )


def unbind_actor() -> None:
    """Remove the caller bound by bind_actor(), keeping other context."""
    structlog.contextvars.unbind_contextvars(*ACTOR_KEYS)
