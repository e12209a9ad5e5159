"""
structlog setup for the API process.

``configure_logging("dev")`` renders colored console lines; any other
environment emits one JSON object per record. Stdlib loggers share the same
formatter, so the engine's bound structlog loggers and the plain
``logging.getLogger(__name__)`` loggers elsewhere end up in one stream with
the same keys (timestamp, level, logger, event, plus bound context such as
application_id or session_id).
"""

import logging
import sys

import structlog

# Per-request and per-statement chatter that only helps locally
_QUIET_OUTSIDE_DEV = ("uvicorn.access", "sqlalchemy.engine")


def _pre_chain() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]


def configure_logging(app_env: str = "dev", level: int = logging.INFO) -> None:
    """
    Route structlog and stdlib logging through one stdout handler.

    Args:
        app_env: "dev" for console output, anything else for JSON
        level: Root log level
    """
    pre_chain = _pre_chain()
    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if app_env == "dev"
        else structlog.processors.JSONRenderer()
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=pre_chain)
    )
    logging.basicConfig(handlers=[handler], level=level, force=True)

    if app_env != "dev":
        for name in _QUIET_OUTSIDE_DEV:
            logging.getLogger(name).setLevel(logging.WARNING)
