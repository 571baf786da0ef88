"""structlog configuration for the klay CLI and embedding applications.

Library code never configures logging; every module only calls
``structlog.get_logger(logger_name=__name__)``.  An application (the CLI,
or a host process embedding the pipeline) calls :func:`configure_logging`
once at startup.

Rendering is JSON when ``APP_ENV=production`` or ``json_output=True`` and a
coloured console otherwise.  Standard-library records from the HTTP and
vector store clients are routed through the same renderer and capped at
WARNING so a batch ingest does not print one line per request.
"""

import logging
import os
import sys

import structlog

# Clients that log every request at INFO.
_CHATTY_LIBRARIES = ("httpx", "httpcore", "openai", "chromadb", "aiosqlite")


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(log_level: str = "INFO", json_output: bool | None = None) -> None:
    """Install the structlog pipeline and route stdlib logging through it.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR.
        json_output: Force JSON (``True``) or console (``False``) rendering.
            ``None`` decides from ``APP_ENV``.
    """
    if json_output is None:
        json_output = os.environ.get("APP_ENV", "development") == "production"
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )

    structlog.configure(
        processors=[*_shared_processors(), renderer],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_shared_processors(),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in _CHATTY_LIBRARIES:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
