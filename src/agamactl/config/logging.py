"""structlog configuration for agamactl.

Both structlog loggers and plain ``logging.getLogger(__name__)`` loggers
end up in one stderr handler: colored console lines by default, JSON
lines with ``--log-json``. stdout is reserved for command output.
"""

from __future__ import annotations

import logging
import sys

import structlog

TRANSPORT_LOGGERS = ("dbus_fast",)


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_json: bool) -> structlog.types.Processor:
    if log_json:
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(
    *,
    verbose: bool = False,
    log_json: bool = False,
    debug_transport: bool = False,
) -> None:
    """Route all logging to stderr through structlog.

    Args:
        verbose: ``agamactl`` loggers at DEBUG instead of WARNING.
        log_json: JSON lines instead of console lines.
        debug_transport: Also let D-Bus library debug records through
            (only together with *verbose*).
    """
    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    processors: list[structlog.types.Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if log_json:
        processors.append(structlog.processors.format_exc_info)
    processors.append(_renderer(log_json))

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(foreign_pre_chain=shared, processors=processors)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("agamactl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    transport_level = logging.DEBUG if verbose and debug_transport else logging.WARNING
    for name in TRANSPORT_LOGGERS:
        logging.getLogger(name).setLevel(transport_level)
