"""structlog rendering for stdlib loggers, with per-request context."""

import logging
import sys

import structlog

# Event keys whose values must never reach the log sink
REDACTED_KEYS = frozenset(
    {"authorization", "api_key", "x-api-key", "signature", "x-signature", "x-wert-signature", "password"}
)


def redact_secrets(logger, method_name, event_dict):
    for key in event_dict.keys() & REDACTED_KEYS:
        event_dict[key] = "***"
    return event_dict


def configure_logging(log_level: str = "info", json_output: bool = False) -> None:
    """Route every stdlib logger through structlog processors.

    Modules keep using ``logging.getLogger(__name__)``; anything passed via
    ``extra=`` is lifted into the structured event.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    pre_chain = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.ExtraAdder(),
        redact_secrets,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    if json_output:
        renderers = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                *renderers,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)

    # Every upstream call would otherwise log at INFO
    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def bind_request_context(trace_id: str, client_ip: str | None = None) -> None:
    structlog.contextvars.bind_contextvars(trace_id=trace_id)
    if client_ip:
        structlog.contextvars.bind_contextvars(client_ip=client_ip)


def clear_request_context() -> None:
    structlog.contextvars.clear_contextvars()
