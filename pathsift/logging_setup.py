import logging
import sys
import structlog

# per-decision trace events are emitted under this logger name.
DECISION_LOGGER_NAME = "pathsift.core.discovery.diagnostics"

def _select_renderer(force_json_logs: bool):
    if force_json_logs:
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

def configure_logging(log_level_str: str = "warning", force_json_logs: bool = False, trace_decisions: bool = False):
    """
    Routes structlog through stdlib logging on stderr under the ``pathsift`` logger.

    One event is logged per filter decision, which drowns out everything else
    on a large tree, so those events stay hidden (never below INFO) unless
    ``trace_decisions`` is set, whatever the general level is.
    """
    log_level = getattr(logging, log_level_str.upper(), logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processor=_select_renderer(force_json_logs),
            foreign_pre_chain=[structlog.stdlib.add_log_level],
        )
    )

    package_logger = logging.getLogger("pathsift")
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(log_level)

    decision_logger = logging.getLogger(DECISION_LOGGER_NAME)
    decision_logger.setLevel(logging.DEBUG if trace_decisions else max(log_level, logging.INFO))

    structlog.get_logger(__name__).info(
        "logging_configured", level=log_level_str, json=force_json_logs, trace_decisions=trace_decisions
    )
