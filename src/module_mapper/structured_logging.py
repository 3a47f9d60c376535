"""
Structured logging configuration for dep-module-mapper.

Provides consistent, machine-readable logging of classification passes and
dependency resolution so build pipelines can collect them.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRIBUTES = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRIBUTES:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class StructuredLogger:
    """Structured logger carrying the context of the current classification pass."""

    def __init__(self, name: str = "module_mapper"):
        self.logger = logging.getLogger(name)
        self._setup_logger()
        self.pass_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        """Setup logger with structured formatting."""
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)
            self.logger.propagate = False

    def set_pass_context(
        self,
        pass_id: Optional[str] = None,
        file_path: Optional[str] = None,
        total_dependencies: Optional[int] = None,
    ) -> None:
        """Set pass context for logging."""
        self.pass_context = {}
        if pass_id:
            self.pass_context["pass_id"] = pass_id
        if file_path:
            self.pass_context["file_path"] = file_path
        if total_dependencies is not None:
            self.pass_context["total_dependencies"] = total_dependencies

    def clear_pass_context(self) -> None:
        self.pass_context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.pass_context, **kwargs}
        getattr(self.logger, level)(event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        self._log("warning", event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        self._log("error", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        self._log("debug", event_type, **kwargs)


_classifier_logger = StructuredLogger("module_mapper.classifier")
_resolver_logger = StructuredLogger("module_mapper.resolver")


def get_classifier_logger() -> StructuredLogger:
    """Get classification engine logger."""
    return _classifier_logger


def get_resolver_logger() -> StructuredLogger:
    """Get dependency resolution logger."""
    return _resolver_logger


def log_classification_start(pass_id: str, file_path: str, total_dependencies: int) -> None:
    """Log the start of a classification pass."""
    logger = get_classifier_logger()
    logger.set_pass_context(pass_id, file_path, total_dependencies)
    logger.info("classification_started")


def log_module_assigned(
    coordinates: str, module_name: str, rule_name: Optional[str] = None
) -> None:
    """Log the assignment of one dependency to a module."""
    log_data = {"coordinates": coordinates, "module_name": module_name}
    if rule_name is not None:
        log_data["rule_name"] = rule_name
        get_classifier_logger().debug("module_assigned", **log_data)
    else:
        get_classifier_logger().debug("default_module_assigned", **log_data)


def log_classification_complete(
    pass_id: str, duration_ms: int, module_count: int, dependency_count: int
) -> None:
    """Log the completion of a classification pass."""
    logger = get_classifier_logger()
    logger.info(
        "classification_completed",
        pass_id=pass_id,
        duration_ms=duration_ms,
        module_count=module_count,
        dependency_count=dependency_count,
    )
    logger.clear_pass_context()


def log_dependency_unresolved(coordinates: str, reason: str) -> None:
    """Log a root dependency whose transitive closure could not be resolved."""
    get_resolver_logger().warning(
        "dependency_unresolved", coordinates=coordinates, reason=reason
    )


def configure_logging(
    log_level: str = "WARNING",
    enable_json: bool = True,
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    for logger in [_classifier_logger, _resolver_logger]:
        logger.logger.setLevel(level)
        formatter = StructuredFormatter() if enable_json else logging.Formatter(log_format)
        for handler in logger.logger.handlers:
            handler.setFormatter(formatter)
