"""
Structured logging configuration for dep-arbiter.

Provides machine-readable JSON logging for the analyzer, the parsers and the
emitters, plus the observer interface through which a resolution pass
narrates its decisions. Observers are injected into the arbiter and analyzer,
so the engine itself never prints.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .dependency import Dependency
    from .rules import ArbiterRule

_RESERVED_RECORD_KEYS = {
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
    "message",
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
            if key not in _RESERVED_RECORD_KEYS:
                log_entry[key] = value

        return json.dumps(log_entry, default=str)


class ComponentLogger:
    """Structured logger for one component of the tool."""

    def __init__(self, name: str = "dep_arbiter"):
        self.logger = logging.getLogger(name)
        self._setup_logger()
        self.run_context: Dict[str, Any] = {}

    def _setup_logger(self) -> None:
        """Setup logger with structured formatting."""
        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(StructuredFormatter())
            self.logger.addHandler(handler)
            self.logger.setLevel(logging.WARNING)
            self.logger.propagate = False

    def set_run_context(
        self,
        run_id: Optional[str] = None,
        input_count: Optional[int] = None,
    ) -> None:
        """Set run context for logging."""
        self.run_context = {}
        if run_id:
            self.run_context["run_id"] = run_id
        if input_count is not None:
            self.run_context["input_count"] = input_count

    def clear_run_context(self) -> None:
        """Clear run context."""
        self.run_context.clear()

    def _log(self, level: str, event_type: str, **kwargs) -> None:
        log_data = {"event_type": event_type, **self.run_context, **kwargs}
        getattr(self.logger, level.lower())(event_type, extra=log_data)

    def info(self, event_type: str, **kwargs) -> None:
        """Log info level event."""
        self._log("info", event_type, **kwargs)

    def warning(self, event_type: str, **kwargs) -> None:
        """Log warning level event."""
        self._log("warning", event_type, **kwargs)

    def error(self, event_type: str, **kwargs) -> None:
        """Log error level event."""
        self._log("error", event_type, **kwargs)

    def debug(self, event_type: str, **kwargs) -> None:
        """Log debug level event."""
        self._log("debug", event_type, **kwargs)


# Global logger instances
_analyzer_logger = ComponentLogger("dep_arbiter.analyzer")
_parser_logger = ComponentLogger("dep_arbiter.parsers")
_emitter_logger = ComponentLogger("dep_arbiter.emitters")


def get_analyzer_logger() -> ComponentLogger:
    """Get resolution pass logger."""
    return _analyzer_logger


def get_parser_logger() -> ComponentLogger:
    """Get manifest parsing logger."""
    return _parser_logger


def get_emitter_logger() -> ComponentLogger:
    """Get output file logger."""
    return _emitter_logger


def set_run_context(
    run_id: Optional[str] = None, input_count: Optional[int] = None
) -> None:
    """Set global run context for all loggers."""
    for logger in [_analyzer_logger, _parser_logger, _emitter_logger]:
        logger.set_run_context(run_id, input_count)


def clear_run_context() -> None:
    """Clear global run context."""
    for logger in [_analyzer_logger, _parser_logger, _emitter_logger]:
        logger.clear_run_context()


def configure_logging(log_level: str = "WARNING", enable_json: bool = True) -> None:
    """Configure logging for the application."""
    level = getattr(logging, log_level.upper(), logging.WARNING)

    for logger in [_analyzer_logger, _parser_logger, _emitter_logger]:
        logger.logger.setLevel(level)
        for handler in logger.logger.handlers:
            if enable_json:
                handler.setFormatter(StructuredFormatter())
            else:
                handler.setFormatter(
                    logging.Formatter("%(levelname)s %(name)s: %(message)s")
                )


class ArbitrationObserver:
    """
    Receives the narration of a resolution pass.

    Every hook is a no-op here; subclasses override what they need.
    """

    def dependency_ignored(self, dep: "Dependency") -> None:
        pass

    def dependency_analyzed(self, dep: "Dependency") -> None:
        pass

    def dependency_added(self, dep: "Dependency") -> None:
        pass

    def dependency_selected(
        self, chosen: "Dependency", existing: "Dependency", candidate: "Dependency"
    ) -> None:
        pass

    def rule_pinned(self, rule: "ArbiterRule", dep: "Dependency") -> None:
        pass

    def rule_preferred(self, rule: "ArbiterRule", chosen: "Dependency") -> None:
        pass

    def rule_no_preference(
        self, rule: "ArbiterRule", first: "Dependency", second: "Dependency"
    ) -> None:
        pass


class LoggingArbitrationObserver(ArbitrationObserver):
    """Routes arbitration events to the structured analyzer logger."""

    def __init__(self, logger: Optional[ComponentLogger] = None):
        self.logger = logger or get_analyzer_logger()

    def dependency_ignored(self, dep):
        self.logger.info(
            "dependency_ignored", identity=dep.logical_identity, scope=dep.scope.value
        )

    def dependency_analyzed(self, dep):
        self.logger.debug(
            "dependency_analyzed",
            identity=dep.logical_identity,
            version=dep.version.label,
            source_line=dep.source_line,
        )

    def dependency_added(self, dep):
        self.logger.info(
            "dependency_added", identity=dep.logical_identity, version=dep.version.label
        )

    def dependency_selected(self, chosen, existing, candidate):
        self.logger.info(
            "dependency_selected",
            identity=chosen.logical_identity,
            version=chosen.version.label,
            candidates=[existing.version.label, candidate.version.label],
        )

    def rule_pinned(self, rule, dep):
        self.logger.info(
            "rule_pinned",
            identity=dep.logical_identity,
            version=dep.version.label,
            rule=str(rule),
        )

    def rule_preferred(self, rule, chosen):
        self.logger.info(
            "rule_preferred",
            identity=chosen.logical_identity,
            version=chosen.version.label,
            rule=str(rule),
        )

    def rule_no_preference(self, rule, first, second):
        self.logger.debug(
            "rule_no_preference",
            identity=first.logical_identity,
            candidates=[first.version.label, second.version.label],
            rule=str(rule),
        )


class RecordingArbitrationObserver(ArbitrationObserver):
    """Keeps every event in memory, in the order it happened."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def _record(self, event_type: str, **fields) -> None:
        self.events.append((event_type, fields))

    def event_types(self) -> List[str]:
        return [event_type for event_type, _ in self.events]

    def dependency_ignored(self, dep):
        self._record("dependency_ignored", dependency=dep)

    def dependency_analyzed(self, dep):
        self._record("dependency_analyzed", dependency=dep)

    def dependency_added(self, dep):
        self._record("dependency_added", dependency=dep)

    def dependency_selected(self, chosen, existing, candidate):
        self._record(
            "dependency_selected", chosen=chosen, existing=existing, candidate=candidate
        )

    def rule_pinned(self, rule, dep):
        self._record("rule_pinned", rule=rule, dependency=dep)

    def rule_preferred(self, rule, chosen):
        self._record("rule_preferred", rule=rule, chosen=chosen)

    def rule_no_preference(self, rule, first, second):
        self._record("rule_no_preference", rule=rule, first=first, second=second)


class CompositeArbitrationObserver(ArbitrationObserver):
    """Fans each event out to several observers."""

    def __init__(self, *observers: ArbitrationObserver):
        self.observers = list(observers)

    def dependency_ignored(self, dep):
        for observer in self.observers:
            observer.dependency_ignored(dep)

    def dependency_analyzed(self, dep):
        for observer in self.observers:
            observer.dependency_analyzed(dep)

    def dependency_added(self, dep):
        for observer in self.observers:
            observer.dependency_added(dep)

    def dependency_selected(self, chosen, existing, candidate):
        for observer in self.observers:
            observer.dependency_selected(chosen, existing, candidate)

    def rule_pinned(self, rule, dep):
        for observer in self.observers:
            observer.rule_pinned(rule, dep)

    def rule_preferred(self, rule, chosen):
        for observer in self.observers:
            observer.rule_preferred(rule, chosen)

    def rule_no_preference(self, rule, first, second):
        for observer in self.observers:
            observer.rule_no_preference(rule, first, second)
