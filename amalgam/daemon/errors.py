"""Error types and user-facing error reporting.

Collaborator failures are raised as ``AmalgamError`` subclasses at the
boundary and caught by the core. Failures the user has to see (copy,
locate, save) become ``Alert`` objects published on the event bus.
"""

from typing import Optional, Dict, Any
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from collections import deque

from loguru import logger

from .bus import Event, EventBus


class AmalgamError(Exception):
    """Base class for errors raised by Amalgam collaborators."""


class ProviderError(AmalgamError):
    """Search provider could not complete a request."""


class ActionError(AmalgamError):
    """A clipboard write or locate action failed."""


class PersistenceError(AmalgamError):
    """History or settings could not be read or written."""


class ErrorSeverity(Enum):
    """Error severity levels."""
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


@dataclass
class ErrorEvent:
    """Represents an error event."""
    timestamp: datetime
    service: str
    error_type: str
    message: str
    severity: ErrorSeverity
    context: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict:
        return {
            'timestamp': self.timestamp.isoformat(),
            'service': self.service,
            'error_type': self.error_type,
            'message': self.message,
            'severity': self.severity.value,
            'context': self.context
        }


@dataclass
class Alert:
    """A visible, non-fatal notification for the user."""
    title: str
    message: str
    raised_at: datetime = field(default_factory=datetime.now)


class ErrorReporter:
    """
    Records recent errors and raises user-visible alerts.

    Keeps a bounded window of ``ErrorEvent`` records so the CLI can show a
    per-service summary, and publishes ``alert.raised`` events for
    failures the user must be told about.
    """

    def __init__(self, event_bus: Optional[EventBus] = None, window_size: int = 100):
        self.event_bus = event_bus
        self.errors: deque = deque(maxlen=window_size)
        self.alerts: deque = deque(maxlen=window_size)
        self.error_counts: Dict[str, int] = {}

    def record(self,
               service: str,
               error: Exception,
               severity: ErrorSeverity = ErrorSeverity.MEDIUM,
               **context) -> ErrorEvent:
        """Record an error event for ``service``."""
        event = ErrorEvent(
            timestamp=datetime.now(),
            service=service,
            error_type=type(error).__name__,
            message=str(error),
            severity=severity,
            context=context
        )
        self.errors.append(event)

        key = f"{service}:{event.error_type}"
        self.error_counts[key] = self.error_counts.get(key, 0) + 1
        return event

    def alert(self, title: str, error: Exception, service: str = "actions") -> Alert:
        """Record ``error`` and surface it to the user as an alert."""
        self.record(service, error, ErrorSeverity.HIGH)
        alert = Alert(title=title, message=str(error))
        self.alerts.append(alert)
        logger.warning(f"{title}: {error}")

        if self.event_bus is not None:
            self.event_bus.emit_nowait(Event(
                type="alert.raised",
                data={"title": alert.title, "message": alert.message},
                source=service
            ))
        return alert

    def get_error_summary(self) -> Dict[str, Any]:
        """Get error counts grouped by service."""
        by_service: Dict[str, int] = {}
        for e in self.errors:
            by_service[e.service] = by_service.get(e.service, 0) + 1

        return {
            'total': len(self.errors),
            'by_service': by_service,
            'by_type': dict(self.error_counts),
            'last_error': self.errors[-1].to_dict() if self.errors else None
        }
