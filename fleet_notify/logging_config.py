"""
Structured JSON logging configuration with correlation IDs.
Every log line carries the notification id, recipient scope and request id
in effect when it was emitted, so one create call can be traced through
store, broadcast and push.
"""

import logging
import sys
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextvars import ContextVar
from pythonjsonlogger import jsonlogger

# Context variables for correlation IDs
_notification_id: ContextVar[Optional[str]] = ContextVar('notification_id', default=None)
_recipient_type: ContextVar[Optional[str]] = ContextVar('recipient_type', default=None)
_recipient_id: ContextVar[Optional[str]] = ContextVar('recipient_id', default=None)
_request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)


def set_context(
    notification_id: Optional[str] = None,
    recipient_type: Optional[str] = None,
    recipient_id: Optional[str] = None,
    request_id: Optional[str] = None
) -> None:
    """Set correlation context variables"""
    if notification_id:
        _notification_id.set(notification_id)
    if recipient_type:
        _recipient_type.set(recipient_type)
    if recipient_id:
        _recipient_id.set(recipient_id)
    if request_id:
        _request_id.set(request_id)


def clear_context() -> None:
    """Clear all context variables"""
    _notification_id.set(None)
    _recipient_type.set(None)
    _recipient_id.set(None)
    _request_id.set(None)


class CorrelationIdFilter(logging.Filter):
    """Add correlation IDs to log records"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.notification_id = _notification_id.get() or "-"
        record.recipient_type = _recipient_type.get() or "-"
        record.recipient_id = _recipient_id.get() or "-"
        record.request_id = _request_id.get() or "-"
        return True


class JsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding correlation IDs, timestamp and service name"""

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()

        log_record['notification_id'] = getattr(record, 'notification_id', '-')
        log_record['recipient_type'] = getattr(record, 'recipient_type', '-')
        log_record['recipient_id'] = getattr(record, 'recipient_id', '-')
        log_record['request_id'] = getattr(record, 'request_id', '-')

        log_record['service'] = 'fleet-notify'
        log_record['level'] = record.levelname

        log_record.pop('asctime', None)


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter('%(message)s %(levelname)s %(name)s'))
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    # configure_logging may run again under test reloads
    for existing in list(root_logger.handlers):
        if isinstance(existing.formatter, JsonFormatter):
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    logging.getLogger('fleet_notify').setLevel(log_level)

    # Suppress verbose libraries
    logging.getLogger('asyncpg').setLevel(logging.WARNING)
    logging.getLogger('firebase_admin').setLevel(logging.WARNING)
    logging.getLogger('google.auth').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get logger instance with context support"""
    return logging.getLogger(name)
