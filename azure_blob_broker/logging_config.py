"""Logging configuration and setup."""

import logging
import logging.handlers
import json
from typing import Dict, Any, Optional
from datetime import datetime, timezone

from azure_blob_broker.config import config, LoggingConfig


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        # Add extra fields if present
        if hasattr(record, 'instance_id'):
            log_entry['instance_id'] = record.instance_id
        if hasattr(record, 'operation'):
            log_entry['operation'] = record.operation
        if hasattr(record, 'storage_account_name'):
            log_entry['storage_account_name'] = record.storage_account_name

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class AuditLogger:
    """Specialized logger for the lifecycle audit trail."""

    def __init__(self):
        self.logger = logging.getLogger('azure_blob_broker.audit')

    def log_lifecycle(self, instance_id: Optional[str], operation: str,
                      details: Dict[str, Any] = None):
        """Log a lifecycle transition of a service instance."""
        extra = {
            'instance_id': instance_id or 'unknown',
            'operation': operation
        }

        message = f"Lifecycle operation: {operation} for instance {instance_id}"
        if details:
            message += f" - Details: {json.dumps(details, default=str)}"

        self.logger.info(message, extra=extra)


def setup_logging(logging_config: Optional[LoggingConfig] = None):
    """Set up logging configuration."""
    logging_config = logging_config or config.logging

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, logging_config.level.upper()))

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(JSONFormatter())
    root_logger.addHandler(console_handler)

    # File handler if configured
    if logging_config.file_path:
        file_handler = logging.handlers.RotatingFileHandler(
            logging_config.file_path,
            maxBytes=logging_config.max_file_size,
            backupCount=logging_config.backup_count
        )
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)

    # Set specific logger levels
    logging.getLogger('azure').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('werkzeug').setLevel(logging.WARNING)


# Initialize audit logger
audit_logger = AuditLogger()
