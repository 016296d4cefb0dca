"""
Centralized logging configuration for the conversation engine.

This module provides a function to set up application-wide logging,
including formatting, log levels, and handlers for console and file output.
"""

import logging
import logging.handlers # Required for RotatingFileHandler
import os
import sys # To ensure we can always output to stdout for console
import json
from typing import Optional

# Turn-scoped fields that the engine attaches to log records through LoggerAdapter extras.
TURN_FIELDS = ('session_id', 'sequence', 'action')

class StructuredLogFormatter(logging.Formatter):
    """
    Custom formatter that renders every record as a single JSON line.

    Features:
    - Includes session_id, sequence and action if present in extra fields
    - Merges any 'extra_fields' mapping attached to the record
    - Preserves standard log fields (timestamp, level, logger, message)
    """

    def format(self, record):
        # Create base log structure
        log_data = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        # Add turn fields if present
        for field in TURN_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        # Add any extra fields from record
        if hasattr(record, 'extra_fields'):
            log_data.update(record.extra_fields)

        # Add exception info if present
        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - [%(session_id)s] - [%(sequence)s] - %(message)s'
DEFAULT_LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

def get_logger(
    name: str,
    session_id: Optional[str] = None,
    sequence: Optional[str] = None,
    action: Optional[str] = None,
) -> logging.LoggerAdapter:
    """
    Get a logger carrying the turn fields used by the structured formatter.

    Args:
        name (str): Logger name (usually __name__)
        session_id (Optional[str]): Conversation session identifier, if known
        sequence (Optional[str]): Name of the active sequence, if known
        action (Optional[str]): Detected action of the current turn, if known

    Returns:
        logging.LoggerAdapter: Configured logger adapter
    """
    logger = logging.getLogger(name)

    # Add placeholder values for our custom fields to avoid KeyError in format strings
    return logging.LoggerAdapter(logger, {
        'session_id': session_id or 'no_session',
        'sequence': sequence or 'no_sequence',
        'action': action or 'no_action',
    })

def setup_app_logging(config: dict = None, default_level=logging.INFO) -> None:
    """
    Set up logging for the entire application.

    This function configures the root logger with handlers for console
    and file output. Log levels and file paths can be specified via
    the optional config dictionary.

    Args:
        config (dict, optional): A dictionary containing logging configurations.
                                Expected keys:
                                - 'level': String representation of log level (e.g., "DEBUG", "INFO").
                                - 'file_path': Path to the log file; empty disables file logging.
                                - 'max_bytes': Max size of the log file before rotation.
                                - 'backup_count': Number of backup log files to keep.
                                - 'format': Custom log format string.
                                - 'date_format': Custom log date format string.
        default_level (int, optional): The default logging level if not specified
                                     in the config. Defaults to logging.INFO.
    """
    if config is None:
        config = {}

    # Determine log level
    log_level_str = str(config.get('level', logging.getLevelName(default_level))).upper()
    numeric_log_level = getattr(logging, log_level_str, default_level)
    if not isinstance(numeric_log_level, int):
        print(f"Warning: Invalid log level string '{log_level_str}'. Using default level {logging.getLevelName(default_level)}.", file=sys.stderr)
        numeric_log_level = default_level

    log_format = config.get('format', DEFAULT_LOG_FORMAT)
    log_date_format = config.get('date_format', DEFAULT_LOG_DATE_FORMAT)
    formatter = StructuredLogFormatter(log_format, datefmt=log_date_format)

    # Configuring the root logger lets every module using logging.getLogger(__name__) inherit it.
    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_log_level)

    # Remove any existing handlers
    if root_logger.hasHandlers():
        for handler in root_logger.handlers[:]:
            root_logger.removeHandler(handler)
            handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file_path = config.get('file_path')
    if log_file_path:
        try:
            max_bytes = int(config.get('max_bytes', 5*1024*1024))  # 5 MB
            backup_count = int(config.get('backup_count', 3))

            log_dir = os.path.dirname(log_file_path)
            if log_dir:
                os.makedirs(log_dir, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_file_path,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding='utf-8'
            )
            file_handler.setFormatter(formatter)
            root_logger.addHandler(file_handler)
            print(f"Logging to file: {log_file_path} with level {log_level_str}", file=sys.stdout)
        except OSError as e:
            print(f"Error setting up file logging to {log_file_path}: {e}. File logging will be disabled.", file=sys.stderr)
    else:
        print("File logging is disabled as no 'file_path' was provided in logging config.", file=sys.stdout)

    initial_logger = get_logger("LoggingConfig")
    initial_logger.info("Application logging setup complete. Level: %s", log_level_str)
