"""
Centralized logging configuration for the Proud Profits signals dashboard.
This provides a consistent logging setup across all project components.
"""

import os
import sys
import logging
import logging.handlers
from typing import Dict, Optional, List

# Define log levels dictionary for easy reference
LOG_LEVELS = {
    'DEBUG': logging.DEBUG,
    'INFO': logging.INFO,
    'WARNING': logging.WARNING,
    'ERROR': logging.ERROR,
    'CRITICAL': logging.CRITICAL
}

# Default format string for log messages
DEFAULT_LOG_FORMAT = "%(asctime)s - [%(levelname)s] - %(name)s - %(message)s"

# Global configuration
logs_directory = os.environ.get(
    'PROUD_PROFITS_LOG_DIR',
    os.path.join(os.getcwd(), 'logs')
)
default_log_file = os.path.join(logs_directory, 'proud_profits.log')

# Global log handler registry to avoid duplicates
_log_handlers = {}


def configure_logging(
    level: str = 'INFO',
    component: Optional[str] = None,
    log_file: Optional[str] = None,
    console: bool = True,
    file_logging: bool = True,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB
    backup_count: int = 5,
    log_format: str = DEFAULT_LOG_FORMAT
) -> logging.Logger:
    """
    Configure logging for a specific component.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        component: Component name (used as logger name)
        log_file: Path to log file (defaults to logs/component_name.log)
        console: Whether to log to console
        file_logging: Whether to log to file
        max_bytes: Maximum log file size before rotation
        backup_count: Number of backup log files to keep
        log_format: Format string for log messages

    Returns:
        Configured logger instance
    """
    logger_name = component or "proud_profits"
    logger = logging.getLogger(logger_name)

    # Skip if already configured with handlers
    if logger.handlers:
        return logger

    logger.setLevel(LOG_LEVELS.get(level.upper(), logging.INFO))

    if log_file is None and component is not None:
        log_file = os.path.join(logs_directory, f"{component.lower().replace('.', '_')}.log")
    elif log_file is None:
        log_file = default_log_file

    formatter = logging.Formatter(log_format)

    if console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if file_logging:
        try:
            if log_file in _log_handlers:
                file_handler = _log_handlers[log_file]
            else:
                os.makedirs(os.path.dirname(log_file), exist_ok=True)
                file_handler = logging.handlers.RotatingFileHandler(
                    log_file,
                    maxBytes=max_bytes,
                    backupCount=backup_count
                )
                file_handler.setFormatter(formatter)
                _log_handlers[log_file] = file_handler

            logger.addHandler(file_handler)
        except OSError as e:
            # If file logging fails, log to console as fallback
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)
            logger.error(f"Failed to set up file logging: {e}")

    return logger


def configure_root_logger(level: str = 'INFO'):
    """
    Configure the package root logger and install an exception hook
    that records unhandled exceptions.

    Args:
        level: Logging level for the root logger
    """
    root_logger = configure_logging(
        level=level,
        component=None,
        log_file=default_log_file,
        console=True,
        file_logging=True
    )

    def exception_handler(exc_type, exc_value, exc_traceback):
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc_value, exc_traceback)
            return

        root_logger.critical("Unhandled exception", exc_info=(exc_type, exc_value, exc_traceback))
        sys.__excepthook__(exc_type, exc_value, exc_traceback)

    sys.excepthook = exception_handler
    return root_logger


def log_exception(logger: logging.Logger, exception: Exception, message: str = "An error occurred:"):
    """
    Log an exception with full traceback information.

    Args:
        logger: Logger instance
        exception: Exception to log
        message: Message to prefix the exception
    """
    logger.error(f"{message} {str(exception)}")
    logger.debug("Exception traceback:", exc_info=True)


def set_log_level(component: Optional[str] = None, level: str = 'INFO'):
    """
    Set the log level for a specific component or the package root logger.
    """
    logger = logging.getLogger(component) if component else logging.getLogger("proud_profits")
    logger.setLevel(LOG_LEVELS.get(level.upper(), logging.INFO))


class LogManager:
    """Manager class for handling multiple loggers across the application."""

    def __init__(self, default_level: str = 'INFO'):
        self.loggers: Dict[str, logging.Logger] = {}
        self.default_level = default_level

    def get_logger(self, component: str, level: Optional[str] = None) -> logging.Logger:
        """
        Get a logger for a specific component.

        Args:
            component: Component name
            level: Logging level (uses default if None)

        Returns:
            Logger instance
        """
        if component not in self.loggers:
            self.loggers[component] = configure_logging(
                level=level or self.default_level,
                component=component
            )

        return self.loggers[component]

    def set_default_level(self, level: str):
        if level.upper() in LOG_LEVELS:
            self.default_level = level.upper()

    def set_all_levels(self, level: str):
        """
        Set the log level for all existing loggers.
        """
        for component in self.loggers:
            set_log_level(component, level)

        set_log_level(None, level)

    def set_log_directory(self, directory: str):
        """
        Write log files under another directory.

        File handlers of the loggers created so far are reopened there.
        """
        global logs_directory, default_log_file

        logs_directory = directory
        default_log_file = os.path.join(directory, 'proud_profits.log')
        os.makedirs(directory, exist_ok=True)

        for component, logger in self.loggers.items():
            for handler in list(logger.handlers):
                if not isinstance(handler, logging.handlers.RotatingFileHandler):
                    continue
                logger.removeHandler(handler)
                for key in [k for k, h in _log_handlers.items() if h is handler]:
                    del _log_handlers[key]
                handler.close()

                log_file = os.path.join(directory, f"{component.lower().replace('.', '_')}.log")
                file_handler = logging.handlers.RotatingFileHandler(
                    log_file,
                    maxBytes=handler.maxBytes,
                    backupCount=handler.backupCount
                )
                file_handler.setFormatter(handler.formatter)
                _log_handlers[log_file] = file_handler
                logger.addHandler(file_handler)

    def get_log_files(self) -> List[str]:
        try:
            return [f for f in os.listdir(logs_directory) if f.endswith('.log')]
        except OSError:
            return []

    def get_recent_logs(self, component: Optional[str] = None, lines: int = 100) -> List[str]:
        """
        Get recent log entries from a component log file.

        Args:
            component: Component name (uses root logger if None)
            lines: Number of lines to retrieve

        Returns:
            List of recent log lines
        """
        if component:
            log_file = os.path.join(logs_directory, f"{component.lower().replace('.', '_')}.log")
        else:
            log_file = default_log_file

        if not os.path.exists(log_file):
            return []

        with open(log_file, 'r') as f:
            all_lines = f.readlines()
        return all_lines[-lines:]


# Create a global log manager instance
log_manager = LogManager(os.environ.get('PROUD_PROFITS_LOG_LEVEL', 'INFO'))


def get_component_logger(component: str, level: Optional[str] = None) -> logging.Logger:
    """Get a logger for a specific component using the global log manager."""
    return log_manager.get_logger(component, level)
