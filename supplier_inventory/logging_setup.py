import logging
import logging.handlers
import traceback
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from supplier_inventory.config import config

class RunLog:
    """Start time, context and outcome of one logged run."""

    def __init__(self, process_name, context=None):
        self.process_name = process_name
        self.context = context or {}
        self.start_time = datetime.now()
        self.success = True
        self.summary = None

    def finish(self, success=True, summary=None):
        """Record the outcome reported when the run ends."""
        self.success = success
        self.summary = summary

    @property
    def duration(self):
        return datetime.now() - self.start_time


class Logger:
    """Logging manager: one rotating log file per named logger."""

    _instance = None
    _loggers = {}

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        log_config = config.log_config
        self._log_dir = Path(log_config['directory'])
        self._log_dir.mkdir(parents=True, exist_ok=True)

        self._level = getattr(logging, log_config['level'].upper(), logging.INFO)
        self._formatter = logging.Formatter(log_config['format'])
        self._max_bytes = log_config['max_size_mb'] * 1024 * 1024
        self._backup_count = log_config['backup_count']
        self._console_output = log_config['console_output']

        self._app_logger = self.get_logger('app')
        self._initialized = True

    def _build_handlers(self, name):
        handlers = [
            logging.handlers.RotatingFileHandler(
                self._log_dir / f"{name}.log",
                maxBytes=self._max_bytes,
                backupCount=self._backup_count,
                encoding='utf-8'
            )
        ]
        if self._console_output:
            handlers.append(logging.StreamHandler())

        for handler in handlers:
            handler.setFormatter(self._formatter)
        return handlers

    def get_logger(self, name):
        """Get (and on first use configure) the logger with the given name.

        Args:
            name: Logger name, also the log file name

        Returns:
            logging.Logger writing to ``<directory>/<name>.log``
        """
        if name in self._loggers:
            return self._loggers[name]

        named_logger = logging.getLogger(f"supplier_inventory.{name}")
        named_logger.setLevel(self._level)
        for handler in named_logger.handlers[:]:
            named_logger.removeHandler(handler)
        for handler in self._build_handlers(name):
            named_logger.addHandler(handler)

        # Handlers are attached here; the root logger would duplicate lines
        named_logger.propagate = False

        self._loggers[name] = named_logger
        return named_logger

    def log_exception(self, logger_name, exception, message=None):
        """Log an exception with its stack trace."""
        target = self.get_logger(logger_name)
        target.error(f"{message}: {str(exception)}" if message else str(exception))
        target.error(traceback.format_exc())

    @property
    def app_logger(self):
        return self._app_logger

    @contextmanager
    def run_log(self, process_name, **context):
        """Log the start and end of a long-running process such as an import.

        The caller reports its outcome with ``RunLog.finish``; an exception
        escaping the block is logged as a failed run and re-raised.

        Args:
            process_name: Name of the process
            **context: Parameters logged with the start line

        Yields:
            RunLog
        """
        run_logger = self.get_logger('runs')
        run = RunLog(process_name, context)

        details = ', '.join(f"{key}={value}" for key, value in context.items())
        run_logger.info(f"Started {process_name}" + (f" ({details})" if details else ''))

        try:
            yield run
        except Exception as e:
            run_logger.error(f"Failed {process_name} after {run.duration}: {str(e)}")
            raise

        status = "Completed" if run.success else "Completed with errors"
        run_logger.info(f"{status} {process_name} in {run.duration}")
        if run.summary:
            run_logger.info(f"{process_name} results: {run.summary}")

logger = Logger()

def get_logger(name):
    """Get a named logger from the global logging manager."""
    return logger.get_logger(name)

def log_exception(logger_name, exception, message=None):
    """Log an exception with stack trace."""
    logger.log_exception(logger_name, exception, message)
