"""
Hierarchical structured logger for registrar.

Features:
- Auto-detects logger hierarchy from call stack (computed once, cached)
- Optional rotating log file, console by default
- Structured field logging

Usage:
    from registrar.logging import getLogger

    class Registry:
        def __init__(self):
            self.log = getLogger()  # Auto-detects hierarchy ONCE

        def register(self, name):
            self.log.debug("Registered driver", driver=name)

Property of Uncompromising Sensors LLC.
"""

# Imports
import inspect, logging, logging.handlers, socket
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone as tz

from .context import DriverContextFilter, getDriverContext


# Global state
_hostname = socket.gethostname()
_configured = False
_fileHandlers = {}  # Singleton cache: logPath -> handler
_config = {
    'logDir': None,
    'maxBytes': 10_000_000,
    'backupCount': 5,
    'console': True,
    'level': logging.WARNING,
    'utc': False
}


def configureLogging(logDir: Optional[str] = None, maxBytes: int = 10_000_000,
                     backupCount: int = 5, console: bool = True,
                     level: str = 'WARNING', utc: bool = False):
    """
    Configure global logging settings (call once at app startup).

    Only affects loggers created after the call.

    Args:
        logDir: Directory for log files (default: None, no file output)
        maxBytes: Maximum size per log file before rotation (default: 10MB)
        backupCount: Number of backup files to keep (default: 5)
        console: Also log to console (default: True)
        level: Minimum log level (default: 'WARNING')
        utc: Use UTC timestamps (default: False, uses local time)
    """
    global _configured, _config

    levelNo = logging.getLevelName(level.upper())
    if not isinstance(levelNo, int):
        raise ValueError(f"Unknown log level: {level}")

    _config.update({'logDir': logDir, 'maxBytes': maxBytes, 'backupCount': backupCount,
                    'console': console, 'level': levelNo, 'utc': utc})

    if logDir is not None:
        Path(logDir).mkdir(parents=True, exist_ok=True)
    _configured = True


def _autoDetectName() -> str:
    """Auto-detect logger name from call stack. Returns hierarchy like: 'registrar.registry.Registry'"""

    frame = inspect.currentframe()
    try:
        current = frame
        while current is not None:
            current = current.f_back
            if current is None:
                break

            module = inspect.getmodule(current)
            if module is None:
                continue

            moduleName = module.__name__

            # Skip frames inside this logging package
            if moduleName.startswith('registrar.logging'):
                continue

            # Skip Python's import machinery
            if moduleName.startswith('importlib') or moduleName == '__main__':
                continue

            parts = moduleName.split('.')

            className = None
            if current.f_locals:
                if 'self' in current.f_locals:
                    className = current.f_locals['self'].__class__.__name__
                elif 'cls' in current.f_locals:
                    className = current.f_locals['cls'].__name__

            hierarchy = '.'.join(parts) if parts else 'unknown'
            if className:
                hierarchy = f"{hierarchy}.{className}"

            return hierarchy if hierarchy else 'unknown'

        return 'unknown'
    finally:
        del frame


class StructuredFormatter(logging.Formatter):
    """Formatter that includes hostname and structured fields.
    Format: timestamp - hostname - logger.name - level - message [field1=value1, field2=value2]"""

    excluded = {
        'name', 'msg', 'args', 'created', 'filename', 'funcName',
        'levelname', 'levelno', 'lineno', 'module', 'msecs',
        'message', 'pathname', 'process', 'processName',
        'relativeCreated', 'thread', 'threadName', 'exc_info',
        'exc_text', 'stack_info', 'hostname', 'asctime', 'taskName'
    }

    def __init__(self, fmt=None, datefmt=None, utc=False):
        super().__init__(fmt, datefmt)
        self.utc = utc

    def formatTime(self, record, datefmt=None):
        if self.utc:
            ct = datetime.fromtimestamp(record.created, tz=tz.utc)
        else:
            ct = datetime.fromtimestamp(record.created)

        if datefmt:
            return ct.strftime(datefmt)
        return f"{ct.strftime('%Y-%m-%d %H:%M:%S')},{int(record.msecs):03d}"

    def format(self, record):
        record.hostname = _hostname

        structuredFields = [f"{key}={value}" for key, value in record.__dict__.items()
                            if key not in self.excluded and not key.startswith('_')]

        # Work on a copy of msg so other handlers see the original
        originalMsg = record.msg
        if structuredFields:
            record.msg = f"{originalMsg} [{', '.join(structuredFields)}]"
        try:
            return super().format(record)
        finally:
            record.msg = originalMsg


def getLogger(name: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger with automatic hierarchy detection.

    Loggers created here do not propagate to the root logger. Applications
    that want registry records in their own handlers pass a logger in with
    Registry(logger=...).

    Args:
        name: Logger name (auto-detected from call stack if None)

    Returns:
        logging.Logger whose level methods accept structured fields as keyword arguments

    Example:
        log = getLogger()  # Auto: 'registrar.registry.Registry' when called in Registry.__init__
        log.info("Filtered registry", kept=2, dropped=1)
    """
    if not _configured:
        configureLogging()

    if name is None:
        name = _autoDetectName()

    logger = logging.getLogger(name)

    if not hasattr(logger, '_configured_by_registrar'):
        logger.setLevel(_config['level'])
        logger.propagate = False
        logger.addFilter(DriverContextFilter())

        if _config['logDir'] is not None:
            logPath = str(Path(_config['logDir']) / f"{name.split('.')[0]}.log")
            if logPath not in _fileHandlers:
                fileHandler = logging.handlers.RotatingFileHandler(
                    logPath,
                    maxBytes=_config['maxBytes'],
                    backupCount=_config['backupCount'],
                    encoding='utf-8'
                )
                fileHandler.setFormatter(StructuredFormatter(
                    '%(asctime)s - %(hostname)s - %(name)s - %(levelname)s - %(message)s',
                    utc=_config['utc']
                ))
                _fileHandlers[logPath] = fileHandler
            logger.addHandler(_fileHandlers[logPath])

        if _config['console']:
            consoleHandler = logging.StreamHandler()
            consoleHandler.setFormatter(StructuredFormatter(
                '%(name)s - %(levelname)s - %(message)s',
                utc=_config['utc']
            ))
            logger.addHandler(consoleHandler)

        logger._configured_by_registrar = True

    return _wrapLogger(logger)


def _wrapLogger(logger: logging.Logger) -> logging.Logger:
    """
    Wrap a standard logger so level methods accept structured fields as **kwargs.

    This allows: log.info("Message", field1=value1, field2=value2)
    Instead of: log.info("Message", extra={'field1': value1, 'field2': value2})
    """
    if hasattr(logger, '_is_wrapped'):
        return logger

    def _wrap(original):
        def method(msg, *args, **kwargs):
            # exc_info and stack_info are reserved logging params
            exc_info = kwargs.pop('exc_info', False)
            stack_info = kwargs.pop('stack_info', False)
            if kwargs:
                original(msg, *args, extra=kwargs, exc_info=exc_info, stack_info=stack_info, stacklevel=2)
            else:
                original(msg, *args, exc_info=exc_info, stack_info=stack_info, stacklevel=2)
        method.__doc__ = original.__doc__
        return method

    logger.debug = _wrap(logger.debug)
    logger.info = _wrap(logger.info)
    logger.warning = _wrap(logger.warning)
    logger.error = _wrap(logger.error)
    logger.critical = _wrap(logger.critical)
    logger._is_wrapped = True

    return logger


class StructuredAdapter(logging.LoggerAdapter):
    """
    Adapter giving an externally supplied logger the same structured-field calls.

    Used for injected loggers so their methods are never replaced in place.
    Driver context (see registrar.logging.context) is merged into extra.
    """

    reserved = {'exc_info', 'stack_info', 'stacklevel', 'extra'}

    def process(self, msg, kwargs):
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in self.reserved}
        extra = {key: value for key, value in getDriverContext().items() if value is not None}
        extra.update(self.extra or {})
        extra.update(kwargs.get('extra') or {})
        extra.update(fields)
        kwargs['extra'] = extra
        return msg, kwargs


def structuredLogger(logger) -> logging.Logger:
    """Return logger ready for structured-field calls; wraps foreign loggers in StructuredAdapter"""
    if logger is None:
        return getLogger()
    if getattr(logger, '_is_wrapped', False) or isinstance(logger, StructuredAdapter):
        return logger
    if isinstance(logger, logging.LoggerAdapter):
        return StructuredAdapter(logger.logger, dict(logger.extra or {}))
    return StructuredAdapter(logger, {})
