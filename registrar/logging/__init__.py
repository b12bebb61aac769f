"""
registrar.logging - hierarchical structured logger with automatic detection.

API:
    from registrar.logging import getLogger

    # Class-level (auto-detect once in __init__)
    class MyDriver:
        def __init__(self):
            self.log = getLogger()  # Auto: 'mypackage.drivers.MyDriver'

        def compatible(self, ctx):
            self.log.info("Probing", host=self.host)

    # Global configuration (optional, once at app startup)
    from registrar.logging import configureLogging
    configureLogging(logDir='logs', level='DEBUG')
"""

from .logger import getLogger, configureLogging, StructuredFormatter, StructuredAdapter, structuredLogger
from .context import (
    DriverContextFilter,
    setDriverContext,
    getDriverContext,
    clearDriverContext,
    installDriverContextFilter
)

__all__ = [
    'getLogger',
    'configureLogging',
    'StructuredFormatter',
    'StructuredAdapter',
    'structuredLogger',
    'DriverContextFilter',
    'setDriverContext',
    'getDriverContext',
    'clearDriverContext',
    'installDriverContextFilter'
]
