"""
Logging Context

Carries the identity of the driver whose compatibility check is running
(driver name, protocol) to every log record emitted while it runs.
Each check runs in its own asyncio task, and tasks copy the current
context, so values set inside one check never leak into another.

Property of Uncompromising Sensors LLC.
"""

import logging
from typing import Optional
from contextvars import ContextVar

# Context variables for driver identity
_driver_name: ContextVar[Optional[str]] = ContextVar('driver_name', default=None)
_driver_protocol: ContextVar[Optional[str]] = ContextVar('driver_protocol', default=None)


class DriverContextFilter(logging.Filter):
    """
    Logging filter that adds driver context to all log records
    """

    def filter(self, record):
        driverName = _driver_name.get()
        protocol = _driver_protocol.get()

        if driverName is not None and not hasattr(record, 'driver'):
            record.driver = driverName
        if protocol is not None and not hasattr(record, 'protocol'):
            record.protocol = protocol

        return True


def setDriverContext(driverName: str, protocol: Optional[str] = None):
    """
    Set driver-level context for logging

    Args:
        driverName: Registered driver name
        protocol: Registered driver protocol (optional)
    """
    _driver_name.set(driverName)
    _driver_protocol.set(protocol)


def getDriverContext() -> dict:
    """Get current driver context"""
    return {
        'driver': _driver_name.get(),
        'protocol': _driver_protocol.get()
    }


def clearDriverContext():
    """Clear driver context"""
    _driver_name.set(None)
    _driver_protocol.set(None)


def installDriverContextFilter(logger: Optional[logging.Logger] = None):
    """
    Install driver context filter on a logger (root logger by default)

    Loggers from registrar.logging.getLogger() already carry the filter;
    use this for loggers injected from elsewhere.
    """
    target = logger if logger is not None else logging.getLogger()

    for f in target.filters:
        if isinstance(f, DriverContextFilter):
            return

    target.addFilter(DriverContextFilter())
