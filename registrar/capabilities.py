"""
Capability interfaces for driver implementation handles.

The registry never inspects a handle's shape. Callers ask for a named
capability and get back either the handle (typed as that capability) or
None, never an unchecked cast.

    from registrar.capabilities import capabilityOf

    @runtime_checkable
    class PowerSetter(Protocol):
        def powerSet(self, state: str) -> bool: ...

    setter = capabilityOf(handle, PowerSetter)
    if setter is not None:
        setter.powerSet("on")

Property of Uncompromising Sensors LLC.
"""

# Imports
from typing import Any, Optional, Protocol, Type, TypeVar, runtime_checkable

from .context import CheckContext


T = TypeVar('T')


@runtime_checkable
class Verifier(Protocol):
    """Decides whether a driver is usable right now.

    compatible() may be a plain function or a coroutine function. Plain
    functions are run in a worker thread, so they may block; both should
    return promptly once ctx is cancelled.
    """

    def compatible(self, ctx: CheckContext) -> bool: ...


@runtime_checkable
class Initializer(Protocol):
    """Builds the implementation handle for a driver at registration"""

    def init(self) -> Any: ...


def implements(handle: Any, capability: type) -> bool:
    """True if handle provides the capability interface"""
    if handle is None:
        return False
    try:
        return isinstance(handle, capability)
    except TypeError as e:
        raise TypeError(f"{capability!r} is not a runtime-checkable capability: {e}") from e


def capabilityOf(handle: Any, capability: Type[T]) -> Optional[T]:
    """Return handle as the requested capability, or None if it does not provide it"""
    return handle if implements(handle, capability) else None
