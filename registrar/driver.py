"""
Driver record held by a Registry.

Identity (name, protocol), declared features, the opaque implementation
handle and an optional compatibility check. The registry owns the record;
the handle is only referenced.

Property of Uncompromising Sensors LLC.
"""

# Imports
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Type, TypeVar, Union

from .capabilities import Verifier, capabilityOf
from .context import CheckContext
from .features import Features


T = TypeVar('T')

CompatibilityCheck = Union[Verifier, Callable[[CheckContext], bool]]


@dataclass
class Driver:
    """
    Registered implementation record.

    Compares by value (two records with equal fields are equal) and is
    therefore unhashable; key sets or dicts by id(driver) or driver.name.
    """
    name: str
    protocol: str
    features: Optional[Features] = field(default_factory=Features)
    driverInterface: Any = None
    verifier: Optional[CompatibilityCheck] = None  # None = fall back to driverInterface
    metadata: Any = None

    def __post_init__(self):
        if not isinstance(self.features, Features):
            self.features = Features(self.features)

    def compatibilityCheck(self) -> Optional[Callable[[CheckContext], Any]]:
        """
        Resolve the callable that answers compatible(ctx).

        Order: explicit verifier object, explicit plain callable, then the
        implementation handle if it implements Verifier. None when absent.
        """
        if self.verifier is not None:
            if isinstance(self.verifier, Verifier):
                return self.verifier.compatible
            if callable(self.verifier):
                return self.verifier
            return None
        verifier = capabilityOf(self.driverInterface, Verifier)
        return verifier.compatible if verifier is not None else None

    def capability(self, capability: Type[T]) -> Optional[T]:
        """Implementation handle as the requested capability, or None"""
        return capabilityOf(self.driverInterface, capability)
