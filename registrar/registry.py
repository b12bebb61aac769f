"""
Driver Registry

Ordered collection of Driver records with registration, filtering and
preference ordering. Order is priority: consumers that pick "the first
usable driver" rely on it.

Architecture:
- register() appends; drivers are never removed individually
- supports/using/forName/prefer* return a new Registry, receiver untouched
- filterForCompatible() runs every compatibility check concurrently and
  returns the compatible subset in input order
- pruneIncompatible() does the same but narrows the receiver in place

Usage:
    registry = Registry()
    registry.register("ipmitool", "ipmi", ["powerset"], driverInterface=IpmiTool())
    registry.register("dell", "redfish", ["powerset", "usercreate"], driverInterface=Dell())

    candidates = registry.supports("powerset").preferProtocol("redfish")
    usable = await candidates.filterForCompatible(CheckContext(timeout=5))
    for setter in usable.implementing(PowerSetter):
        ...

Property of Uncompromising Sensors LLC.
"""

# Imports
from typing import Any, Callable, Iterable, Iterator, List, Optional, Type, TypeVar, Union

# Local imports
from .capabilities import Initializer, implements
from .compatibility import checkAll
from .context import CheckContext
from .driver import CompatibilityCheck, Driver
from .features import Features
from .logging import getLogger, structuredLogger


T = TypeVar('T')


def deduplicate(keys: Iterable[str]) -> List[str]:
    """Lower-case keys and drop repeats, keeping first occurrence order"""
    result = []
    seen = set()
    for key in keys:
        lowered = key.lower()
        if lowered not in seen:
            seen.add(lowered)
            result.append(lowered)
    return result


class Registry:
    """Registry(drivers=None, logger=None) -> ordered driver collection"""

    def __init__(self, drivers: Optional[Iterable[Driver]] = None, logger=None):
        self.log = structuredLogger(logger) if logger is not None else getLogger()
        self.drivers: List[Driver] = list(drivers) if drivers is not None else []


    # ===== Registration =====
    def register(self, name: str, protocol: str, features: Optional[Iterable] = (),
                 compatibilityCheck: Optional[CompatibilityCheck] = None,
                 driverInterface: Any = None, metadata: Any = None) -> Driver:
        """
        Append a driver.

        Never fails: a missing compatibility check or implementation handle is
        accepted here and only matters when the check or handle is used.
        Without an explicit compatibilityCheck the handle itself is used as the
        Verifier if it implements one.
        """
        driver = Driver(name=name, protocol=protocol, features=Features(features),
                        driverInterface=driverInterface, verifier=compatibilityCheck, metadata=metadata)
        self.drivers.append(driver)
        self.log.debug('Registered driver', driver=name, protocol=protocol, features=list(driver.features))
        return driver


    def registerInitializer(self, name: str, protocol: str, initializer: Initializer, features: Optional[Iterable] = (),
                            compatibilityCheck: Optional[CompatibilityCheck] = None, metadata: Any = None) -> Driver:
        """Append a driver whose implementation handle is built by initializer.init(); init() errors propagate"""
        return self.register(name, protocol, features, compatibilityCheck=compatibilityCheck,
                             driverInterface=initializer.init(), metadata=metadata)


    def add(self, driver: Driver) -> Driver:
        """Append an already built Driver record"""
        self.drivers.append(driver)
        self.log.debug('Added driver', driver=driver.name, protocol=driver.protocol)
        return driver


    # ===== Filters =====
    def _derive(self, drivers: Iterable[Driver]) -> 'Registry':
        derived = type(self).__new__(type(self))
        derived.log = self.log
        derived.drivers = list(drivers)
        return derived


    def where(self, predicate: Callable[[Driver], bool]) -> 'Registry':
        """Drivers for which predicate(driver) is true, in order"""
        return self._derive(driver for driver in self.drivers if predicate(driver))


    def supports(self, *features) -> 'Registry':
        """Drivers declaring every requested feature"""
        return self.where(lambda driver: driver.features.includes(*features))


    def using(self, protocol: str) -> 'Registry':
        """Drivers registered with exactly this protocol (case-sensitive)"""
        return self.where(lambda driver: driver.protocol == protocol)


    def forName(self, name: str) -> 'Registry':
        """Drivers registered with exactly this name (case-sensitive)"""
        return self.where(lambda driver: driver.name == name)


    # ===== Preference ordering =====
    def _prefer(self, keys, keyOf: Callable[[Driver], str]) -> 'Registry':
        """
        Stable rank-bucketed partition.

        Each driver lands in the bucket of the first key it matches
        (compared with str.lower(), so "ß" does not match "SS") and nowhere
        else; non-matching drivers follow all buckets. Relative order is kept
        inside every group.
        """
        ranked = deduplicate(keys)
        if not ranked:
            return self._derive(self.drivers)

        rankOf = {key: index for index, key in enumerate(ranked)}
        buckets: List[List[Driver]] = [[] for _ in ranked]
        leftOver: List[Driver] = []
        for driver in self.drivers:
            rank = rankOf.get(keyOf(driver).lower())
            if rank is None:
                leftOver.append(driver)
            else:
                buckets[rank].append(driver)

        final = [driver for bucket in buckets for driver in bucket]
        final.extend(leftOver)
        return self._derive(final)


    def preferProtocol(self, *protocols: str) -> 'Registry':
        """Move drivers using the given protocols to the front, in the order the protocols are listed"""
        return self._prefer(protocols, lambda driver: driver.protocol)


    def preferDriver(self, *names: str) -> 'Registry':
        """Move drivers with the given names to the front, in the order the names are listed"""
        return self._prefer(names, lambda driver: driver.name)


    # ===== Compatibility =====
    async def filterForCompatible(self, ctx: Optional[CheckContext] = None) -> 'Registry':
        """
        Run every driver's compatibility check concurrently and return the compatible ones.

        Blocks (awaits) until every check has finished. Survivors keep their
        registry order. Drivers without a check, or whose check raises, are
        excluded. The receiver is not modified.

        Args:
            ctx: Shared context handed to every check (default: CheckContext.background())
        """
        ctx = ctx if ctx is not None else CheckContext.background()
        drivers = list(self.drivers)
        verdicts = await checkAll(drivers, ctx, self.log)
        compatible = [driver for driver, ok in zip(drivers, verdicts) if ok]
        self.log.debug('Compatibility filter finished', checked=len(drivers), kept=len(compatible),
                       ctxState=ctx.reason or 'active')
        return self._derive(compatible)


    async def pruneIncompatible(self, ctx: Optional[CheckContext] = None) -> None:
        """filterForCompatible() that narrows this registry in place"""
        result = await self.filterForCompatible(ctx)
        self.drivers = result.drivers


    # ===== Handles =====
    def getDriverInterfaces(self) -> List[Any]:
        """Implementation handles in registry order"""
        return [driver.driverInterface for driver in self.drivers]


    def implementing(self, capability: Type[T]) -> List[T]:
        """Implementation handles providing capability, in registry order"""
        return [driver.driverInterface for driver in self.drivers if implements(driver.driverInterface, capability)]


    def first(self, capability: Optional[type] = None) -> Optional[Driver]:
        """First driver (whose handle provides capability, if given), or None"""
        for driver in self.drivers:
            if capability is None or implements(driver.driverInterface, capability):
                return driver
        return None


    def names(self) -> List[str]:
        return [driver.name for driver in self.drivers]


    def protocols(self) -> List[str]:
        return [driver.protocol for driver in self.drivers]


    # ===== Sequence protocol =====
    def __len__(self) -> int:
        return len(self.drivers)

    def __iter__(self) -> Iterator[Driver]:
        return iter(self.drivers)

    def __getitem__(self, index: Union[int, slice]) -> Union[Driver, 'Registry']:
        if isinstance(index, slice):
            return self._derive(self.drivers[index])
        return self.drivers[index]

    def __bool__(self) -> bool:
        return bool(self.drivers)

    def __eq__(self, other) -> bool:
        if isinstance(other, Registry):
            return self.drivers == other.drivers
        return NotImplemented

    __hash__ = None

    def __repr__(self) -> str:
        entries = ', '.join(f"{driver.name}/{driver.protocol}" for driver in self.drivers)
        return f"Registry([{entries}])"
