"""
SelectionConfig: declarative driver selection loaded from JSON.

Describes the query chain an application runs over its registry, so the
choice of protocol, provider and preferences can live in a config file:

    {
        "protocol": "redfish",
        "features": ["powerset"],
        "preferProtocols": ["redfish", "ipmi"],
        "preferDrivers": ["dell"],
        "checkTimeout": 5.0
    }

Every key is optional. apply() runs using -> forName -> supports ->
preferProtocol -> preferDriver for the keys present; select() then runs
the compatibility filter with a context built from checkTimeout.

Property of Uncompromising Sensors LLC.
"""

# Imports
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import List, Optional, Union

import orjson

# Local imports
from .context import CheckContext
from .registry import Registry


def _stringList(data: dict, key: str) -> List[str]:
    value = data.get(key, [])
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise ValueError(f"'{key}' must be a string or a list of strings")
    return value


def _optionalString(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string")
    return value


@dataclass
class SelectionConfig:
    """Query chain to run over a Registry."""
    protocol: Optional[str] = None
    driver: Optional[str] = None
    features: List[str] = field(default_factory=list)
    preferProtocols: List[str] = field(default_factory=list)
    preferDrivers: List[str] = field(default_factory=list)
    checkTimeout: Optional[float] = None  # None = checks get an uncancelled context

    @classmethod
    def fromDict(cls, data: dict) -> 'SelectionConfig':
        if not isinstance(data, dict):
            raise ValueError('selection config is not a JSON object')

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown selection config keys: {', '.join(unknown)}")

        checkTimeout = data.get('checkTimeout')
        if checkTimeout is not None:
            if isinstance(checkTimeout, bool) or not isinstance(checkTimeout, (int, float)):
                raise ValueError("'checkTimeout' must be a number of seconds")
            if checkTimeout < 0:
                raise ValueError("'checkTimeout' must be non-negative")
            checkTimeout = float(checkTimeout)

        return cls(
            protocol=_optionalString(data, 'protocol'),
            driver=_optionalString(data, 'driver'),
            features=_stringList(data, 'features'),
            preferProtocols=_stringList(data, 'preferProtocols'),
            preferDrivers=_stringList(data, 'preferDrivers'),
            checkTimeout=checkTimeout
        )


    def apply(self, registry: Registry) -> Registry:
        """Run the configured filters and preferences; the registry itself is not modified"""
        result = registry[:]
        if self.protocol is not None:
            result = result.using(self.protocol)
        if self.driver is not None:
            result = result.forName(self.driver)
        if self.features:
            result = result.supports(*self.features)
        if self.preferProtocols:
            result = result.preferProtocol(*self.preferProtocols)
        if self.preferDrivers:
            result = result.preferDriver(*self.preferDrivers)
        return result


    def context(self, parent: Optional[CheckContext] = None) -> CheckContext:
        """CheckContext carrying checkTimeout as its deadline"""
        if parent is None:
            return CheckContext(timeout=self.checkTimeout)
        return parent.withTimeout(self.checkTimeout) if self.checkTimeout is not None else parent.withCancel()


    async def select(self, registry: Registry, parent: Optional[CheckContext] = None) -> Registry:
        """apply() followed by the compatibility filter"""
        with self.context(parent) as ctx:
            return await self.apply(registry).filterForCompatible(ctx)


def loadSelectionConfig(path: Union[str, Path]) -> SelectionConfig:
    """Load a SelectionConfig from a JSON file"""
    configPath = Path(path)
    try:
        with configPath.open('rb') as f:
            data = orjson.loads(f.read())
    except (OSError, orjson.JSONDecodeError) as e:
        raise ValueError(f"Cannot read selection config {configPath}: {e}") from e
    return SelectionConfig.fromDict(data)
