"""
Feature tokens and feature sets.

A Feature names one unit of capability a driver declares (e.g. "powerset").
Features is the ordered, immutable sequence a driver registers with; its
includes() test is set based, so order and duplicates do not matter.

Property of Uncompromising Sensors LLC.
"""

# Imports
from typing import Iterable, Optional


class Feature(str):
    """Opaque capability token. Compares equal to the plain string it wraps."""
    __slots__ = ()

    def __repr__(self) -> str:
        return f"Feature({str.__repr__(self)})"


class Features(tuple):
    """Features(iterable) -> ordered feature sequence as registered. None means no features."""

    def __new__(cls, features: Optional[Iterable] = ()):
        if features is None:
            features = ()
        elif isinstance(features, str):
            features = (features,)
        return super().__new__(cls, (Feature(f) for f in features))

    def includes(self, *requested) -> bool:
        """True if every requested feature is present in this set"""
        wanted = set(requested)
        own = set(self)
        # Distinct counts, so repeated requests stay idempotent
        if len(wanted) > len(own):
            return False
        for feature in wanted:
            if feature not in own:
                return False
        return True

    def __repr__(self) -> str:
        return f"Features({list(map(str, self))!r})"
