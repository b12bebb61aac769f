"""registrar - driver/plugin registry

Independent implementations ("drivers") of a capability register under a
name, protocol and feature set. Callers narrow and reorder the collection
by protocol, name, features or runtime compatibility checks, then pull out
the implementation handles they need.

Modules:
    - features: Feature tokens and Features sets
    - capabilities: Verifier/Initializer interfaces, checked capability lookup
    - context: CheckContext handed to compatibility checks
    - driver: Driver record
    - registry: Registry queries and preference ordering
    - compatibility: concurrent compatibility checks
    - config: SelectionConfig loaded from JSON
    - logging: structured logging
"""

__version__ = "1.0.0"
__versionInfo__ = (1, 0, 0)

from .features import Feature, Features
from .capabilities import Verifier, Initializer, capabilityOf, implements
from .context import CheckContext, CANCELLED, DEADLINE_EXCEEDED
from .driver import Driver
from .registry import Registry
from .config import SelectionConfig, loadSelectionConfig

__all__ = [
    'Feature',
    'Features',
    'Verifier',
    'Initializer',
    'capabilityOf',
    'implements',
    'CheckContext',
    'CANCELLED',
    'DEADLINE_EXCEEDED',
    'Driver',
    'Registry',
    'SelectionConfig',
    'loadSelectionConfig'
]
