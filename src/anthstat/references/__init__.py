"""
Growth reference registry.

Registers every ``GrowthReference`` subclass defined in the
``anthstat.references`` submodules under its ``name``.
"""

from enum import Enum
from typing import Dict, Type

from .base import ErrorKind, GrowthReference, IndicatorConfig, ZScoreResult

# Import reference modules to register subclasses
from .cdc2000 import CDC2000
from .who2006 import WHO2006
from .who2007 import WHO2007


class GrowthStandard(str, Enum):
    WHO2006 = "who2006"
    WHO2007 = "who2007"
    CDC2000 = "cdc2000"


def _build_registry() -> Dict[str, Type[GrowthReference]]:
    """Build the registry by discovering GrowthReference subclasses."""
    return {cls.name: cls for cls in GrowthReference.__subclasses__()}


# Global registry instance
registry = _build_registry()

__all__ = [
    "CDC2000",
    "ErrorKind",
    "GrowthReference",
    "GrowthStandard",
    "IndicatorConfig",
    "WHO2006",
    "WHO2007",
    "ZScoreResult",
    "registry",
]
