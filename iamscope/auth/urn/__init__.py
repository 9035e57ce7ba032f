"""
Resource identifiers (URNs) and their mapping to filter constraints.

    urn:service:resourceType:accountId:path/to/resource

Built-in path handlers (date_range, tag) register on import.
"""

from .config import (
    DEFAULT_KEY,
    PathHandler,
    ServiceMapping,
    UrnConfiguration,
    default_urn_configuration,
)
from .parser import FilterFragment, UrnParser, build_urn
from . import handlers  # noqa: F401

__all__ = [
    "DEFAULT_KEY",
    "PathHandler",
    "ServiceMapping",
    "UrnConfiguration",
    "default_urn_configuration",
    "FilterFragment",
    "UrnParser",
    "build_urn",
]
