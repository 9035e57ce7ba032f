"""
Per-service URN mapping configuration.

URN format: ``urn:service:resourceType:accountId:path/to/resource``

For each service the configuration says how URN segments become filter
constraints:

    resource_types  {token | "_default": {field: template}}
    account_ids     {token | "_default": {field: template}}
    path_handlers   ordered [PathHandler]; every matching handler applies

Templates may use:
    $value       the URN segment being mapped
    $refs.N      the Nth colon-delimited URN segment (0 = "urn")
    $context.K   a value from the evaluation context

A template is a plain value, a placeholder string, or an object using
filter operators, e.g. ``{"_id": {"$in": ["$value"]}}``.

The configuration is built once at startup and shared read-only by all
evaluations.
"""

import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Callable, Mapping

from ..errors import ConfigurationError
from ..registry import AuthRegistry

DEFAULT_KEY = "_default"


@dataclass(frozen=True)
class PathHandler:
    """
    One path rule: a regex plus either a field mapping or a function.

    ``mapping`` values may reference capture groups as ``$1..$N``.
    ``handler`` is called as ``handler(match, fragment)`` and mutates the
    fragment being built.
    """
    pattern: str
    mapping: Mapping[str, Any] | None = None
    handler: Callable[..., Any] | None = None
    regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if (self.mapping is None) == (self.handler is None):
            raise ConfigurationError(
                f"Path handler '{self.pattern}' needs exactly one of mapping or handler"
            )
        try:
            compiled = re.compile(self.pattern)
        except re.error as exc:
            raise ConfigurationError(f"Invalid path handler pattern '{self.pattern}': {exc}") from exc
        object.__setattr__(self, "regex", compiled)
        if self.mapping is not None:
            object.__setattr__(self, "mapping", MappingProxyType(dict(self.mapping)))


@dataclass(frozen=True)
class ServiceMapping:
    """Mapping tables for one service."""
    resource_types: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    account_ids: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    path_handlers: tuple[PathHandler, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "resource_types", _freeze_table(self.resource_types))
        object.__setattr__(self, "account_ids", _freeze_table(self.account_ids))
        object.__setattr__(self, "path_handlers", tuple(self.path_handlers))

    def resource_type_mapping(self, token: str) -> Mapping[str, Any] | None:
        return _lookup_token(self.resource_types, token)

    def account_id_mapping(self, token: str) -> Mapping[str, Any] | None:
        return _lookup_token(self.account_ids, token)


@dataclass(frozen=True)
class UrnConfiguration:
    """Immutable service -> ServiceMapping table."""
    services: Mapping[str, ServiceMapping] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "services", MappingProxyType(dict(self.services)))

    def get_service(self, name: str) -> ServiceMapping | None:
        return self.services.get(name)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "UrnConfiguration":
        """
        Build from a JSON-shaped document.

        Path handlers reference functions by registry name:
            {"pattern": "tag/(.*)", "handler": "tag"}

        Raises:
            ConfigurationError: On malformed tables or unknown handlers
        """
        services_data = data.get("services")
        if not isinstance(services_data, Mapping):
            raise ConfigurationError("URN configuration needs a 'services' object")

        services: dict[str, ServiceMapping] = {}
        for name, service_data in services_data.items():
            if not isinstance(service_data, Mapping):
                raise ConfigurationError(f"Service '{name}' must be an object")
            services[name] = ServiceMapping(
                resource_types=_table(service_data, "resourceTypes", "resource_types"),
                account_ids=_table(service_data, "accountIds", "account_ids"),
                path_handlers=tuple(
                    _path_handler(entry)
                    for entry in service_data.get("pathHandlers", service_data.get("path_handlers", []))
                ),
            )
        return cls(services=services)

    @classmethod
    def from_file(cls, path: str | Path) -> "UrnConfiguration":
        """Load a JSON mapping file."""
        try:
            with open(path, encoding="utf-8") as fh:
                data = json.load(fh)
        except (OSError, ValueError) as exc:
            raise ConfigurationError(f"Cannot load URN configuration from {path}: {exc}") from exc
        return cls.from_dict(data)


def _freeze_table(table: Mapping[str, Mapping[str, Any]]) -> Mapping[str, Mapping[str, Any]]:
    return MappingProxyType({key: MappingProxyType(dict(value)) for key, value in table.items()})


def _lookup_token(table: Mapping[str, Mapping[str, Any]], token: str) -> Mapping[str, Any] | None:
    # An entry for the literal token wins even when it is empty
    mapping = table.get(token)
    return mapping if mapping is not None else table.get(DEFAULT_KEY)


def _table(data: Mapping[str, Any], *keys: str) -> dict[str, Mapping[str, Any]]:
    for key in keys:
        if key in data:
            table = data[key]
            if not isinstance(table, Mapping) or not all(isinstance(v, Mapping) for v in table.values()):
                raise ConfigurationError(f"'{key}' must map tokens to objects")
            return dict(table)
    return {}


def _path_handler(entry: Any) -> PathHandler:
    if not isinstance(entry, Mapping) or "pattern" not in entry:
        raise ConfigurationError(f"Path handler needs a pattern: {entry!r}")
    handler = entry.get("handler")
    if isinstance(handler, str):
        try:
            handler = AuthRegistry.get_path_handler(handler)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
    return PathHandler(pattern=entry["pattern"], mapping=entry.get("mapping"), handler=handler)


def default_urn_configuration() -> UrnConfiguration:
    """The built-in table for the chat, kb, team and feature services."""
    from .handlers import date_range_handler, tag_handler

    return UrnConfiguration(services={
        "chat": ServiceMapping(
            resource_types={
                "message": {"_id": "$value"},
            },
            path_handlers=(
                PathHandler("category/(.*)", mapping={"category": "$1"}),
                PathHandler("status/(.*)", mapping={"status": "$1"}),
                PathHandler("priority/(.*)", mapping={"priority": "$1"}),
                PathHandler("user/(.*)", mapping={"userId": "$1"}),
                PathHandler("agent/(.*)", mapping={"agentId": "$1"}),
                PathHandler("date/(after|before)-(.*)", handler=date_range_handler),
                PathHandler("tag/(.*)", handler=tag_handler),
            ),
        ),
        "kb": ServiceMapping(
            resource_types={
                DEFAULT_KEY: {"type": "knowledge"},
                "article": {"_id": "$value"},
                "category": {"category": "$value"},
            },
            path_handlers=(
                PathHandler("category/(.*)", mapping={"category": "$1"}),
                PathHandler("tag/(.*)", handler=tag_handler),
            ),
        ),
        "team": ServiceMapping(
            resource_types={
                DEFAULT_KEY: {"_id": {"$in": ["$value"]}},
            },
        ),
        "feature": ServiceMapping(
            resource_types={
                DEFAULT_KEY: {"type": "$value"},
            },
            account_ids={
                DEFAULT_KEY: {"owner": "$value"},
            },
        ),
    })
