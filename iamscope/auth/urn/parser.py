"""
URN parser: turns a structured resource identifier into filter constraints.

    parser = UrnParser(default_urn_configuration())
    fragment = parser.parse("urn:chat:*:*:category/support", context)
    fragment.to_predicate()   # Equals("category", "support")

``parse`` returns None when the URN cannot be interpreted (unknown
service, malformed identifier, failing path handler). Callers treat that
as "grants nothing".
"""

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping

import structlog

from ..context import Text, resolve, stringify, substitute
from ..errors import ExpressionError
from ..predicates import MATCH_ALL, MATCH_NONE, Equals, In, Predicate, all_of, parse_expression
from .config import ServiceMapping, UrnConfiguration

logger = structlog.get_logger()

WILDCARD = "*"


# ============================================================
# FRAGMENT
# ============================================================

class FilterFragment:
    """
    Field constraints collected from one URN.

    Later writes to a field replace earlier ones; ``add_to_set`` grows a
    membership test instead.
    """

    def __init__(self) -> None:
        self._fields: dict[str, Predicate] = {}

    def set(self, field: str, predicate: Predicate) -> None:
        self._fields[field] = predicate

    def set_value(self, field: str, value: Any) -> None:
        self._fields[field] = Equals(field, value)

    def add_to_set(self, field: str, value: Any) -> None:
        existing = self._fields.get(field)
        if isinstance(existing, In):
            self._fields[field] = In(field, existing.values + (value,))
        else:
            self._fields[field] = In(field, (value,))

    @property
    def fields(self) -> dict[str, Predicate]:
        return dict(self._fields)

    @property
    def is_empty(self) -> bool:
        return not self._fields

    def to_predicate(self) -> Predicate:
        """AND of all field constraints; MATCH_ALL when empty."""
        if not self._fields:
            return MATCH_ALL
        return all_of(*self._fields.values())

    def __repr__(self) -> str:
        return f"<FilterFragment {self._fields!r}>"


# ============================================================
# MAPPING TEMPLATES
# ============================================================

@dataclass(frozen=True)
class Reference:
    """A ``$value`` / ``$refs.N`` / ``$context.K`` reference."""
    kind: str
    key: str = ""


_REFERENCE_RE = re.compile(r"\$(value\b|refs\.\d+|context\.[A-Za-z0-9_]+(?:\.[A-Za-z0-9_]+)*)")


@lru_cache(maxsize=512)
def parse_mapping_string(text: str) -> tuple[Text | Reference, ...]:
    """Split a template string into text and reference nodes."""
    parts: list[Text | Reference] = []
    position = 0
    for match in _REFERENCE_RE.finditer(text):
        if match.start() > position:
            parts.append(Text(text[position:match.start()]))
        token = match.group(1)
        kind, _, key = token.partition(".")
        parts.append(Reference(kind, key))
        position = match.end()
    if position < len(text):
        parts.append(Text(text[position:]))
    return tuple(parts)


@dataclass(frozen=True)
class _TemplateData:
    value: str
    refs: tuple[str, ...]
    context: Mapping[str, Any] | None


def _lookup(reference: Reference, data: _TemplateData) -> Any:
    if reference.kind == "value":
        return data.value
    if reference.kind == "refs":
        index = int(reference.key)
        return data.refs[index] if index < len(data.refs) and data.refs[index] else ""
    value = resolve(data.context, reference.key)
    return "" if value is None else value


def render_mapping_template(template: Any, data: _TemplateData) -> Any:
    """
    Evaluate a mapping template.

    A string that is exactly one reference keeps the referenced value's
    type; references embedded in text are stringified; strings with no
    recognised reference (``"$other"``) are returned verbatim.
    """
    if isinstance(template, str):
        parts = parse_mapping_string(template)
        if len(parts) == 1 and isinstance(parts[0], Reference):
            return _lookup(parts[0], data)
        return "".join(
            part.value if isinstance(part, Text) else stringify(_lookup(part, data))
            for part in parts
        )
    if isinstance(template, Mapping):
        return {key: render_mapping_template(value, data) for key, value in template.items()}
    if isinstance(template, (list, tuple)):
        return [render_mapping_template(value, data) for value in template]
    return template


_GROUP_RE = re.compile(r"\$(\d+)")


def _render_groups(template: Any, match: re.Match[str]) -> Any:
    if not isinstance(template, str):
        return template

    def group(ref: re.Match[str]) -> str:
        try:
            return match.group(int(ref.group(1))) or ""
        except IndexError:
            return ""

    return _GROUP_RE.sub(group, template)


# ============================================================
# PARSER
# ============================================================

class UrnParser:
    """
    Configuration-driven URN to filter translation.

    Args:
        configuration: Service mapping table (shared, read-only)
    """

    def __init__(self, configuration: UrnConfiguration):
        self.configuration = configuration

    def parse(self, urn: str, context: Mapping[str, Any] | None = None) -> FilterFragment | None:
        """
        Parse a URN into a fragment.

        Returns:
            FilterFragment (empty = match all), or None if the URN cannot
            be interpreted
        """
        if not urn or urn == WILDCARD:
            return FilterFragment()

        urn = substitute(urn, context)

        parts = urn.split(":")
        if len(parts) < 3 or parts[0].lower() != "urn":
            logger.warning("urn_malformed", urn=urn)
            return None

        service_name, resource_type = parts[1], parts[2]
        account_id = parts[3] if len(parts) > 3 else WILDCARD
        path = ":".join(parts[4:])

        if service_name == WILDCARD:
            if all(token in (WILDCARD, "") for token in (resource_type, account_id, path)):
                return FilterFragment()
            logger.warning("urn_wildcard_service_with_constraints", urn=urn)
            return None

        service = self.configuration.get_service(service_name)
        if service is None:
            logger.warning("urn_unknown_service", urn=urn, service=service_name)
            return None

        fragment = FilterFragment()
        data_refs = tuple(parts)

        if resource_type and resource_type != WILDCARD:
            mapping = service.resource_type_mapping(resource_type)
            if mapping:
                self._apply_mapping(fragment, mapping, _TemplateData(resource_type, data_refs, context))

        if account_id and account_id != WILDCARD:
            mapping = service.account_id_mapping(account_id)
            if mapping:
                self._apply_mapping(fragment, mapping, _TemplateData(account_id, data_refs, context))

        if path and path != WILDCARD:
            if not self._apply_path_handlers(fragment, service, path, urn):
                return None

        return fragment

    def to_predicate(self, urn: str, context: Mapping[str, Any] | None = None) -> Predicate | None:
        """Parse and collapse to a predicate (None if uninterpretable)."""
        fragment = self.parse(urn, context)
        return None if fragment is None else fragment.to_predicate()

    def _apply_mapping(self, fragment: FilterFragment, mapping: Mapping[str, Any], data: _TemplateData) -> None:
        for field, template in mapping.items():
            rendered = render_mapping_template(template, data)
            try:
                fragment.set(field, parse_expression(field, rendered))
            except ExpressionError as exc:
                logger.warning("urn_mapping_unparseable", field=field, error=str(exc))
                fragment.set(field, MATCH_NONE)

    def _apply_path_handlers(self, fragment: FilterFragment, service: ServiceMapping, path: str, urn: str) -> bool:
        segments = [segment for segment in path.replace(":", "/").split("/") if segment]
        normalized = "/" + "/".join(segments)

        for handler in service.path_handlers:
            match = handler.regex.search(normalized)
            if not match:
                continue
            if handler.mapping is not None:
                for field, template in handler.mapping.items():
                    fragment.set_value(field, _render_groups(template, match))
                continue
            try:
                handler.handler(match, fragment)  # type: ignore[misc]
            except Exception:
                logger.exception("urn_path_handler_failed", urn=urn, pattern=handler.pattern)
                return False
        return True


def build_urn(service: str, resource_type: str = WILDCARD, account_id: str = WILDCARD, path: str = WILDCARD) -> str:
    """
    Build a URN for a route-side resource.

    Example:
        build_urn("chat", "message", "*", chat_id)  # "urn:chat:message:*:<id>"
    """
    return f"urn:{service}:{resource_type}:{account_id}:{path}"
