"""
Evaluation context: attribute lookup and ``${context:path}`` templates.

The context is a flat mapping of dotted keys (``user.id``,
``request.params.id``) that may also hold nested objects. Lookups try the
literal dotted key first and fall back to nested traversal, so the same
policy works whether the caller passes a flat or a nested attribute bag.

Templates are parsed into a small AST instead of being string-replaced:

    Text("urn:chat:")          literal text
    Placeholder("user.id")     a ``${context:user.id}`` reference
    Template(parts)            sequence of the two above

A template made of exactly one placeholder keeps the resolved value's
type (lists stay lists). Anything else renders to a string.
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

_MISSING = object()

PLACEHOLDER_RE = re.compile(r"\$\{context:([^}\s]+)\}")


# ============================================================
# RESOLVER
# ============================================================

def _step(node: Any, key: str) -> Any:
    if isinstance(node, Mapping):
        return node.get(key, _MISSING)
    if isinstance(node, Sequence) and not isinstance(node, (str, bytes)) and key.isdigit():
        index = int(key)
        return node[index] if index < len(node) else _MISSING
    return _MISSING


def resolve(context: Mapping[str, Any] | None, path: str, default: Any = None) -> Any:
    """
    Resolve a dotted path against the context.

    Order of lookup:
    1. ``path`` as a literal flat key (``context["user.id"]``)
    2. segment-by-segment traversal (``context["user"]["id"]``)
    3. when traversal dead-ends, the remaining suffix as a flat key on the
       node reached so far, then on the root

    Returns ``default`` when nothing matches.
    """
    if not context or not path:
        return default

    if path in context:
        return context[path]

    segments = path.split(".")
    node: Any = context
    for index, segment in enumerate(segments):
        value = _step(node, segment)
        if value is _MISSING:
            remaining = ".".join(segments[index:])
            for candidate in (node, context):
                if isinstance(candidate, Mapping) and remaining in candidate:
                    return candidate[remaining]
            return default
        node = value
    return node


def has_path(context: Mapping[str, Any] | None, path: str) -> bool:
    """True if the path resolves, even to None."""
    return resolve(context, path, _MISSING) is not _MISSING


# ============================================================
# TEMPLATE AST
# ============================================================

@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Placeholder:
    path: str


@dataclass(frozen=True)
class Template:
    parts: tuple[Text | Placeholder, ...]

    @property
    def is_single_placeholder(self) -> bool:
        return len(self.parts) == 1 and isinstance(self.parts[0], Placeholder)


def parse_template(source: str) -> Template:
    """Split a string into literal text and placeholder nodes."""
    parts: list[Text | Placeholder] = []
    position = 0
    for match in PLACEHOLDER_RE.finditer(source):
        if match.start() > position:
            parts.append(Text(source[position:match.start()]))
        parts.append(Placeholder(match.group(1)))
        position = match.end()
    if position < len(source):
        parts.append(Text(source[position:]))
    return Template(tuple(parts))


def stringify(value: Any) -> str:
    """String form of a context value when embedded in text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple, set, frozenset)):
        return ",".join(stringify(item) for item in value)
    if isinstance(value, Mapping):
        return json.dumps(value, default=str)
    return str(value)


def render_string(template: Template, context: Mapping[str, Any] | None, *, keep_unresolved: bool = False) -> str:
    """
    Render a template to text.

    Unresolved placeholders render as empty text, or as their original
    ``${context:...}`` source when ``keep_unresolved`` is set.
    """
    out: list[str] = []
    for part in template.parts:
        if isinstance(part, Text):
            out.append(part.value)
            continue
        value = resolve(context, part.path, _MISSING)
        if value is _MISSING:
            out.append("${context:%s}" % part.path if keep_unresolved else "")
        else:
            out.append(stringify(value))
    return "".join(out)


def render_value(template: Template, context: Mapping[str, Any] | None) -> Any:
    """
    Render a template preserving type for a lone placeholder.

    ``${context:user.teamIds}`` resolves to the list itself; embedded
    placeholders are stringified. Unresolved placeholders are kept as
    their source text.
    """
    if template.is_single_placeholder:
        value = resolve(context, template.parts[0].path, _MISSING)  # type: ignore[union-attr]
        if value is _MISSING:
            return "${context:%s}" % template.parts[0].path  # type: ignore[union-attr]
        return value
    return render_string(template, context, keep_unresolved=True)


def substitute(text: str, context: Mapping[str, Any] | None) -> str:
    """Replace every placeholder in ``text`` with its string form."""
    if "${context:" not in text:
        return text
    return render_string(parse_template(text), context)


def substitute_value(value: Any, context: Mapping[str, Any] | None) -> Any:
    """
    Resolve placeholders inside a condition value.

    Strings go through ``render_value``; mappings and lists are walked
    recursively; other values pass through unchanged.
    """
    if isinstance(value, str):
        if "${context:" not in value:
            return value
        return render_value(parse_template(value.strip()), context)
    if isinstance(value, Mapping):
        return {key: substitute_value(item, context) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [substitute_value(item, context) for item in value]
    return value


def unresolved_placeholders(value: Any, context: Mapping[str, Any] | None) -> list[str]:
    """
    Paths of ``${context:...}`` placeholders in ``value`` that do not resolve.

    Mappings and lists are walked recursively.
    """
    if isinstance(value, str):
        if "${context:" not in value:
            return []
        return [
            part.path
            for part in parse_template(value).parts
            if isinstance(part, Placeholder) and not has_path(context, part.path)
        ]
    if isinstance(value, Mapping):
        return [path for item in value.values() for path in unresolved_placeholders(item, context)]
    if isinstance(value, (list, tuple)):
        return [path for item in value for path in unresolved_placeholders(item, context)]
    return []


def expand(text: str, context: Mapping[str, Any] | None) -> list[str]:
    """
    Substitute placeholders, expanding list values into alternatives.

    ``urn:chat:team:${context:user.teamIds}:*`` with teamIds ``["a", "b"]``
    yields ``["urn:chat:team:a:*", "urn:chat:team:b:*"]``. An empty list
    yields no alternatives.
    """
    if "${context:" not in text:
        return [text]

    results = [""]
    for part in parse_template(text).parts:
        if isinstance(part, Text):
            results = [prefix + part.value for prefix in results]
            continue
        value = resolve(context, part.path, _MISSING)
        if value is _MISSING:
            choices = [""]
        elif isinstance(value, (list, tuple, set, frozenset)):
            choices = [stringify(item) for item in value]
        else:
            choices = [stringify(value)]
        results = [prefix + choice for prefix in results for choice in choices]
    return results


# ============================================================
# CONTEXT BUILDER
# ============================================================

def build_context(
    principal: Any,
    *,
    method: str | None = None,
    path: str | None = None,
    ip: str | None = None,
    params: Mapping[str, Any] | None = None,
    query: Mapping[str, Any] | None = None,
    extra: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """
    Build a fresh flat context for one evaluation.

    Keys:
        user.id, user.email, user.role, user.teamIds, user.<attribute>
        request.method, request.path, request.ip
        request.params.<name>, request.query.<name>
    plus anything in ``extra`` (which wins on conflicts).
    """
    context: dict[str, Any] = {}

    if principal is not None:
        attributes: Mapping[str, Any] = getattr(principal, "attributes", None) or {}
        for key, value in attributes.items():
            context[f"user.{key}"] = value
        context["user.id"] = getattr(principal, "id", None)
        context["user.email"] = attributes.get("email")
        context["user.role"] = attributes.get("role")
        context["user.teamIds"] = list(getattr(principal, "team_ids", ()) or ())

    if method is not None:
        context["request.method"] = method
    if path is not None:
        context["request.path"] = path
    if ip is not None:
        context["request.ip"] = ip

    for prefix, values in (("request.params", params), ("request.query", query)):
        for key, value in _items(values):
            context[f"{prefix}.{key}"] = value

    if extra:
        context.update(extra)

    return context


def _items(values: Mapping[str, Any] | None) -> Iterable[tuple[str, Any]]:
    return values.items() if values else ()
