"""Manifest document tree — Scalar | Sequence | Mapping with case-insensitive keys."""

from dataclasses import dataclass, field

import yaml


@dataclass(frozen=True)
class Scalar:
    """A scalar leaf. Holds the source text, never a typed value."""
    value: str


@dataclass(frozen=True)
class Sequence:
    """An ordered list of nodes."""
    items: tuple = ()


@dataclass(frozen=True)
class Mapping:
    """A mapping with case-insensitive key lookup.

    ``entries`` maps the casefolded key to ``(original_key, node)`` so the
    source spelling survives for callers that iterate.
    """
    entries: dict = field(default_factory=dict)

    def get(self, key: str):
        """Return the node stored under *key* (any case), or None."""
        hit = self.entries.get(key.casefold())
        return hit[1] if hit else None

    def __contains__(self, key: str) -> bool:
        return key.casefold() in self.entries

    def items(self):
        """Yield ``(original_key, node)`` pairs in document order."""
        return iter(self.entries.values())


ManifestNode = Scalar | Sequence | Mapping

_NULL_TAG = "tag:yaml.org,2002:null"


class RecursiveAliasError(ValueError):
    """An alias refers back to one of its own ancestors."""


def from_yaml_node(node: yaml.Node) -> ManifestNode | None:
    """Convert a composed PyYAML node graph to a ManifestNode. Nulls become None.

    Aliased nodes are converted once and shared. A cycle raises
    RecursiveAliasError.
    """
    return _convert(node, {}, set())


def _convert(node: yaml.Node, done: dict, active: set) -> ManifestNode | None:
    key = id(node)
    if key in done:
        return done[key]
    if key in active:
        raise RecursiveAliasError(f"recursive alias at {node.start_mark}")
    if isinstance(node, yaml.ScalarNode):
        result = None if node.tag == _NULL_TAG else Scalar(node.value)
        done[key] = result
        return result

    active.add(key)
    if isinstance(node, yaml.SequenceNode):
        items = (_convert(child, done, active) for child in node.value)
        result = Sequence(tuple(item for item in items if item is not None))
    elif isinstance(node, yaml.MappingNode):
        entries = {}
        for key_node, value_node in node.value:
            if not isinstance(key_node, yaml.ScalarNode):
                continue
            value = _convert(value_node, done, active)
            if value is not None:
                entries[key_node.value.casefold()] = (key_node.value, value)
        result = Mapping(entries)
    else:
        raise TypeError(f"unexpected YAML node {type(node).__name__}")
    active.discard(key)
    done[key] = result
    return result


def get_node(node: ManifestNode | None, *path: str) -> ManifestNode | None:
    """Walk *path* through nested mappings. Any non-mapping step yields None."""
    current = node
    for segment in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(segment)
        if current is None:
            return None
    return current


def get_map(node: ManifestNode | None, *path: str) -> Mapping | None:
    found = get_node(node, *path)
    return found if isinstance(found, Mapping) else None


def get_seq(node: ManifestNode | None, *path: str) -> tuple | None:
    found = get_node(node, *path)
    return found.items if isinstance(found, Sequence) else None


def get_str(node: ManifestNode | None, *path: str) -> str | None:
    found = get_node(node, *path)
    return found.value if isinstance(found, Scalar) else None


def get_int(node: ManifestNode | None, *path: str) -> int | None:
    text = get_str(node, *path)
    if text is None:
        return None
    try:
        return int(text.strip())
    except ValueError:
        return None


def get_bool(node: ManifestNode | None, *path: str) -> bool | None:
    """Parse ``true``/``false`` (any case); anything else is None."""
    text = get_str(node, *path)
    if text is None:
        return None
    lowered = text.strip().lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    return None


def is_blank(value: str | None) -> bool:
    return value is None or not value.strip()
