"""Configuration file handling — load dekompose.yml, build and match rule sets."""

import os
import re
import sys

import yaml

from dekompose.pacts.types import InfraDefinition, RuleSet, SecretDefinition


# Passed through to compose as-is, so their YAML types are kept
_TYPED_SECTIONS = ("healthcheck", "build")

_NULL_TAG = "tag:yaml.org,2002:null"


def _raw_value(node: yaml.Node, active: set | None = None):
    """Plain Python value with every scalar left as its source text.

    ``true``, ``1.10``, ``0755`` and ``53:53`` stay strings. Null scalars
    become None.
    """
    active = set() if active is None else active
    if id(node) in active:
        raise ValueError("recursive alias in configuration")
    if isinstance(node, yaml.ScalarNode):
        return None if node.tag == _NULL_TAG else node.value
    active.add(id(node))
    try:
        if isinstance(node, yaml.SequenceNode):
            return [_raw_value(child, active) for child in node.value]
        result = {}
        for key_node, value_node in node.value:
            if not isinstance(key_node, yaml.ScalarNode):
                continue
            key = key_node.value
            if key in _TYPED_SECTIONS:
                result[key] = yaml.SafeLoader("").construct_document(value_node)
            else:
                result[key] = _raw_value(value_node, active)
        return result
    finally:
        active.discard(id(node))


def load_config(path: str) -> dict:
    """Load dekompose.yml or return empty config."""
    if os.path.exists(path):
        with open(path, encoding="utf-8") as f:
            root = yaml.compose(f, Loader=yaml.SafeLoader)
        cfg = _raw_value(root) if root is not None else {}
        cfg = cfg if cfg is not None else {}
    else:
        cfg = {}
    if not isinstance(cfg, dict):
        print(f"⚠ {path} is not a mapping — ignored", file=sys.stderr)
        cfg = {}
    cfg.setdefault("custom-rules", [])
    return cfg


def _optional_str(value) -> str | None:
    if value is None:
        return None
    return str(value)


def _infra_definition(raw: dict) -> InfraDefinition:
    command = raw.get("command")
    return InfraDefinition(
        name=str(raw.get("name") or ""),
        image=str(raw.get("image") or ""),
        command=command if isinstance(command, list) else _optional_str(command),
        environment=dict(raw.get("environment") or {}),
        ports=[p for p in (raw.get("ports") or []) if p is not None],
        volumes=list(raw.get("volumes") or []),
        healthcheck=raw.get("healthcheck") or None,
        build=raw.get("build") or None,
        compose_file=_optional_str(raw.get("compose-file")),
        os=_optional_str(raw.get("os")),
    )


def _secret_definition(raw: dict) -> SecretDefinition:
    return SecretDefinition(
        name=str(raw.get("name") or ""),
        type=str(raw.get("type") or "literal"),
        options=dict(raw.get("options") or {}),
    )


def parse_rule_sets(config: dict) -> list[RuleSet]:
    """Build RuleSet objects from the ``custom-rules`` section."""
    rule_sets = []
    for raw in config.get("custom-rules") or []:
        if not isinstance(raw, dict):
            continue
        secret_refs = {}
        for scope, entries in (raw.get("secret-key-refs") or {}).items():
            secret_refs[str(scope)] = [_secret_definition(e) for e in entries or []
                                       if isinstance(e, dict)]
        rule_sets.append(RuleSet(
            match=str(raw.get("match") or "*"),
            infra=[_infra_definition(e) for e in raw.get("infra") or [] if isinstance(e, dict)],
            secret_key_refs=secret_refs,
        ))
    return rule_sets


def _pattern_matches(pattern: str | None, chart_name: str) -> bool:
    """Glob match (``*`` and ``?``), case-insensitive. A blank pattern matches all."""
    if not pattern or not pattern.strip():
        return True
    regex = "^" + re.escape(pattern).replace(r"\*", ".*").replace(r"\?", ".") + "$"
    return re.match(regex, chart_name, re.IGNORECASE | re.DOTALL) is not None


def match_rule_sets(rule_sets: list[RuleSet], chart_name: str | None) -> list[RuleSet]:
    """Rule sets whose ``match`` glob matches *chart_name*, in order."""
    if not chart_name or not chart_name.strip():
        return []
    return [rule for rule in rule_sets if _pattern_matches(rule.match, chart_name)]
