"""Environment variable resolution — literals, secretKeyRefs, host rewriting."""

import re

from dekompose.core.constants import (
    LOOPBACK_ALIASES, NAT_GATEWAY_PLACEHOLDER, _K8S_DEFAULT_DNS_RE,
)
from dekompose.core.nodes import Mapping, get_map, get_seq, get_str, is_blank
from dekompose.pacts.types import is_native_os


def _apply_port_remap(text: str, service_port_map: dict) -> str:
    """Rewrite ``<svc>.default.svc.cluster.local[:port]`` to ``localhost:<hostPort>``.

    Compose has no cluster DNS; the service is reached through the host port
    allocated for it. Unknown services are left untouched.
    """
    def _replace(m):
        host_port = service_port_map.get(m.group("svc").casefold())
        if host_port is None:
            return m.group(0)
        return f"localhost:{host_port}"
    return _K8S_DEFAULT_DNS_RE.sub(_replace, text)


def _rewrite_loopback_hosts(value: str, os_name: str) -> str:
    """On Windows services, point loopback aliases at the NAT gateway placeholder.

    Windows containers cannot reach the VM-hosted loopback; the runtime
    orchestrator resolves the placeholder to the bridging address.
    """
    if not value or not value.strip() or not is_native_os(os_name):
        return value
    for alias in LOOPBACK_ALIASES:
        pattern = r'(?<![A-Za-z0-9._-])' + re.escape(alias) + r'(?![A-Za-z0-9._-])'
        value = re.sub(pattern, lambda _m: NAT_GATEWAY_PLACEHOLDER, value, flags=re.IGNORECASE)
    return value


def _add_compatible_infra(deps: set, names, rules, service_is_windows: bool) -> None:
    for infra in names:
        if rules.is_infra_compatible(infra, service_is_windows):
            deps.add(infra)


def _resolve_env_entry(entry: Mapping, ctx, os_name: str, workload_name: str,
                       deps: set) -> str | None:
    """Resolve one env entry (literal value or secretKeyRef) to its final value."""
    rules = ctx.rules
    service_is_windows = is_native_os(os_name)
    literal = get_str(entry, "value")
    if not is_blank(literal):
        if ctx.include_infra:
            _add_compatible_infra(deps, rules.referenced_infra_names(literal),
                                  rules, service_is_windows)
        if ctx.remap_service_ports:
            literal = _apply_port_remap(literal, ctx.service_port_map)
        return rules.detokenize(literal, os_name)

    value_from = get_map(entry, "valueFrom")
    if value_from is None:
        return None
    secret_ref = get_map(value_from, "secretKeyRef")
    if secret_ref is not None:
        value, secret_infra = rules.resolve_secret_value(
            get_str(secret_ref, "name"), get_str(secret_ref, "key"), os_name)
        if ctx.include_infra:
            _add_compatible_infra(deps, secret_infra, rules, service_is_windows)
        return value
    ctx.warnings.append(
        f"env var '{get_str(entry, 'name')}' on {workload_name} uses unsupported valueFrom — skipped"
    )
    return None


def resolve_env(container: Mapping, ctx, os_name: str,
                workload_name: str) -> tuple[dict[str, str], set[str]]:
    """Resolve a container's env into (environment, infra dependency names)."""
    env: dict[str, str] = {}
    deps: set[str] = set()
    for entry in get_seq(container, "env") or ():
        if not isinstance(entry, Mapping):
            continue
        name = get_str(entry, "name")
        if is_blank(name):
            continue
        resolved = _resolve_env_entry(entry, ctx, os_name, workload_name, deps)
        if resolved is not None:
            env[name] = _rewrite_loopback_hosts(resolved, os_name)
    return env, deps
