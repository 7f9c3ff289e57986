"""Rule runtime context — infra catalog, secret catalog, token resolution.

Built once per run from the rule sets that matched the chart. Owns every
``{{INFRA[...]...}}`` lookup and every secret lookup made during conversion.
"""

import re

from dekompose.core.constants import DEFAULT_RESTART, NAT_GATEWAY_PLACEHOLDER
from dekompose.core.secrets import (
    build_secret_entry, materialize_file_secret, sanitize_segment,
)
from dekompose.core.tokens import find_tokens, substitute
from dekompose.pacts.types import InfraDefinition, RuleSet, is_native_os


def parse_host_port(definition) -> int | None:
    """Host side of a compose port string ("1433", "1433:1433", "ip:1433:1433")."""
    parts = [p.strip() for p in str(definition).split(":") if p.strip()]
    if not parts:
        return None
    candidate = parts[0] if len(parts) == 1 else parts[-2]
    try:
        return int(candidate)
    except ValueError:
        return None


def _infra_name_appears(value: str, infra_name: str) -> bool:
    """Whole-word, case-insensitive search for *infra_name* in *value*."""
    pattern = r'(?<![A-Za-z0-9_.-])' + re.escape(infra_name) + r'(?![A-Za-z0-9_.-])'
    return re.search(pattern, value, re.IGNORECASE) is not None


class InfraServiceContext:
    """One catalogued infra service."""

    def __init__(self, definition: InfraDefinition):
        self.name = definition.name
        self.image = definition.image or ""
        self.command = definition.command
        self.environment = {str(k): "" if v is None else str(v)
                            for k, v in (definition.environment or {}).items()}
        self._env_index = {k.casefold(): v for k, v in self.environment.items()}
        self.ports = [str(p) for p in (definition.ports or []) if p is not None and str(p).strip()]
        self.volumes = [str(v) for v in (definition.volumes or [])]
        self.healthcheck = definition.healthcheck or None
        self.build = definition.build or None
        self.is_windows = is_native_os(definition.os)
        os_segment = ("infra" if not (definition.os or "").strip()
                      else sanitize_segment(definition.os, "infra").lower())
        self.compose_file = (definition.compose_file
                             or f"docker-compose.{sanitize_segment(self.name, 'infra')}.{os_segment}.yml")

    @property
    def target_os(self) -> str:
        return "windows" if self.is_windows else "linux"

    def env_value(self, key: str) -> str | None:
        return self._env_index.get(key.casefold())

    def to_compose_service(self, network_name: str, rules: "RuleRuntimeContext") -> dict:
        """Compose service definition, environment resolved for this infra's own OS."""
        service: dict = {"networks": [network_name], "restart": DEFAULT_RESTART}
        if self.image:
            service["image"] = self.image
        if self.build:
            service["build"] = self.build
        if self.command:
            service["command"] = self.command
        if self.environment:
            service["environment"] = {
                k: rules.detokenize(v, self.target_os) for k, v in self.environment.items()}
        if self.ports:
            service["ports"] = list(self.ports)
        if self.volumes:
            service["volumes"] = list(self.volumes)
        if self.healthcheck:
            service["healthcheck"] = self.healthcheck
        return service


class RuleRuntimeContext:
    """Infra and secret catalogs for one conversion run."""

    def __init__(self, warnings: list[str] | None = None):
        self.warnings = warnings if warnings is not None else []
        self._infra: dict[str, InfraServiceContext] = {}
        self._secrets: dict = {}
        self._port_proxy_ports: set[int] = set()

    @classmethod
    def build(cls, rule_sets: list[RuleSet] | None,
              warnings: list[str] | None = None) -> "RuleRuntimeContext":
        ctx = cls(warnings)
        for rule in rule_sets or []:
            ctx.add_infrastructure(rule.infra)
            ctx.add_secrets(rule.secret_key_refs)
        return ctx

    # -- catalog construction --

    def add_infrastructure(self, definitions) -> None:
        """Catalog usable infra definitions; later names overwrite earlier ones."""
        for definition in definitions or []:
            if not (definition.name or "").strip():
                continue
            if not (definition.image or "").strip() and not definition.build:
                self.warnings.append(
                    f"infra '{definition.name}' has neither image nor build — skipped")
                continue
            infra = InfraServiceContext(definition)
            self._infra[infra.name.casefold()] = infra
            self.register_port_proxy_ports(infra.ports)

    def add_secrets(self, scopes: dict | None) -> None:
        for scope in (scopes or {}).values():
            for secret in scope or []:
                if not (secret.name or "").strip():
                    continue
                entry = build_secret_entry(secret, self.warnings)
                if entry is not None:
                    self._secrets[secret.name.casefold()] = entry

    def register_port_proxy_ports(self, ports) -> None:
        for port in ports or []:
            host_port = parse_host_port(port)
            if host_port is not None and host_port > 0:
                self._port_proxy_ports.add(host_port)

    # -- queries --

    @property
    def infra(self) -> list[InfraServiceContext]:
        return list(self._infra.values())

    def get_infra(self, name: str) -> InfraServiceContext | None:
        return self._infra.get(name.casefold())

    def port_proxy_ports(self) -> list[int]:
        return sorted(self._port_proxy_ports)

    def infra_summaries(self) -> list[dict]:
        return [{"name": i.name, "image": i.image, "composeFile": i.compose_file}
                for i in self._infra.values()]

    def is_infra_compatible(self, infra_name: str, service_is_windows: bool) -> bool:
        """True when the infra runs on the same engine as the consuming service."""
        infra = self.get_infra(infra_name) if infra_name else None
        return infra is not None and infra.is_windows == service_is_windows

    def referenced_infra_names(self, value: str) -> set[str]:
        """Catalogued infra names referenced by tokens or named as whole words."""
        if not value or not value.strip():
            return set()
        referenced = set()
        for token in find_tokens(value):
            infra = self.get_infra(token.infra)
            if infra is not None:
                referenced.add(infra.name)
        if len(referenced) == len(self._infra):
            return referenced
        for infra in self._infra.values():
            if infra.name not in referenced and _infra_name_appears(value, infra.name):
                referenced.add(infra.name)
        return referenced

    # -- token resolution --

    def detokenize(self, value: str, target_os: str | None = None) -> str:
        """Replace infra tokens in *value*; unresolvable tokens stay verbatim."""
        if not value:
            return value
        return substitute(value, lambda token: self._resolve_token(token, target_os))

    def _resolve_token(self, token, target_os: str | None) -> str | None:
        infra = self.get_infra(token.infra)
        if infra is None:
            self.warnings.append(f"Token references unknown infra '{token.infra}'")
            return None
        if token.is_hostname:
            # A Windows consumer reaches Linux-hosted infra through the NAT gateway
            if is_native_os(target_os) and not infra.is_windows:
                return NAT_GATEWAY_PLACEHOLDER
            return infra.name
        value = infra.env_value(token.key)
        if value is None:
            self.warnings.append(
                f"Token references unknown environment '{token.key}' on infra '{token.infra}'")
        return value

    # -- secrets --

    def resolve_secret_value(self, secret_name: str | None, key: str | None,
                             target_os: str | None = None) -> tuple[str | None, set[str]]:
        """Resolve a secretKeyRef to (value, referenced infra names).

        Secrets are looked up by *key* first, then by *secret_name*.
        """
        entry = None
        resolved_name = None
        for candidate in (key, secret_name):
            if candidate and candidate.strip() and candidate.casefold() in self._secrets:
                entry = self._secrets[candidate.casefold()]
                resolved_name = candidate
                break

        if entry is None:
            if key and key.strip():
                self.warnings.append(f"No secret value configured for key '{key}'")
            elif secret_name and secret_name.strip():
                self.warnings.append(f"No secret value configured for secret '{secret_name}'")
            return None, set()

        if entry.literal is not None:
            return (self.detokenize(entry.literal, target_os),
                    self.referenced_infra_names(entry.literal))

        self.warnings.append(
            f"Secret '{resolved_name}' is file-based and cannot be used as a literal value")
        return None, set()

    def resolve_secret_file(self, secret_name: str | None, output_dir: str):
        """Materialize a file secret for a volume mount; None if not possible."""
        if not secret_name or not secret_name.strip():
            self.warnings.append("Volume references a secret without a name")
            return None
        entry = self._secrets.get(secret_name.casefold())
        if entry is None or entry.file is None:
            self.warnings.append(f"No file secret configured for '{secret_name}'")
            return None
        return materialize_file_secret(secret_name, entry.file, output_dir, self.warnings)
