"""Public data types — rule schema, compose drafts, audit records, run context."""

import random
from dataclasses import dataclass, field

from dekompose.core.constants import DEFAULT_OS, DEFAULT_RESTART, NATIVE_OS


def is_native_os(os_name: str | None) -> bool:
    """True when *os_name* designates the native (Windows) engine."""
    return (os_name or "").lower() == NATIVE_OS


@dataclass
class InfraDefinition:
    """A supporting service scaffolded next to the application workloads."""
    name: str
    image: str = ""
    command: str | None = None
    environment: dict = field(default_factory=dict)
    ports: list = field(default_factory=list)
    volumes: list = field(default_factory=list)
    healthcheck: dict | None = None
    build: dict | None = None
    compose_file: str | None = None
    os: str | None = None


@dataclass
class SecretDefinition:
    """A secret value (``literal``) or secret file (``file``) from the rules."""
    name: str
    type: str = "literal"
    options: dict = field(default_factory=dict)


@dataclass
class RuleSet:
    """One ``custom-rules`` entry, already matched against the chart name."""
    match: str = "*"
    infra: list = field(default_factory=list)
    secret_key_refs: dict = field(default_factory=dict)


@dataclass
class ComposeServiceDraft:
    """A compose service under construction for one container."""
    name: str
    workload: str
    os: str = DEFAULT_OS
    image: str = ""
    ports: list = field(default_factory=list)
    environment: dict = field(default_factory=dict)
    volumes: list = field(default_factory=list)
    extra_hosts: list = field(default_factory=list)
    depends_on: set = field(default_factory=set)
    restart: str | None = DEFAULT_RESTART

    @property
    def compose_file(self) -> str:
        return f"docker-compose.{self.workload}.{self.os}.yml"


@dataclass
class ConvertedRecord:
    name: str
    kind: str
    workload: str
    os: str
    compose_file: str
    service_name: str

    def to_dict(self) -> dict:
        return {
            "name": self.name, "kind": self.kind, "workload": self.workload,
            "os": self.os, "composeFile": self.compose_file,
            "serviceName": self.service_name,
        }


@dataclass
class UnconvertedRecord:
    name: str
    kind: str
    reason: str

    def to_dict(self) -> dict:
        return {"name": self.name, "kind": self.kind, "reason": self.reason}


@dataclass(frozen=True)
class PortProxyRequirement:
    """A host port that must be forwarded across the virtualization boundary."""
    port: int
    network: str | None = None

    def to_dict(self) -> dict:
        return {"port": self.port, "network": self.network}


@dataclass
class ConvertContext:
    """Run-scoped state passed through the pipeline. Never share across runs."""
    output_dir: str
    network_name: str
    rules: object = None  # RuleRuntimeContext
    include_infra: bool = False
    remap_service_ports: bool = False
    control_plane_workload: str | None = None
    rng: random.Random = field(default_factory=random.Random)
    used_ports: set = field(default_factory=set)
    service_port_map: dict = field(default_factory=dict)
    published_services: set = field(default_factory=set)
    windows_service_names: set = field(default_factory=set)
    linux_service_names: set = field(default_factory=set)
    configmaps: dict = field(default_factory=dict)
    generated_cms: set = field(default_factory=set)
    warnings: list = field(default_factory=list)

    def service_names_for(self, os_name: str) -> set:
        """Casefolded service names already taken on *os_name*."""
        if is_native_os(os_name):
            return self.windows_service_names
        return self.linux_service_names


@dataclass
class ConverterResult:
    """Output of a converter: drafts, plus audit records."""
    services: list = field(default_factory=list)
    converted: list = field(default_factory=list)
    unconverted: list = field(default_factory=list)


@dataclass
class ConversionResult(ConverterResult):
    """Output of a whole run, with warnings and the files written."""
    warnings: list = field(default_factory=list)
    files: list = field(default_factory=list)


class Converter:
    """Base class for per-kind document converters."""
    name: str = ""
    kinds: list = []

    def convert(self, kind, doc, ctx):
        """Convert one document of *kind*. Override in subclasses."""
        return ConverterResult()


class IndexerConverter(Converter):
    """Converter that only populates ConvertContext fields."""


class Provider(Converter):
    """Converter that produces compose service drafts."""
