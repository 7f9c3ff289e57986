"""Workload extraction — Deployments/Jobs to compose service drafts, Service port indexing."""

from dekompose.core.constants import (
    CONTROL_PLANE_SERVICE_KEY, CONTROL_PLANE_WORKLOAD, DEFAULT_OS,
    HOST_PORT_MAX, HOST_PORT_MIN, SERVICE_KIND, WORKLOAD_KINDS,
)
from dekompose.core.env import resolve_env
from dekompose.core.nodes import Mapping, get_int, get_map, get_seq, get_str, is_blank
from dekompose.core.volumes import _convert_volume_mounts
from dekompose.pacts.types import (
    ComposeServiceDraft, ConvertedRecord, ConverterResult, IndexerConverter,
    Provider, UnconvertedRecord,
)


class ConversionError(RuntimeError):
    """Fatal translation failure (the run cannot continue)."""


def allocate_host_port(ctx) -> int:
    """Draw an unused host port from [HOST_PORT_MIN, HOST_PORT_MAX)."""
    if len(ctx.used_ports) >= HOST_PORT_MAX - HOST_PORT_MIN:
        raise ConversionError(
            f"host port range {HOST_PORT_MIN}-{HOST_PORT_MAX} exhausted")
    while True:
        port = ctx.rng.randrange(HOST_PORT_MIN, HOST_PORT_MAX)
        if port not in ctx.used_ports:
            ctx.used_ports.add(port)
            return port


def workload_key(resource_name: str) -> str:
    """First non-empty hyphen-delimited token of the resource name."""
    tokens = [t for t in resource_name.split("-") if t]
    return tokens[0] if tokens else CONTROL_PLANE_SERVICE_KEY


def build_service_name(workload: str, container_name: str,
                       strip_prefix: str | None = None) -> str:
    """``<workload>-<container>`` unless the container already carries the prefix.

    With *strip_prefix* (control-plane workloads), ``<strip_prefix>-`` is
    removed from the container name instead.
    """
    if not workload:
        return container_name
    if strip_prefix:
        prefix = f"{strip_prefix}-"
        if container_name.lower().startswith(prefix.lower()):
            return container_name[len(prefix):]
        return container_name
    prefix = f"{workload}-"
    if container_name.lower().startswith(prefix.lower()):
        return container_name
    return f"{workload}-{container_name}"


def _claim_service_name(candidate: str, resource_name: str, taken: set) -> str:
    """Make *candidate* unique among *taken* (casefolded), deterministically."""
    name = candidate
    if name.casefold() in taken:
        name = build_service_name(resource_name, candidate)
        base = name
        suffix = 2
        while name.casefold() in taken:
            name = f"{base}-{suffix}"
            suffix += 1
    taken.add(name.casefold())
    return name


class ServiceIndexer(IndexerConverter):
    """Register K8s Service ports so in-cluster URLs can be remapped later."""
    name = "service-indexer"
    kinds = [SERVICE_KIND]

    def convert(self, kind, doc, ctx):
        name = get_str(doc, "metadata", "name")
        if is_blank(name):
            return ConverterResult()
        for port_def in get_seq(doc, "spec", "ports") or ():
            if get_int(port_def, "port") is None:
                continue
            host_port = allocate_host_port(ctx)
            ctx.service_port_map.setdefault(name.casefold(), host_port)
        return ConverterResult()


class WorkloadConverter(Provider):
    """Convert Deployments and Jobs into one compose service draft per container."""
    name = "workloads"
    kinds = list(WORKLOAD_KINDS)

    def convert(self, kind, doc, ctx):
        resource_name = get_str(doc, "metadata", "name") or "workload"
        drafts = self._convert_containers(resource_name, doc, ctx)
        if not drafts:
            return ConverterResult(unconverted=[
                UnconvertedRecord(resource_name, kind, "No containers found")])
        return ConverterResult(
            services=drafts,
            converted=[ConvertedRecord(d.name, kind, d.workload, d.os, d.compose_file, d.name)
                       for d in drafts],
        )

    def _convert_containers(self, resource_name: str, doc, ctx) -> list[ComposeServiceDraft]:
        pod_spec = get_map(doc, "spec", "template", "spec")
        if pod_spec is None:
            return []
        containers = get_seq(pod_spec, "containers")
        if not containers:
            return []

        workload = workload_key(resource_name)
        control_plane = (ctx.control_plane_workload
                         if ctx.control_plane_workload is not None else CONTROL_PLANE_WORKLOAD)
        is_control_plane = bool(control_plane) and workload.lower() == control_plane.lower()
        service_workload = CONTROL_PLANE_SERVICE_KEY if is_control_plane else workload
        os_name = get_str(pod_spec, "nodeSelector", "kubernetes.io/os") or DEFAULT_OS

        drafts = []
        for container in containers:
            if not isinstance(container, Mapping):
                continue
            drafts.append(self._convert_container(
                container, pod_spec, resource_name, service_workload,
                control_plane if is_control_plane else None, os_name, ctx))
        return drafts

    def _convert_container(self, container, pod_spec, resource_name, service_workload,
                           strip_prefix, os_name, ctx) -> ComposeServiceDraft:
        container_name = get_str(container, "name") or resource_name
        candidate = build_service_name(service_workload, container_name, strip_prefix)
        svc_name = _claim_service_name(candidate, resource_name, ctx.service_names_for(os_name))

        ports = []
        for port_def in get_seq(container, "ports") or ():
            container_port = get_int(port_def, "containerPort")
            if container_port is None:
                continue
            host_port = allocate_host_port(ctx)
            ports.append(f"{host_port}:{container_port}")
            # A published port replaces one only reserved by a Service
            if svc_name.casefold() not in ctx.published_services:
                ctx.published_services.add(svc_name.casefold())
                ctx.service_port_map[svc_name.casefold()] = host_port

        workload_name = f"{resource_name}/{container_name}"
        env, deps = resolve_env(container, ctx, os_name, workload_name)
        volumes = _convert_volume_mounts(container, pod_spec, ctx, os_name, workload_name)

        return ComposeServiceDraft(
            name=svc_name,
            workload=service_workload,
            os=os_name,
            image=get_str(container, "image") or "unknown",
            ports=ports,
            environment=env,
            volumes=volumes,
            depends_on=deps,
        )
