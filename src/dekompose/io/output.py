"""Output — compose files per workload/OS, infra compose files, conversion report."""

import os
import sys

import yaml

from dekompose.core.constants import REPORT_FILE
from dekompose.pacts.types import PortProxyRequirement

_HEADER = "# Generated by dekompose — do not edit manually\n"


def _service_definition(draft, network_name: str) -> dict:
    """Compose service mapping for one draft; empty fields are omitted."""
    definition: dict = {"image": draft.image, "networks": [network_name]}
    if draft.restart:
        definition["restart"] = draft.restart
    if draft.ports:
        definition["ports"] = list(draft.ports)
    if draft.environment:
        definition["environment"] = dict(draft.environment)
    if draft.depends_on:
        definition["depends_on"] = sorted(draft.depends_on)
    if draft.volumes:
        definition["volumes"] = list(draft.volumes)
    if draft.extra_hosts:
        definition["extra_hosts"] = list(draft.extra_hosts)
    return definition


def _write_yaml(path: str, document: dict, header: str = _HEADER) -> str:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        if header:
            f.write(header)
        yaml.dump(document, f, default_flow_style=False, sort_keys=False)
    return path


def group_services(services: list) -> dict:
    """Group drafts by (workload, os), case-insensitively, keeping first-seen order."""
    groups: dict = {}
    for draft in services:
        groups.setdefault((draft.workload.casefold(), draft.os.casefold()), []).append(draft)
    return groups


def write_compose_files(services: list, output_dir: str, network_name: str) -> list[str]:
    """Write one docker-compose.<workload>.<os>.yml per group. Returns the paths."""
    written = []
    for drafts in group_services(services).values():
        compose = {
            "services": {d.name: _service_definition(d, network_name) for d in drafts},
            "networks": {network_name: {}},
        }
        path = os.path.join(output_dir, drafts[0].compose_file)
        written.append(_write_yaml(path, compose))
        print(f"Wrote {path} with {len(drafts)} service(s)", file=sys.stderr)
    return written


def write_infra_compose_files(rules, output_dir: str, network_name: str) -> list[str]:
    """Write one compose file per catalogued infra service. Returns the paths."""
    written = []
    for infra in rules.infra:
        compose = {
            "services": {infra.name: infra.to_compose_service(network_name, rules)},
            "networks": {network_name: {}},
        }
        path = os.path.join(output_dir, infra.compose_file)
        written.append(_write_yaml(path, compose))
        print(f"Wrote {path}", file=sys.stderr)
    return written


def build_report(result, rules, network_name: str) -> dict:
    """Assemble the conversion report mapping."""
    report: dict = {
        "converted": [r.to_dict() for r in result.converted],
        "unconverted": [r.to_dict() for r in result.unconverted],
    }
    summaries = rules.infra_summaries()
    if summaries:
        report["infraResources"] = summaries
    ports = rules.port_proxy_ports()
    if ports:
        report["portProxyRequirements"] = [
            PortProxyRequirement(port, network_name).to_dict() for port in ports]
    return report


def write_report(report: dict, output_dir: str) -> str:
    path = os.path.join(output_dir, REPORT_FILE)
    _write_yaml(path, report, header="")
    print(f"Wrote {path}", file=sys.stderr)
    return path


def load_port_proxy_requirements(directory: str) -> list[PortProxyRequirement]:
    """Read port-proxy requirements back from a conversion report.

    A missing or unreadable report yields an empty list. Entries are
    deduplicated by port (first network wins).
    """
    path = os.path.join(directory, REPORT_FILE)
    if not os.path.isfile(path):
        return []
    try:
        with open(path, encoding="utf-8") as f:
            report = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as exc:
        print(f"⚠ Could not read {path}: {exc.__class__.__name__}", file=sys.stderr)
        return []
    entries = report.get("portProxyRequirements") if isinstance(report, dict) else None
    requirements: dict[int, PortProxyRequirement] = {}
    for entry in entries or []:
        if not isinstance(entry, dict):
            continue
        try:
            port = int(entry.get("port"))
        except (TypeError, ValueError):
            continue
        if port > 0 and port not in requirements:
            requirements[port] = PortProxyRequirement(port, entry.get("network") or None)
    return list(requirements.values())


def emit_warnings(warnings: list[str]) -> None:
    """Print all warnings to stderr."""
    for w in warnings:
        print(f"⚠ {w}", file=sys.stderr)
