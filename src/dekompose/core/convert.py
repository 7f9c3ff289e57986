"""Main conversion orchestration — generate(), per-document dispatch."""

import os
import random
import sys

from dekompose.core.nodes import Mapping, Scalar, get_map, get_str, is_blank
from dekompose.core.rules import RuleRuntimeContext
from dekompose.core.workloads import ServiceIndexer, WorkloadConverter
from dekompose.io.output import (
    build_report, write_compose_files, write_infra_compose_files, write_report,
)
from dekompose.io.parsing import DocumentError, load_documents
from dekompose.pacts.types import ConversionResult, ConvertContext, UnconvertedRecord

_CONVERTERS = [ServiceIndexer(), WorkloadConverter()]

_CONFIGMAP_KIND = "ConfigMap"


def _converters_by_kind() -> dict:
    table = {}
    for converter in _CONVERTERS:
        for kind in converter.kinds:
            table[kind] = converter
    return table


def _index_configmaps(documents: list, ctx: ConvertContext) -> None:
    """Index ConfigMap data so mounted ConfigMaps can be written to disk."""
    for doc in documents:
        if get_str(doc, "kind") != _CONFIGMAP_KIND:
            continue
        name = get_str(doc, "metadata", "name")
        if is_blank(name):
            continue
        data = get_map(doc, "data") or Mapping()
        ctx.configmaps[name.casefold()] = {
            key: node.value for key, node in data.items() if isinstance(node, Scalar)}


def convert(documents: list, ctx: ConvertContext) -> ConversionResult:
    """Convert normalized documents, in order, into drafts and audit records."""
    result = ConversionResult(warnings=ctx.warnings)
    _index_configmaps(documents, ctx)
    table = _converters_by_kind()

    for doc in documents:
        kind = get_str(doc, "kind")
        name = get_str(doc, "metadata", "name") or "(unknown)"
        if is_blank(kind):
            result.unconverted.append(UnconvertedRecord(name, "Unknown", "Missing kind"))
            continue
        converter = table.get(kind)
        if converter is None:
            result.unconverted.append(UnconvertedRecord(name, kind, "Unsupported kind"))
            continue
        converted = converter.convert(kind, doc, ctx)
        result.services.extend(converted.services)
        result.converted.extend(converted.converted)
        result.unconverted.extend(converted.unconverted)
    return result


def generate(manifest_path: str, output_dir: str, network_name: str,
             include_infra: bool = False, remap_service_ports: bool = False,
             rule_sets: list | None = None, rng: random.Random | None = None,
             control_plane_workload: str | None = None) -> ConversionResult:
    """Translate a rendered manifest into compose files and a conversion report.

    *rule_sets* must already be matched against the chart. Filesystem errors
    propagate; everything else ends up in the report or the warnings.
    """
    warnings: list[str] = []
    documents = []
    for parsed in load_documents(manifest_path):
        if isinstance(parsed, DocumentError):
            warnings.append(
                f"Skipping YAML document #{parsed.index} in {manifest_path}: {parsed.reason}")
        else:
            documents.append(parsed.node)
    print(f"Parsed manifest: {len(documents)} document(s)", file=sys.stderr)

    if not documents:
        warnings.append(f"No Kubernetes resources found in manifest {manifest_path}")
        return ConversionResult(warnings=warnings)

    rules = RuleRuntimeContext.build(rule_sets, warnings)
    print(f"Rule context: {len(rules.infra)} infra definition(s)", file=sys.stderr)
    ctx = ConvertContext(
        output_dir=output_dir, network_name=network_name, rules=rules,
        include_infra=include_infra, remap_service_ports=remap_service_ports,
        control_plane_workload=control_plane_workload,
        rng=rng or random.Random(), warnings=warnings,
    )
    result = convert(documents, ctx)

    os.makedirs(output_dir, exist_ok=True)
    result.files.extend(write_compose_files(result.services, output_dir, network_name))
    if include_infra:
        result.files.extend(write_infra_compose_files(rules, output_dir, network_name))
    report = build_report(result, rules, network_name)
    result.files.append(write_report(report, output_dir))
    return result
