"""Manifest parsing — helm template, multi-document YAML loading."""

import os
import subprocess
import sys
from dataclasses import dataclass

import yaml

from dekompose.core.constants import _DOC_SEPARATOR_RE
from dekompose.core.nodes import Mapping, RecursiveAliasError, from_yaml_node

RENDERED_MANIFEST = "rendered.manifest.yaml"


@dataclass(frozen=True)
class DocumentOk:
    index: int
    node: Mapping


@dataclass(frozen=True)
class DocumentError:
    index: int
    reason: str


def _parse_document(index: int, chunk: str) -> DocumentOk | DocumentError | None:
    try:
        composed = yaml.compose(chunk, Loader=yaml.SafeLoader)
        if composed is None:
            return None
        node = from_yaml_node(composed)
    except (yaml.YAMLError, RecursiveAliasError) as exc:
        return DocumentError(index, f"{exc.__class__.__name__}: {exc}")
    except RecursionError:
        return DocumentError(index, "document is nested too deeply")
    if node is None:
        return None
    if not isinstance(node, Mapping):
        return DocumentError(index, "document root is not a mapping")
    if not node.entries:
        return None
    return DocumentOk(index, node)


def parse_manifest_text(text: str) -> list[DocumentOk | DocumentError]:
    """Split on ``---`` lines and parse each document independently.

    A broken document becomes a DocumentError; its neighbours are unaffected.
    Blank and empty documents are omitted.
    """
    results = []
    index = 0
    for chunk in _DOC_SEPARATOR_RE.split(text):
        if not chunk.strip():
            continue
        index += 1
        parsed = _parse_document(index, chunk)
        if parsed is not None:
            results.append(parsed)
    return results


def load_documents(path: str) -> list[DocumentOk | DocumentError]:
    """Read a rendered manifest file and parse its documents."""
    with open(path, encoding="utf-8") as f:
        return parse_manifest_text(f.read())


def read_chart_info(chart_path: str) -> tuple[str, str] | None:
    """Return (name, version) from ``<chart>/Chart.yaml``, or None."""
    chart_yaml = os.path.join(chart_path, "Chart.yaml")
    if not os.path.isfile(chart_yaml):
        return None
    try:
        with open(chart_yaml, encoding="utf-8") as f:
            meta = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        print(f"⚠ Could not read {chart_yaml}: {exc.__class__.__name__}", file=sys.stderr)
        return None
    if not isinstance(meta, dict):
        return None
    name, version = meta.get("name"), meta.get("version")
    if not name or not version:
        return None
    return str(name), str(version)


def run_helm_template(chart_path: str, output_dir: str, values_path: str | None = None,
                      chart_version: str | None = None) -> str:
    """Run ``helm template`` and return the path of the rendered manifest.

    Raises subprocess.CalledProcessError when helm fails.
    """
    cmd = ["helm", "template", chart_path]
    if values_path:
        cmd.extend(["--values", values_path])
    if chart_version:
        cmd.extend(["--version", chart_version])
    print(f"Running: {' '.join(cmd)}", file=sys.stderr)
    result = subprocess.run(cmd, capture_output=True, text=True, check=True)
    manifest_path = os.path.join(output_dir, RENDERED_MANIFEST)
    with open(manifest_path, "w", encoding="utf-8") as f:
        f.write(result.stdout)
    return manifest_path
