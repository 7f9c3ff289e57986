"""CLI entry point — argument parsing, orchestration."""

import argparse
import os
import shutil
import subprocess
import sys
import time
from datetime import datetime

import yaml

from dekompose import __version__
from dekompose.core.convert import generate
from dekompose.core.workloads import ConversionError
from dekompose.io.config import load_config, match_rule_sets, parse_rule_sets
from dekompose.io.output import emit_warnings
from dekompose.io.parsing import read_chart_info, run_helm_template

DEFAULT_OUTPUT_DIR = "dekompose-outputs"
DEFAULT_CONFIG = "dekompose.yml"


def _run_directory(base_dir: str, chart: tuple[str, str] | None,
                   values_path: str | None, epoch: int) -> str:
    """Per-run output folder: ``<chart>-<version>[-<values>]-<epoch>`` or ``run-<timestamp>``."""
    if chart is None:
        return os.path.join(base_dir, f"run-{datetime.now():%Y%m%d%H%M%S}")
    name, version = chart
    if values_path and os.path.isfile(values_path):
        values_name = os.path.splitext(os.path.basename(values_path))[0]
        return os.path.join(base_dir, f"{name}-{version}-{values_name}-{epoch}")
    return os.path.join(base_dir, f"{name}-{version}-{epoch}")


def _resolve_chart(args) -> tuple[str, str] | None:
    """Chart (name, version) from Chart.yaml, overridden by --chart-version."""
    if not args.chart:
        return None
    chart = read_chart_info(args.chart)
    if args.chart_version:
        name = chart[0] if chart else os.path.basename(args.chart.rstrip("/\\")) or args.chart
        chart = (name, args.chart_version)
    return chart


def _snapshot_inputs(manifest_path: str, values_path: str | None, run_dir: str) -> None:
    """Keep the rendered chart and the values that produced it next to the output."""
    shutil.copyfile(manifest_path, os.path.join(run_dir, "_chart.yaml"))
    values_copy = os.path.join(run_dir, "_values.yaml")
    if values_path and os.path.isfile(values_path):
        shutil.copyfile(values_path, values_copy)
    else:
        with open(values_copy, "w", encoding="utf-8") as f:
            f.write("# Using chart defaults (no explicit values supplied).\n")


def _compress(run_dir: str, base_dir: str) -> str:
    """Zip the run folder next to it, then remove the folder."""
    archive_base = os.path.join(base_dir, os.path.basename(run_dir.rstrip("/\\")))
    if os.path.exists(archive_base + ".zip"):
        os.remove(archive_base + ".zip")
    archive = shutil.make_archive(archive_base, "zip", root_dir=run_dir)
    shutil.rmtree(run_dir)
    print(f"Compressed output to {archive}", file=sys.stderr)
    return archive


def main(argv=None):
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Convert rendered Kubernetes manifests to per-OS docker-compose files"
    )
    parser.add_argument("--chart", help="Helm chart directory to template (runs `helm template`)")
    parser.add_argument("--chart-version", help="Chart version passed to helm")
    parser.add_argument("--values", help="values.yaml passed to helm")
    parser.add_argument(
        "--manifest", "--rendered-manifest", dest="manifest",
        help="Use an already-rendered manifest instead of running helm",
    )
    parser.add_argument(
        "--output", default=DEFAULT_OUTPUT_DIR,
        help=f"Output folder (default: ./{DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument(
        "--config", "--dekompose-config", dest="config", default=DEFAULT_CONFIG,
        help=f"Rule configuration file with custom-rules (default: {DEFAULT_CONFIG})",
    )
    parser.add_argument(
        "--infra", "--estimate-infra", dest="infra", action="store_true",
        help="Scaffold supporting infrastructure and update dependent env vars",
    )
    parser.add_argument(
        "--remap-ports", action="store_true",
        help="Remap in-cluster service URLs (service.default.svc) to localhost mappings",
    )
    parser.add_argument(
        "--compress", action="store_true",
        help="Also write a zip of the generated output, then remove the folder",
    )
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    args = parser.parse_args(argv)

    if not args.manifest and not args.chart:
        parser.error("pass --manifest to use a pre-rendered file or --chart to invoke helm template")

    os.makedirs(args.output, exist_ok=True)
    epoch = int(time.time())
    network_name = f"dekompose-{epoch}"

    # Step 1: per-run output folder
    chart = _resolve_chart(args)
    run_dir = _run_directory(args.output, chart, args.values, epoch)
    os.makedirs(run_dir, exist_ok=True)

    # Step 2: get rendered manifest
    manifest_path = args.manifest
    if manifest_path is None:
        try:
            manifest_path = run_helm_template(args.chart, run_dir, args.values, args.chart_version)
        except (OSError, subprocess.CalledProcessError) as exc:
            stderr = getattr(exc, "stderr", "") or ""
            print(f"Error: helm template failed: {exc}\n{stderr}", file=sys.stderr)
            return 1
        _snapshot_inputs(manifest_path, args.values, run_dir)

    # Step 3: load and match rules
    try:
        config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        print(f"Error: could not load {args.config}: {exc}", file=sys.stderr)
        return 1
    chart_name = chart[0] if chart else None
    rule_sets = match_rule_sets(parse_rule_sets(config), chart_name)
    print(f"Resolved {len(rule_sets)} rule set(s) for chart {chart_name or '(unknown)'}",
          file=sys.stderr)

    # Step 4: convert and write
    try:
        result = generate(manifest_path, run_dir, network_name,
                          include_infra=args.infra, remap_service_ports=args.remap_ports,
                          rule_sets=rule_sets)
    except (OSError, ConversionError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    # Step 5: emit warnings
    emit_warnings(result.warnings)
    print(f"Scaffold complete. Review docker-compose files in {run_dir}", file=sys.stderr)

    # Step 6: optional archive
    if args.compress:
        try:
            _compress(run_dir, args.output)
        except OSError as exc:
            print(f"Error: failed to compress {run_dir}: {exc}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
