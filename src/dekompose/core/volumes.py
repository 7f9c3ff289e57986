"""Volume mount conversion — ConfigMap, Secret, emptyDir."""

import os

from dekompose.core.constants import CONFIGMAPS_DIR
from dekompose.core.nodes import Mapping, get_bool, get_seq, get_str, is_blank
from dekompose.core.secrets import sanitize_segment
from dekompose.pacts.types import is_native_os


def _build_vol_map(pod_spec: Mapping) -> dict[str, Mapping]:
    """Map casefolded pod volume name → volume definition."""
    vol_map = {}
    for volume in get_seq(pod_spec, "volumes") or ():
        if not isinstance(volume, Mapping):
            continue
        name = get_str(volume, "name")
        if not is_blank(name):
            vol_map[name.casefold()] = volume
    return vol_map


def format_host_path(relative_path: str, os_name: str) -> str:
    """``./a/b`` for Linux compose files, ``.\\a\\b`` for Windows ones."""
    trimmed = relative_path.lstrip(".\\/")
    if is_native_os(os_name):
        return ".\\" + trimmed.replace("/", "\\")
    return "./" + trimmed.replace("\\", "/")


def adjust_container_path(container_path: str, os_name: str) -> str:
    """Give POSIX-style container paths a drive letter on Windows."""
    if not is_native_os(os_name) or not container_path or not container_path.strip():
        return container_path
    if ":" in container_path:
        return container_path
    normalized = container_path.replace("\\", "/")
    if not normalized.startswith("/"):
        normalized = "/" + normalized
    return f"C:{normalized}"


def _build_container_path(mount_path: str, sub_path: str | None) -> str:
    if is_blank(sub_path):
        return mount_path
    if mount_path.endswith(("/", "\\")):
        return mount_path + sub_path
    separator = "\\" if "\\" in mount_path else "/"
    return f"{mount_path}{separator}{sub_path}"


def _generate_configmap_files(cm_name: str, output_dir: str, ctx) -> str:
    """Create ``configmaps/<name>`` and write the ConfigMap's data keys into it.

    Reuses the directory if it exists; files already on disk are not rewritten.
    Returns the relative directory.
    """
    rel_dir = os.path.join(CONFIGMAPS_DIR, sanitize_segment(cm_name, "configmap"))
    abs_dir = os.path.join(output_dir, rel_dir)
    os.makedirs(abs_dir, exist_ok=True)
    if cm_name.casefold() not in ctx.generated_cms:
        ctx.generated_cms.add(cm_name.casefold())
        for key, value in ctx.configmaps.get(cm_name.casefold(), {}).items():
            if "/" in key or "\\" in key or key in (".", ".."):
                ctx.warnings.append(f"ConfigMap '{cm_name}' key '{key}' is not a valid file name — skipped")
                continue
            file_path = os.path.join(abs_dir, key)
            if not os.path.exists(file_path):
                with open(file_path, "w", encoding="utf-8") as f:
                    f.write(value)
    return rel_dir


def _convert_configmap_mount(volume: Mapping, vol_name: str, mount_path: str,
                             mode: str, os_name: str, ctx) -> str:
    cm_name = get_str(volume, "configMap", "name") or vol_name
    rel_dir = _generate_configmap_files(cm_name, ctx.output_dir, ctx)
    host_path = format_host_path(rel_dir, os_name)
    return f"{host_path}:{adjust_container_path(mount_path, os_name)}:{mode}"


def _convert_secret_mount(volume: Mapping, mount_path: str, sub_path: str | None,
                          mode: str, os_name: str, ctx) -> str | None:
    secret_name = get_str(volume, "secret", "secretName") or get_str(volume, "secretName")
    materialized = ctx.rules.resolve_secret_file(secret_name, ctx.output_dir)
    if materialized is None:
        return None
    if is_blank(sub_path):
        host_rel = materialized.relative_directory
    else:
        host_rel = os.path.join(materialized.relative_directory,
                                materialized.relative_data_file_path
                                or materialized.relative_file_path)
    container_path = adjust_container_path(
        _build_container_path(mount_path, sub_path), os_name)
    return f"{format_host_path(host_rel, os_name)}:{container_path}:{mode}"


def _convert_volume_mounts(container: Mapping, pod_spec: Mapping, ctx, os_name: str,
                           workload_name: str) -> list[str]:
    """Convert a container's volumeMounts to compose bind-mount strings."""
    vol_map = _build_vol_map(pod_spec)
    mounts = get_seq(container, "volumeMounts")
    if not mounts or not vol_map:
        return []

    result = []
    for vm in mounts:
        if not isinstance(vm, Mapping):
            continue
        name = get_str(vm, "name")
        mount_path = get_str(vm, "mountPath")
        if is_blank(name) or is_blank(mount_path):
            continue
        volume = vol_map.get(name.casefold())
        if volume is None:
            continue
        mode = "ro" if get_bool(vm, "readOnly") else "rw"

        if "configMap" in volume:
            result.append(_convert_configmap_mount(volume, name, mount_path, mode, os_name, ctx))
        elif "secret" in volume:
            mount = _convert_secret_mount(volume, mount_path, get_str(vm, "subPath"),
                                          mode, os_name, ctx)
            if mount is not None:
                result.append(mount)
        elif "emptyDir" in volume:
            result.append(adjust_container_path(mount_path, os_name))
        else:
            ctx.warnings.append(
                f"volume '{name}' on {workload_name} has an unsupported source — skipped")
    return result
