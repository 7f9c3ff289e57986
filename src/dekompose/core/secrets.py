"""Secret entries from the rules, and file-secret materialization on disk."""

import base64
import os
import shutil
from dataclasses import dataclass

from dekompose.core.constants import (
    SECRETS_DIR, K8S_DATA_DIR, _INVALID_SEGMENT_CHARS,
)
from dekompose.pacts.types import SecretDefinition


class SecretPathError(ValueError):
    """A secret file path tried to leave the secret's own directory."""


@dataclass
class FileSecretEntry:
    filename: str
    raw_value: str | None
    is_base64: bool = True
    kubernetes_layout: bool = True


@dataclass
class SecretEntry:
    literal: str | None = None
    file: FileSecretEntry | None = None


@dataclass(frozen=True)
class SecretFileMaterialization:
    """Where a file secret landed, relative to the output directory.

    ``relative_file_path`` and ``relative_data_file_path`` are relative to
    ``relative_directory``.
    """
    relative_file_path: str
    relative_directory: str
    relative_data_file_path: str | None
    full_path: str


def _option_flag(options: dict, key: str, default: bool) -> bool:
    """Read a boolean option given as YAML bool or "true"/"false" string."""
    value = options.get(key)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    return default


def _option_str(options: dict, key: str) -> str | None:
    value = options.get(key)
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


def build_secret_entry(secret: SecretDefinition, warnings: list[str]) -> SecretEntry | None:
    """Build a SecretEntry from a rule definition, or None (with a warning) if unusable."""
    secret_type = (secret.type or "").strip().lower()
    options = {str(k).lower(): v for k, v in (secret.options or {}).items()}

    if secret_type == "file":
        filename = _option_str(options, "filename")
        if filename is None or not filename.strip():
            warnings.append(f"File secret '{secret.name}' is missing a filename option")
            return None
        return SecretEntry(file=FileSecretEntry(
            filename=filename.strip(),
            raw_value=_option_str(options, "value"),
            is_base64=_option_flag(options, "convert_from_base64", True),
            kubernetes_layout=_option_flag(options, "kubernetes-layout", True),
        ))

    if secret_type in ("literal", ""):
        if "value" in options:
            return SecretEntry(literal=_option_str(options, "value") or "")
        warnings.append(f"Literal secret '{secret.name}' is missing a value option")
        return None

    warnings.append(f"Unsupported secret type '{secret.type}' for '{secret.name}'")
    return None


def sanitize_segment(value: str | None, fallback: str) -> str:
    """Replace characters that are invalid in a file name with '-'."""
    candidate = fallback if value is None or not value.strip() else value
    safe = "".join("-" if ch in _INVALID_SEGMENT_CHARS else ch for ch in candidate)
    return fallback if safe in (".", "..") else safe


def secret_relative_directory(secret_name: str) -> str:
    return os.path.join(SECRETS_DIR, sanitize_segment(secret_name, "secret"))


def normalize_relative_path(path: str) -> str:
    """Split on both separators, drop empty segments, reject '..' and drive segments."""
    segments = [s for s in path.replace("\\", "/").split("/") if s]
    if ".." in segments:
        raise SecretPathError("Relative paths cannot traverse outside the secret directory")
    # "C:" resets os.path.join on Windows, dropping the output directory
    if any(":" in s for s in segments):
        raise SecretPathError(f"Relative path '{path}' cannot contain a drive or stream separator")
    return os.path.join(*segments) if segments else ""


def _decode(entry: FileSecretEntry) -> bytes:
    raw = entry.raw_value or ""
    if entry.is_base64:
        return base64.b64decode("".join(raw.split()), validate=True)
    return raw.encode("utf-8")


def _ensure_parent(path: str) -> str:
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    return path


def materialize_file_secret(secret_name: str, entry: FileSecretEntry,
                            output_dir: str, warnings: list[str]) -> SecretFileMaterialization | None:
    """Write a file secret under ``secrets/<name>``; each path is written at most once.

    With the Kubernetes layout the bytes live in ``..data/<filename>`` and a
    copy is published at ``<filename>``. Filesystem errors propagate.
    """
    if entry.raw_value is None or not entry.raw_value.strip():
        warnings.append(f"File secret '{secret_name}' has no value to materialize")
        return None

    relative_dir = secret_relative_directory(secret_name)
    try:
        publish_rel = normalize_relative_path(entry.filename)
        if not publish_rel:
            raise SecretPathError(f"filename '{entry.filename}' is empty after normalization")
        data_rel = (normalize_relative_path(f"{K8S_DATA_DIR}/{entry.filename}")
                    if entry.kubernetes_layout else publish_rel)
    except SecretPathError as exc:
        warnings.append(f"File secret '{secret_name}': {exc}")
        return None

    data_full = _ensure_parent(os.path.join(output_dir, relative_dir, data_rel))
    if not os.path.exists(data_full):
        try:
            payload = _decode(entry)
        except ValueError:  # binascii.Error
            warnings.append(f"File secret '{secret_name}' contains invalid base64 data")
            return None
        with open(data_full, "wb") as f:
            f.write(payload)

    if publish_rel.lower() != data_rel.lower():
        publish_full = _ensure_parent(os.path.join(output_dir, relative_dir, publish_rel))
        if not os.path.exists(publish_full):
            shutil.copyfile(data_full, publish_full)

    return SecretFileMaterialization(
        relative_file_path=publish_rel,
        relative_directory=relative_dir,
        relative_data_file_path=data_rel,
        full_path=data_full,
    )
