"""dekompose — convert rendered Kubernetes manifests to per-OS docker-compose files.

Re-exports the public API. Callers can import from here or from dekompose.pacts.
"""

__version__ = "0.1.0"

from dekompose.pacts.types import (
    ComposeServiceDraft, ConversionResult, ConvertContext, ConvertedRecord,
    InfraDefinition, PortProxyRequirement, RuleSet, SecretDefinition,
    UnconvertedRecord,
)
from dekompose.core.constants import NAT_GATEWAY_PLACEHOLDER
from dekompose.core.rules import RuleRuntimeContext
from dekompose.core.workloads import ConversionError
from dekompose.core.convert import convert, generate
from dekompose.io.parsing import DocumentError, DocumentOk, load_documents, parse_manifest_text
from dekompose.io.config import load_config, match_rule_sets, parse_rule_sets
from dekompose.io.output import load_port_proxy_requirements

__all__ = [
    # Types
    "ComposeServiceDraft",
    "ConversionResult",
    "ConvertContext",
    "ConvertedRecord",
    "InfraDefinition",
    "PortProxyRequirement",
    "RuleSet",
    "SecretDefinition",
    "UnconvertedRecord",
    "DocumentOk",
    "DocumentError",
    "ConversionError",
    "NAT_GATEWAY_PLACEHOLDER",
    # Engine
    "RuleRuntimeContext",
    "convert",
    "generate",
    # I/O
    "load_documents",
    "parse_manifest_text",
    "load_config",
    "parse_rule_sets",
    "match_rule_sets",
    "load_port_proxy_requirements",
]
