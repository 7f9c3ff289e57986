"""Public contracts — data types shared by the conversion pipeline."""

from dekompose.pacts.types import (
    ComposeServiceDraft, ConversionResult, ConvertContext, ConvertedRecord,
    Converter, ConverterResult, IndexerConverter, InfraDefinition,
    PortProxyRequirement, Provider, RuleSet, SecretDefinition, UnconvertedRecord,
)

__all__ = [
    "ComposeServiceDraft",
    "ConversionResult",
    "ConvertContext",
    "ConvertedRecord",
    "Converter",
    "ConverterResult",
    "IndexerConverter",
    "InfraDefinition",
    "PortProxyRequirement",
    "Provider",
    "RuleSet",
    "SecretDefinition",
    "UnconvertedRecord",
]
