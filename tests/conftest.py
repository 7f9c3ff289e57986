"""Shared pytest fixtures for the dekompose test suite."""

import random
import textwrap

import pytest

from dekompose.core.rules import RuleRuntimeContext
from dekompose.pacts.types import ConvertContext, InfraDefinition, RuleSet, SecretDefinition


MSSQL_CONNECTION = (
    "Data Source={{INFRA[MSSQL].HOSTNAME}},1433;Initial Catalog=app;"
    "User ID=sa;Password={{INFRA[MSSQL].ENVIRONMENT[SA_PASSWORD]}};"
)


@pytest.fixture
def mssql_connection():
    return MSSQL_CONNECTION


@pytest.fixture
def mssql_rules():
    """A rule set with a Linux mssql infra item and a few secrets."""
    return [RuleSet(
        match="*",
        infra=[InfraDefinition(
            name="mssql",
            image="mcr.microsoft.com/mssql/server:2022-latest",
            environment={"ACCEPT_EULA": "Y", "SA_PASSWORD": "Str0ng!Pass"},
            ports=["1433:1433"],
            os="linux",
        )],
        secret_key_refs={"default": [
            SecretDefinition(name="db-connection", type="literal",
                             options={"value": MSSQL_CONNECTION}),
            SecretDefinition(name="tls-cert", type="file",
                             options={"filename": "tls.crt", "value": "aGVsbG8="}),
        ]},
    )]


@pytest.fixture
def make_ctx(tmp_path):
    """Factory for a ConvertContext over a fresh RuleRuntimeContext."""
    def _make(rule_sets=None, **kwargs):
        warnings = []
        kwargs.setdefault("rng", random.Random(1234))
        return ConvertContext(
            output_dir=str(tmp_path), network_name="dekompose-test",
            rules=RuleRuntimeContext.build(rule_sets, warnings),
            warnings=warnings, **kwargs,
        )
    return _make


@pytest.fixture
def write_manifest(tmp_path):
    """Write dedented manifest text to tmp_path/manifest.yaml and return its path."""
    def _write(text):
        path = tmp_path / "manifest.yaml"
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return str(path)
    return _write
