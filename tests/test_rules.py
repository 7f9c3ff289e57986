import pytest

from dekompose.core.constants import NAT_GATEWAY_PLACEHOLDER
from dekompose.core.rules import RuleRuntimeContext, parse_host_port
from dekompose.pacts.types import InfraDefinition, RuleSet, SecretDefinition


@pytest.fixture
def rules(mssql_rules):
    return RuleRuntimeContext.build(mssql_rules, [])


def test_hostname_goes_through_nat_gateway_for_windows_consumers(rules, mssql_connection):
    out = rules.detokenize(mssql_connection, "windows")
    assert out.startswith(f"Data Source={NAT_GATEWAY_PLACEHOLDER},1433;")
    assert "Password=Str0ng!Pass;" in out
    assert rules.warnings == []


def test_hostname_is_the_service_name_for_linux_consumers(rules, mssql_connection):
    out = rules.detokenize(mssql_connection, "linux")
    assert out == ("Data Source=mssql,1433;Initial Catalog=app;"
                   "User ID=sa;Password=Str0ng!Pass;")


def test_unknown_infra_and_key_stay_verbatim(rules):
    text = "{{INFRA[redis].HOSTNAME}} {{INFRA[mssql].ENVIRONMENT[NOPE]}}"
    assert rules.detokenize(text, "linux") == text
    assert any("unknown infra 'redis'" in w for w in rules.warnings)
    assert any("unknown environment 'NOPE'" in w for w in rules.warnings)


def test_environment_lookup_is_case_insensitive(rules):
    assert rules.detokenize("{{INFRA[mssql].ENVIRONMENT[accept_eula]}}") == "Y"


def test_referenced_infra_names_uses_tokens_and_whole_words(rules, mssql_connection):
    assert rules.referenced_infra_names(mssql_connection) == {"mssql"}
    assert rules.referenced_infra_names("Server=MSSQL;Port=1433") == {"mssql"}
    assert rules.referenced_infra_names("Server=my-mssql-box") == set()
    assert rules.referenced_infra_names("Server=mssqlx") == set()
    assert rules.referenced_infra_names("") == set()


def test_infra_compatibility_follows_engine(rules):
    assert rules.is_infra_compatible("mssql", service_is_windows=False)
    assert not rules.is_infra_compatible("mssql", service_is_windows=True)
    assert not rules.is_infra_compatible("redis", service_is_windows=False)


def test_secret_lookup_prefers_key_then_name(rules):
    value, refs = rules.resolve_secret_value("missing-secret", "db-connection", "windows")
    assert value.startswith(f"Data Source={NAT_GATEWAY_PLACEHOLDER}")
    assert refs == {"mssql"}

    value, refs = rules.resolve_secret_value("db-connection", "not-configured", "linux")
    assert value.startswith("Data Source=mssql,")
    assert rules.warnings == []


def test_file_secret_is_not_a_literal(rules):
    assert rules.resolve_secret_value(None, "tls-cert") == (None, set())
    assert any("file-based" in w for w in rules.warnings)


def test_missing_secret_warns(rules):
    assert rules.resolve_secret_value("nope", "also-nope") == (None, set())
    assert rules.warnings == ["No secret value configured for key 'also-nope'"]


def test_infra_without_image_or_build_is_skipped():
    warnings = []
    rules = RuleRuntimeContext.build([RuleSet(infra=[
        InfraDefinition(name="ghost", ports=["7000:7000"]),
        InfraDefinition(name="built", build={"context": "./db"}),
    ])], warnings)
    assert [i.name for i in rules.infra] == ["built"]
    assert rules.port_proxy_ports() == []
    assert any("'ghost'" in w for w in warnings)


def test_later_rule_sets_overwrite_infra_and_secrets(mssql_rules):
    override = RuleSet(
        infra=[InfraDefinition(name="MSSQL", image="mssql:custom", os="linux")],
        secret_key_refs={"default": [
            SecretDefinition(name="DB-CONNECTION", options={"value": "plain"})]},
    )
    rules = RuleRuntimeContext.build(mssql_rules + [override], [])
    assert rules.get_infra("mssql").image == "mssql:custom"
    assert rules.resolve_secret_value(None, "db-connection") == ("plain", set())


def test_port_proxy_ports_and_summaries(rules):
    assert rules.port_proxy_ports() == [1433]
    assert rules.infra_summaries() == [{
        "name": "mssql",
        "image": "mcr.microsoft.com/mssql/server:2022-latest",
        "composeFile": "docker-compose.mssql.linux.yml",
    }]


@pytest.mark.parametrize("definition, expected", [
    ("1433", 1433),
    ("1433:1433", 1433),
    ("127.0.0.1:5432:5432", 5432),
    ("8080:80/tcp", 8080),
    ("", None),
    ("abc", None),
])
def test_parse_host_port(definition, expected):
    assert parse_host_port(definition) == expected


def test_compose_file_name_defaults():
    rules = RuleRuntimeContext.build([RuleSet(infra=[
        InfraDefinition(name="cache", image="redis:7"),
        InfraDefinition(name="queue", image="rabbitmq", compose_file="custom.yml"),
        InfraDefinition(name="winsql", image="mssql-win", os="Windows"),
    ])], [])
    assert rules.get_infra("cache").compose_file == "docker-compose.cache.infra.yml"
    assert rules.get_infra("queue").compose_file == "custom.yml"
    assert rules.get_infra("winsql").compose_file == "docker-compose.winsql.windows.yml"


def test_infra_service_environment_resolved_for_its_own_os():
    rules = RuleRuntimeContext.build([RuleSet(infra=[
        InfraDefinition(name="db", image="postgres:16", os="linux",
                        environment={"POSTGRES_PASSWORD": "pw"}, ports=["5432:5432"]),
        InfraDefinition(name="reporter", image="reporter-win", os="windows",
                        environment={"DB_HOST": "{{INFRA[db].HOSTNAME}}",
                                     "DB_PASS": "{{INFRA[db].ENVIRONMENT[POSTGRES_PASSWORD]}}"}),
    ])], [])
    service = rules.get_infra("reporter").to_compose_service("net", rules)
    assert service["environment"] == {"DB_HOST": NAT_GATEWAY_PLACEHOLDER, "DB_PASS": "pw"}
    assert service["networks"] == ["net"]
    assert "ports" not in service
    assert rules.get_infra("db").to_compose_service("net", rules)["ports"] == ["5432:5432"]
