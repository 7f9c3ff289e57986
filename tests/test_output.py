import yaml

from dekompose.core.rules import RuleRuntimeContext
from dekompose.io.output import (
    _service_definition, build_report, emit_warnings, group_services,
    load_port_proxy_requirements, write_report,
)
from dekompose.pacts.types import (
    ComposeServiceDraft, ConversionResult, ConvertedRecord, InfraDefinition,
    PortProxyRequirement, RuleSet,
)


def test_service_definition_omits_empty_fields():
    draft = ComposeServiceDraft(name="app-web", workload="app", image="nginx")
    assert _service_definition(draft, "net") == {
        "image": "nginx", "networks": ["net"], "restart": "on-failure"}

    draft.depends_on = {"redis", "mssql"}
    draft.extra_hosts = ["db:10.0.0.5"]
    draft.restart = None
    definition = _service_definition(draft, "net")
    assert definition["depends_on"] == ["mssql", "redis"]
    assert definition["extra_hosts"] == ["db:10.0.0.5"]
    assert "restart" not in definition


def test_group_services_is_case_insensitive():
    drafts = [
        ComposeServiceDraft(name="a", workload="App", os="linux"),
        ComposeServiceDraft(name="b", workload="app", os="Linux"),
        ComposeServiceDraft(name="c", workload="app", os="windows"),
    ]
    groups = group_services(drafts)
    assert [[d.name for d in g] for g in groups.values()] == [["a", "b"], ["c"]]


def test_report_sections():
    rules = RuleRuntimeContext.build([RuleSet(infra=[
        InfraDefinition(name="redis", image="redis:7", ports=["6379:6379", "16379"]),
    ])], [])
    result = ConversionResult(converted=[
        ConvertedRecord("app-web", "Deployment", "app", "linux", "docker-compose.app.linux.yml", "app-web")])
    report = build_report(result, rules, "net")
    assert report["portProxyRequirements"] == [
        {"port": 6379, "network": "net"}, {"port": 16379, "network": "net"}]
    assert report["infraResources"][0]["composeFile"] == "docker-compose.redis.infra.yml"
    assert report["unconverted"] == []


def test_port_proxy_requirements_round_trip(tmp_path):
    rules = RuleRuntimeContext.build([RuleSet(infra=[
        InfraDefinition(name="mssql", image="mssql", ports=["1433:1433"])])], [])
    write_report(build_report(ConversionResult(), rules, "dekompose-42"), str(tmp_path))
    assert load_port_proxy_requirements(str(tmp_path)) == [PortProxyRequirement(1433, "dekompose-42")]


def test_port_proxy_requirements_are_deduplicated(tmp_path):
    (tmp_path / "conversion-report.yaml").write_text(yaml.safe_dump({
        "portProxyRequirements": [
            {"port": 1433, "network": "first"},
            {"port": "1433", "network": "second"},
            {"port": "nope"},
            {"port": 0},
            "garbage",
            {"port": 5432, "network": ""},
        ]}))
    assert load_port_proxy_requirements(str(tmp_path)) == [
        PortProxyRequirement(1433, "first"), PortProxyRequirement(5432, None)]


def test_missing_or_broken_report_yields_nothing(tmp_path, capsys):
    assert load_port_proxy_requirements(str(tmp_path)) == []
    (tmp_path / "conversion-report.yaml").write_text("portProxyRequirements: [\n")
    assert load_port_proxy_requirements(str(tmp_path)) == []
    assert "Could not read" in capsys.readouterr().err
    (tmp_path / "conversion-report.yaml").write_text("- just a list\n")
    assert load_port_proxy_requirements(str(tmp_path)) == []


def test_emit_warnings(capsys):
    emit_warnings(["first", "second"])
    assert capsys.readouterr().err == "⚠ first\n⚠ second\n"
