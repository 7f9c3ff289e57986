import yaml

from dekompose.core.nodes import (
    Mapping, Scalar, Sequence, from_yaml_node, get_bool, get_int, get_map,
    get_seq, get_str,
)


def _node(text):
    return from_yaml_node(yaml.compose(text, Loader=yaml.SafeLoader))


def test_mapping_lookup_is_case_insensitive():
    doc = _node("Kind: Deployment\nmetadata:\n  Name: app-web\n")
    assert get_str(doc, "kind") == "Deployment"
    assert get_str(doc, "METADATA", "name") == "app-web"


def test_scalars_keep_source_text():
    doc = _node("enabled: true\nport: 8080\nratio: 1.50\n")
    assert get_str(doc, "enabled") == "true"
    assert get_str(doc, "port") == "8080"
    assert get_str(doc, "ratio") == "1.50"


def test_nulls_are_dropped():
    doc = _node("a: ~\nb: null\nc:\nd: [1, null, 2]\n")
    assert "a" not in doc and "b" not in doc and "c" not in doc
    assert get_seq(doc, "d") == (Scalar("1"), Scalar("2"))


def test_typed_accessors_return_none_on_shape_mismatch():
    doc = _node("spec:\n  containers:\n    - name: web\n  replicas: two\n")
    assert get_map(doc, "spec", "containers") is None
    assert get_str(doc, "spec", "containers") is None
    assert get_int(doc, "spec", "replicas") is None
    assert get_seq(doc, "spec", "missing") is None
    assert isinstance(get_seq(doc, "spec", "containers")[0], Mapping)


def test_int_and_bool_parsing():
    doc = _node("port: ' 8080 '\nro: True\nrw: 'no'\n")
    assert get_int(doc, "port") == 8080
    assert get_bool(doc, "ro") is True
    assert get_bool(doc, "rw") is None


def test_items_preserve_original_keys_and_order():
    doc = _node("Zeta: 1\nalpha: 2\n")
    assert [k for k, _ in doc.items()] == ["Zeta", "alpha"]


def test_sequence_of_sequences():
    doc = _node("- [a, b]\n- c\n")
    assert isinstance(doc, Sequence)
    assert doc.items[0] == Sequence((Scalar("a"), Scalar("b")))
