from dekompose.core.tokens import InfraToken, find_tokens, substitute, tokenize


def test_tokenize_splits_literals_and_tokens():
    segments = tokenize("host={{INFRA[mssql].HOSTNAME}};pw={{INFRA[mssql].ENVIRONMENT[SA_PASSWORD]}}")
    assert segments == [
        "host=",
        InfraToken("{{INFRA[mssql].HOSTNAME}}", "mssql"),
        ";pw=",
        InfraToken("{{INFRA[mssql].ENVIRONMENT[SA_PASSWORD]}}", "mssql", "SA_PASSWORD"),
    ]


def test_keywords_are_case_insensitive():
    tokens = find_tokens("{{infra[Redis].hostname}} {{Infra[redis].Environment[port]}}")
    assert [(t.infra, t.key) for t in tokens] == [("Redis", None), ("redis", "port")]


def test_malformed_tokens_stay_literal():
    for text in ("{{INFRA[].HOSTNAME}}", "{{INFRA[x].HOST}}", "{{INFRA[x].ENVIRONMENT[]}}",
                 "{{INFRA[x].HOSTNAME}", "{{INFRA[x]HOSTNAME}}", "{{ INFRA[x].HOSTNAME}}"):
        assert find_tokens(text) == []
        assert substitute(text, lambda t: "X") == text


def test_token_after_stray_braces_is_found():
    assert substitute("{{{{INFRA[db].HOSTNAME}}", lambda t: "db") == "{{db"


def test_substitute_keeps_text_when_resolver_declines():
    text = "a {{INFRA[gone].HOSTNAME}} b {{INFRA[db].HOSTNAME}}"
    out = substitute(text, lambda t: None if t.infra == "gone" else "db-host")
    assert out == "a {{INFRA[gone].HOSTNAME}} b db-host"


def test_plain_text_is_untouched():
    assert tokenize("") == []
    assert substitute("no tokens here", lambda t: "X") == "no tokens here"
