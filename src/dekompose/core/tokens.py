"""Tokenizer for infra references embedded in rule and manifest values.

Grammar (keywords match case-insensitively, no nesting, no escaping)::

    token     = "{{" , "INFRA" , "[" , name , "]" , "." , selector , "}}" ;
    selector  = "ENVIRONMENT" , "[" , name , "]" | "HOSTNAME" ;
    name      = name-char , { name-char } ;
    name-char = ? any character except "]" ? ;

Text that does not form a complete token is kept as literal text.
"""

from dataclasses import dataclass

_OPEN = "{{"
_CLOSE = "}}"


@dataclass(frozen=True)
class InfraToken:
    """One parsed ``{{INFRA[...]...}}`` occurrence."""
    text: str
    infra: str
    key: str | None = None  # ENVIRONMENT[<key>]; None means HOSTNAME

    @property
    def is_hostname(self) -> bool:
        return self.key is None


def _expect(value: str, pos: int, word: str) -> int | None:
    """Match *word* (case-insensitive) at *pos*; return the position after it."""
    end = pos + len(word)
    if value[pos:end].upper() == word:
        return end
    return None


def _bracketed(value: str, pos: int) -> tuple[str, int] | None:
    """Parse ``[name]`` at *pos*; return (name, position after ``]``)."""
    if pos >= len(value) or value[pos] != "[":
        return None
    close = value.find("]", pos + 1)
    if close <= pos + 1:
        return None
    return value[pos + 1:close], close + 1


def _parse_token_at(value: str, start: int) -> tuple[InfraToken, int] | None:
    """Try to parse a full token starting at *start* (which points at ``{{``)."""
    pos = _expect(value, start + len(_OPEN), "INFRA")
    if pos is None:
        return None
    parsed = _bracketed(value, pos)
    if parsed is None:
        return None
    infra, pos = parsed
    if value[pos:pos + 1] != ".":
        return None
    pos += 1

    key = None
    after_env = _expect(value, pos, "ENVIRONMENT")
    if after_env is not None:
        parsed = _bracketed(value, after_env)
        if parsed is None:
            return None
        key, pos = parsed
    else:
        pos = _expect(value, pos, "HOSTNAME")
        if pos is None:
            return None

    if value[pos:pos + len(_CLOSE)] != _CLOSE:
        return None
    end = pos + len(_CLOSE)
    return InfraToken(value[start:end], infra, key), end


def tokenize(value: str) -> list:
    """Split *value* into literal strings and InfraToken objects, in order."""
    segments: list = []
    literal_start = 0
    pos = value.find(_OPEN)
    while pos >= 0:
        parsed = _parse_token_at(value, pos)
        if parsed is None:
            pos = value.find(_OPEN, pos + 1)
            continue
        token, end = parsed
        if pos > literal_start:
            segments.append(value[literal_start:pos])
        segments.append(token)
        literal_start = end
        pos = value.find(_OPEN, end)
    if literal_start < len(value):
        segments.append(value[literal_start:])
    return segments


def find_tokens(value: str) -> list[InfraToken]:
    """Return every InfraToken in *value*."""
    return [s for s in tokenize(value) if isinstance(s, InfraToken)]


def substitute(value: str, resolve) -> str:
    """Rebuild *value*, replacing each token with ``resolve(token)``.

    A resolver returning None keeps the token's original text.
    """
    out = []
    for segment in tokenize(value):
        if isinstance(segment, InfraToken):
            replacement = resolve(segment)
            out.append(segment.text if replacement is None else replacement)
        else:
            out.append(segment)
    return "".join(out)
