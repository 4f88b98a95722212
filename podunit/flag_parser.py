# podunit/flag_parser.py
"""
Flag-tolerant classification of `podman run` arguments.

The parser answers presence/value questions about a small set of flags the
command rewriter has to reconcile. It never modifies or reorders the tokens;
unknown flags are skipped instead of rejected. Parsing stops at the first
positional argument (the image), so the image's own arguments are never
mistaken for podman flags.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple

from .errors import InvalidCreateCommandError

BOOL = "bool"
STRING = "string"
STRING_ARRAY = "string_array"

_TRUE_VALUES = ("1", "t", "T", "TRUE", "true", "True")
_FALSE_VALUES = ("0", "f", "F", "FALSE", "false", "False")


@dataclass(frozen=True)
class FlagSpec:
    name: str
    kind: str
    shorthand: Optional[str] = None


KNOWN_FLAGS = (
    FlagSpec("detach", BOOL, "d"),
    FlagSpec("name", STRING),
    FlagSpec("replace", BOOL),
    FlagSpec("env", STRING_ARRAY, "e"),
    FlagSpec("sdnotify", STRING),
)

_LONG = {spec.name: spec for spec in KNOWN_FLAGS}
_SHORT = {spec.shorthand: spec for spec in KNOWN_FLAGS if spec.shorthand}


@dataclass
class ParsedFlags:
    """Result of classifying a token list.

    Attributes:
        values: Value of every recognized flag that was given
        changed: Names of the recognized flags that were given
        positional_count: Number of trailing tokens that are positional (image, command, args)
        tokens: The classified tokens, untouched
        assignments: For bool flags given as `flag=value`, the (token index,
            character offset) of every assignment. The offset is 0 for long
            flags and points at the letter inside a shorthand group.
    """

    values: Dict[str, Any] = field(default_factory=dict)
    changed: Set[str] = field(default_factory=set)
    positional_count: int = 0
    tokens: List[str] = field(default_factory=list)
    assignments: Dict[str, List[Tuple[int, int]]] = field(default_factory=dict)

    def is_set(self, name: str) -> bool:
        return name in self.changed

    def get_bool(self, name: str) -> bool:
        return bool(self.values.get(name, False))

    def get_string_array(self, name: str) -> List[str]:
        return list(self.values.get(name, []))


def parse_bool(flag: str, value: str) -> bool:
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise InvalidCreateCommandError(f"invalid boolean value {value!r} for flag --{flag}")


def _record(result: ParsedFlags, spec: FlagSpec, value: Any) -> None:
    result.changed.add(spec.name)
    if spec.kind == STRING_ARRAY:
        result.values.setdefault(spec.name, []).append(value)
    else:
        result.values[spec.name] = value


def _skip_unknown_value(tokens: List[str], index: int) -> int:
    # An unknown flag may take a value; assume it does unless the next token is a flag.
    if index < len(tokens) and not tokens[index].startswith("-"):
        return index + 1
    return index


def _take_value(tokens: List[str], index: int, flag: str):
    if index >= len(tokens):
        raise InvalidCreateCommandError(f"flag needs an argument: {flag}")
    return tokens[index], index + 1


def parse_flags(tokens: List[str]) -> ParsedFlags:
    """Classifies the tokens following the `run`/`create` subcommand."""
    result = ParsedFlags(tokens=list(tokens))
    index = 0

    while index < len(tokens):
        token = tokens[index]
        if token == "--":
            result.positional_count = len(tokens) - index - 1
            break
        if not token.startswith("-") or token == "-":
            result.positional_count = len(tokens) - index
            break
        position = index
        index += 1

        if token.startswith("--"):
            name, has_value, value = token[2:].partition("=")
            spec = _LONG.get(name)
            if spec is None:
                if not has_value:
                    index = _skip_unknown_value(tokens, index)
                continue
            if spec.kind == BOOL:
                _record(result, spec, parse_bool(name, value) if has_value else True)
                if has_value:
                    result.assignments.setdefault(spec.name, []).append((position, 0))
                continue
            if not has_value:
                value, index = _take_value(tokens, index, token)
            _record(result, spec, value)
            continue

        # Shorthand group such as -d, -dit, -eFOO, -e=FOO or -d=false
        shorthands = token[1:]
        while shorthands:
            letter, rest = shorthands[0], shorthands[1:]
            spec = _SHORT.get(letter)
            if spec is None:
                if rest.startswith("="):
                    break
                if not rest:
                    index = _skip_unknown_value(tokens, index)
                shorthands = rest
                continue
            if spec.kind == BOOL:
                if rest.startswith("="):
                    _record(result, spec, parse_bool(spec.name, rest[1:]))
                    offset = len(token) - len(shorthands)
                    result.assignments.setdefault(spec.name, []).append((position, offset))
                    break
                _record(result, spec, True)
                shorthands = rest
                continue
            if rest.startswith("="):
                value = rest[1:]
            elif rest:
                value = rest
            else:
                value, index = _take_value(tokens, index, f"-{letter}")
            _record(result, spec, value)
            break

    return result
