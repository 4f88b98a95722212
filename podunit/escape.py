# podunit/escape.py
from typing import List

_QUOTE_TRIGGERS = (" ", "\t", "\n", "\r", "\v", "\f", '"', "'")

_SIMPLE_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}


def _quote(arg: str) -> str:
    """Double-quotes arg using C-style escapes, which systemd unquotes."""
    out = ['"']
    for ch in arg:
        if ch in _SIMPLE_ESCAPES:
            out.append(_SIMPLE_ESCAPES[ch])
        elif ch.isprintable():
            out.append(ch)
        elif ord(ch) < 0x80:
            out.append(f"\\x{ord(ch):02x}")
        elif ord(ch) < 0x10000:
            out.append(f"\\u{ord(ch):04x}")
        else:
            out.append(f"\\U{ord(ch):08x}")
    out.append('"')
    return "".join(out)


def escape_systemd_arg(arg: str) -> str:
    """Escapes a single command token for an Exec*= or Environment= line.

    `$` and `%` are doubled so systemd expands neither variables nor
    specifiers in them. Tokens with whitespace or quotes are wrapped in double
    quotes; otherwise backslashes are doubled. Apply exactly once per token.
    """
    arg = arg.replace("$", "$$").replace("%", "%%")
    if any(c in arg for c in _QUOTE_TRIGGERS):
        return _quote(arg)
    if "\\" in arg:
        # _quote already handles backslashes
        return arg.replace("\\", "\\\\")
    return arg


def escape_systemd_arguments(args: List[str]) -> List[str]:
    return [escape_systemd_arg(arg) for arg in args]
