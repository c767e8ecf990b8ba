from __future__ import annotations

import string

from safe_radix.errors import UsageError

# RFC 3986 "unreserved": safe in a URL path, query or fragment without escaping.
URL_SAFE = string.ascii_uppercase + string.ascii_lowercase + string.digits + "-._~"
BASE62 = string.digits + string.ascii_uppercase + string.ascii_lowercase
HEX = "0123456789abcdef"
DIGITS = string.digits

BUILTIN_ALPHABETS: dict[str, str] = {
    "url": URL_SAFE,
    "base62": BASE62,
    "hex": HEX,
    "digits": DIGITS,
}

LITERAL_PREFIX = "literal:"


def resolve_alphabet(arg: str) -> str:
    """Accept a built-in name ('url', 'hex', ...) or 'literal:<symbols>'."""
    if arg.startswith(LITERAL_PREFIX):
        return arg[len(LITERAL_PREFIX) :]
    name = arg.strip().lower()
    try:
        return BUILTIN_ALPHABETS[name]
    except KeyError:
        known = ", ".join(sorted(BUILTIN_ALPHABETS))
        raise UsageError(f"unknown alphabet {arg!r} (known: {known}, or literal:<symbols>)") from None
