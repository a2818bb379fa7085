"""Key normalization shared by shard parsing and query evaluation.

Keys follow the Doxygen search index convention: the identifier is
lower-cased, ``a-z``/``0-9`` and non-ASCII characters are kept and every
other character is written as ``_`` plus its two-digit hex code (``_`` itself
becomes ``_5f``). A trailing ``_<n>`` keeps keys unique when two names
normalize to the same string.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

_SERIAL_SUFFIX = re.compile(r"^(?P<term>.*)_(?P<serial>\d+)$", re.DOTALL)
_TRAILING_QUALIFIERS = re.compile(
    r"(?<=\))(?:\s*(?:const|volatile|noexcept|override|final|&&|&))+\s*$"
)
# Doxygen renders file-scope members as "name():&#160;file.h"
_FILE_SCOPE_SEPARATOR = ":\xa0"


def escape_identifier(text: str) -> str:
    """Escape ``text`` the way the index generator escapes identifiers.

    Args:
        text: Already lower-cased text

    Returns:
        The escaped key fragment
    """
    escaped: list[str] = []
    for char in text:
        if "a" <= char <= "z" or "0" <= char <= "9" or ord(char) >= 0x80:
            escaped.append(char)
        else:
            escaped.append(f"_{ord(char):02x}")
    return "".join(escaped)


def normalize_query(text: str) -> str:
    """Normalize user input into the key space of the index.

    Args:
        text: Raw query text as typed

    Returns:
        The normalized key prefix; empty for blank input
    """
    return escape_identifier(text.strip().lower())


def bucket_text(text: str) -> str:
    """Return the unescaped, lower-cased text used to pick shard buckets."""
    return text.strip().lower()


def split_key(key: str, label: str | None = None) -> tuple[str, int | None]:
    """Split an entry key into its search term and tie-break serial.

    An escape such as ``_29`` looks like a serial, so when the display label
    is known the term is derived from it and only what follows counts as
    the serial.

    >>> split_key("to_5fstring_6")
    ('to_5fstring', 6)
    >>> split_key("operator_28_29", "operator()")
    ('operator_28_29', None)
    """
    if label:
        term = escape_identifier(decode_markup(label).lower())
        if key == term:
            return key, None
        suffix = key[len(term) + 1 :]
        if key.startswith(f"{term}_") and suffix.isdigit() and suffix.isascii():
            return term, int(suffix)

    match = _SERIAL_SUFFIX.match(key)
    if match is None:
        return key, None
    return match.group("term"), int(match.group("serial"))


def decode_markup(text: str) -> str:
    """Decode HTML entities and drop tags from a generated label."""
    if "&" not in text and "<" not in text:
        return text
    return BeautifulSoup(text, "html.parser").get_text()


def _strip_arguments(text: str) -> str:
    text = _TRAILING_QUALIFIERS.sub("", text).rstrip()
    if not text.endswith(")"):
        return text

    depth = 0
    for index in range(len(text) - 1, -1, -1):
        char = text[index]
        if char == ")":
            depth += 1
        elif char == "(":
            depth -= 1
            if depth == 0:
                return text[:index].rstrip()
    return text


def derive_scope(tooltip: str, label: str) -> str | None:
    """Derive the qualified scope of a declaration from its tooltip.

    ``BiometricEvaluation::Time::Timer::Timer()`` under label ``Timer`` gives
    ``BiometricEvaluation::Time::Timer``; a tooltip that is only a scope
    (``BiometricEvaluation::Text`` for ``trim``) is returned unchanged.

    Args:
        tooltip: Tooltip text as stored in the shard
        label: Display label of the entry

    Returns:
        The containing scope, or None for free and file-scope symbols
    """
    text = decode_markup(tooltip).strip()
    if not text or _FILE_SCOPE_SEPARATOR in text:
        return None

    text = _strip_arguments(text)
    suffix = f"::{label}"
    if text.endswith(suffix):
        text = text[: -len(suffix)]
    elif text == label:
        return None
    return text or None
