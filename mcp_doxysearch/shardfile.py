"""Readers for Doxygen search index files.

Shards are small JavaScript files (``var searchData=[...];``) and the
catalogue is ``searchdata.js``. Only the literal subset the generator emits
is understood: ``var``/``let``/``const`` assignments of arrays, objects,
strings, numbers and ``true``/``false``/``null``. Plain JSON is accepted too.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from typing import Any

from pydantic import ValidationError

from .config import SHARD_VARIABLE
from .exceptions import MalformedShard
from .models import IndexEntry, IndexManifest, IndexSection, Shard, SymbolRecord
from .normalize import derive_scope, split_key

logger = logging.getLogger("mcp_doxysearch.shardfile")

_TOKEN = re.compile(
    r"""
    (?P<space>\s+)
  | (?P<comment>//[^\n]*|/\*.*?\*/)
  | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
  | (?P<number>-?\d+(?:\.\d+)?(?:[eE][-+]?\d+)?)
  | (?P<name>[A-Za-z_$][\w$]*)
  | (?P<punct>[\[\]{}:,=;])
    """,
    re.VERBOSE | re.DOTALL,
)
_ESCAPE = re.compile(r"\\(u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|.)", re.DOTALL)
_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "b": "\b", "f": "\f", "0": "\0"}
_KEYWORDS = {"true": True, "false": False, "null": None}
_DECLARATIONS = {"var", "let", "const"}


class LiteralSyntaxError(ValueError):
    """Raised when a file is not in the supported literal subset."""


def _unescape(body: str) -> str:
    def replace(match: re.Match[str]) -> str:
        escape = match.group(1)
        if escape[0] in "ux" and len(escape) > 1:
            return chr(int(escape[1:], 16))
        return _SIMPLE_ESCAPES.get(escape, escape)

    return _ESCAPE.sub(replace, body)


def _tokenize(text: str) -> Iterator[tuple[str, str, int]]:
    position = 0
    length = len(text)
    while position < length:
        match = _TOKEN.match(text, position)
        if match is None:
            raise LiteralSyntaxError(
                f"unexpected character {text[position]!r} at offset {position}"
            )
        kind = match.lastgroup or ""
        if kind not in ("space", "comment"):
            yield kind, match.group(), position
        position = match.end()


class _LiteralReader:
    """Recursive-descent reader over the token stream."""

    def __init__(self, text: str) -> None:
        self._tokens = list(_tokenize(text))
        self._index = 0

    def _peek(self) -> tuple[str, str, int] | None:
        if self._index < len(self._tokens):
            return self._tokens[self._index]
        return None

    def _next(self) -> tuple[str, str, int]:
        token = self._peek()
        if token is None:
            raise LiteralSyntaxError("unexpected end of input")
        self._index += 1
        return token

    def _expect(self, value: str) -> None:
        kind, text, offset = self._next()
        if text != value:
            raise LiteralSyntaxError(f"expected {value!r} at offset {offset}, got {text!r}")

    def _accept(self, value: str) -> bool:
        token = self._peek()
        if token is not None and token[0] == "punct" and token[1] == value:
            self._index += 1
            return True
        return False

    def read(self) -> dict[str, Any]:
        """Read the whole input into a mapping of assigned names to values.

        A bare literal is returned under the empty name.
        """
        first = self._peek()
        if first is None:
            raise LiteralSyntaxError("empty input")
        if first[0] == "punct" and first[1] in "[{":
            value = self._value()
            self._accept(";")
            self._ensure_end()
            return {"": value}

        assignments: dict[str, Any] = {}
        while self._peek() is not None:
            kind, text, offset = self._next()
            if kind == "name" and text in _DECLARATIONS:
                kind, text, offset = self._next()
            if kind != "name":
                raise LiteralSyntaxError(f"expected a variable name at offset {offset}")
            self._expect("=")
            assignments[text] = self._value()
            while self._accept(";"):
                pass
        return assignments

    def _ensure_end(self) -> None:
        token = self._peek()
        if token is not None:
            raise LiteralSyntaxError(f"trailing content at offset {token[2]}")

    def _value(self) -> Any:
        kind, text, offset = self._next()
        if kind == "string":
            return _unescape(text[1:-1])
        if kind == "number":
            return float(text) if any(c in text for c in ".eE") else int(text)
        if kind == "name" and text in _KEYWORDS:
            return _KEYWORDS[text]
        if kind == "punct" and text == "[":
            return self._array()
        if kind == "punct" and text == "{":
            return self._object()
        raise LiteralSyntaxError(f"unexpected {text!r} at offset {offset}")

    def _array(self) -> list[Any]:
        items: list[Any] = []
        while not self._accept("]"):
            items.append(self._value())
            if not self._accept(","):
                self._expect("]")
                break
        return items

    def _object(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        while not self._accept("}"):
            kind, text, offset = self._next()
            if kind == "string":
                key = _unescape(text[1:-1])
            elif kind in ("name", "number"):
                key = text
            else:
                raise LiteralSyntaxError(f"expected an object key at offset {offset}")
            self._expect(":")
            result[key] = self._value()
            if not self._accept(","):
                self._expect("}")
                break
        return result


def read_literals(text: str) -> dict[str, Any]:
    """Read the assignments of a generated index file.

    Args:
        text: File contents

    Returns:
        Mapping of variable name to value (``""`` for a bare literal)

    Raises:
        LiteralSyntaxError: The file is outside the supported subset
    """
    return _LiteralReader(text).read()


def _parse_record(shard_key: str, label: str, raw: Any) -> SymbolRecord:
    if not isinstance(raw, list):
        raise MalformedShard(shard_key, f"record of '{label}' is not a list")

    scope_given = False
    scope: str | None = None
    if len(raw) in (2, 3) and isinstance(raw[1], int):
        # Doxygen layout: [url#anchor, is_local, tooltip]
        href, local = raw[0], raw[1]
        tooltip = raw[2] if len(raw) == 3 else ""
        if not isinstance(href, str) or not isinstance(tooltip, str):
            raise MalformedShard(shard_key, f"record of '{label}' has non-text fields")
        target_url, _, anchor = href.partition("#")
        is_local = bool(local)
    elif len(raw) in (3, 4) and all(
        isinstance(value, str) or (position == 3 and value is None)
        for position, value in enumerate(raw)
    ):
        target_url, anchor, tooltip = raw[0], raw[1], raw[2]
        is_local = True
        if len(raw) == 4:
            scope_given = True
            scope = raw[3] or None
    else:
        raise MalformedShard(
            shard_key, f"record of '{label}' has unexpected arity {len(raw)}"
        )

    if not target_url:
        raise MalformedShard(shard_key, f"record of '{label}' has no target url")

    return SymbolRecord(
        display_name=label,
        qualified_scope=scope if scope_given else derive_scope(tooltip, label),
        target_url=target_url,
        anchor=anchor,
        tooltip=tooltip,
        is_local=is_local,
    )


def _parse_entry(shard_key: str, raw: Any, position: int) -> IndexEntry:
    if not isinstance(raw, list) or len(raw) != 2:
        raise MalformedShard(shard_key, f"entry {position} is not a [key, value] pair")
    key, value = raw
    if not isinstance(key, str) or not key:
        raise MalformedShard(shard_key, f"entry {position} has no key")
    if not isinstance(value, list) or len(value) < 2 or not isinstance(value[0], str):
        raise MalformedShard(shard_key, f"entry '{key}' has no label and records")

    label = value[0]
    raw_records = value[1:]
    structured = (
        len(raw_records) == 1
        and isinstance(raw_records[0], list)
        and bool(raw_records[0])
        and isinstance(raw_records[0][0], list)
    )
    if structured:
        raw_records = raw_records[0]

    records = tuple(
        _parse_record(shard_key, label, record) for record in raw_records
    )
    term, serial = split_key(key, label)
    try:
        return IndexEntry(
            key=key,
            display_label=label,
            records=records,
            serial=position if serial is None else serial,
            term=term,
        )
    except ValidationError as exc:
        raise MalformedShard(shard_key, f"entry '{key}': {exc}") from exc


def parse_shard(shard_key: str, text: str) -> Shard:
    """Parse and validate one shard file.

    Args:
        shard_key: Identifier of the shard, used in diagnostics
        text: File contents

    Returns:
        The shard with entries ordered by key

    Raises:
        MalformedShard: The file does not have the expected structure
    """
    try:
        values = read_literals(text)
    except LiteralSyntaxError as exc:
        raise MalformedShard(shard_key, str(exc)) from exc
    except RecursionError as exc:
        raise MalformedShard(shard_key, "literal nested too deeply") from exc

    data = values.get(SHARD_VARIABLE, values.get(""))
    if not isinstance(data, list):
        raise MalformedShard(shard_key, f"no '{SHARD_VARIABLE}' array")

    entries = [_parse_entry(shard_key, raw, position) for position, raw in enumerate(data)]
    entries.sort(key=lambda entry: entry.key)
    for previous, current in zip(entries, entries[1:]):
        if previous.key == current.key:
            raise MalformedShard(shard_key, f"duplicate key '{current.key}'")

    logger.debug("Parsed shard %s with %s entries", shard_key, len(entries))
    return Shard(shard_key=shard_key, entries=tuple(entries))


def _numbered(mapping: Any, name: str) -> dict[int, Any]:
    if isinstance(mapping, list):
        return dict(enumerate(mapping))
    if not isinstance(mapping, dict):
        raise LiteralSyntaxError(f"'{name}' is not an object")
    try:
        return {int(key): value for key, value in mapping.items()}
    except ValueError as exc:
        raise LiteralSyntaxError(f"'{name}' has non-numeric keys") from exc


def parse_manifest(text: str) -> IndexManifest:
    """Parse the ``searchdata.js`` catalogue.

    Bucket prefixes come from ``indexSectionsWithContent``: a string holds one
    single-character bucket per character, a list holds arbitrary prefixes.

    Raises:
        LiteralSyntaxError: The catalogue is missing or inconsistent
    """
    values = read_literals(text)
    if "indexSectionsWithContent" not in values or "indexSectionNames" not in values:
        raise LiteralSyntaxError("catalogue lacks section tables")

    contents = _numbered(values["indexSectionsWithContent"], "indexSectionsWithContent")
    names = _numbered(values["indexSectionNames"], "indexSectionNames")
    labels = _numbered(values.get("indexSectionLabels", {}), "indexSectionLabels")

    sections: list[IndexSection] = []
    for position in sorted(names):
        name = names[position]
        content = contents.get(position, "")
        if isinstance(content, str):
            buckets = tuple(content)
        elif isinstance(content, list) and all(isinstance(b, str) and b for b in content):
            buckets = tuple(content)
        else:
            raise LiteralSyntaxError(f"section '{name}' has invalid buckets")
        if not isinstance(name, str) or not name:
            raise LiteralSyntaxError(f"section {position} has no name")
        sections.append(
            IndexSection(
                position=position,
                name=name,
                label=str(labels.get(position, name)),
                buckets=tuple(bucket.lower() for bucket in buckets),
            )
        )
    return IndexManifest(sections=tuple(sections))
