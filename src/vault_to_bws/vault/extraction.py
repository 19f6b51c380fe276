"""Flattening of decrypted vault documents into individual secrets.

Decrypted YAML is converted into the ordered document model from
``vault_to_bws.models`` and then walked depth-first. Every non-null leaf
becomes one secret keyed by its dotted path; lists are kept whole and
serialized as JSON.
"""

import base64
import json
from collections.abc import Hashable, Iterator
from pathlib import Path
from typing import Any

import yaml

from vault_to_bws.exceptions import ParseError
from vault_to_bws.models import (
    ExtractedSecret,
    ListValue,
    MapValue,
    Null,
    Scalar,
    SecretFile,
    StructuredValue,
)

_MERGE_TAG = "tag:yaml.org,2002:merge"


class _UniqueKeyLoader(yaml.SafeLoader):
    """SafeLoader that refuses mappings with repeated keys.

    PyYAML silently keeps the last value for a repeated key, which would make
    one of the secrets vanish without notice.
    """

    def construct_mapping(self, node: yaml.MappingNode, deep: bool = False) -> dict[Any, Any]:
        seen: set[Any] = set()
        for key_node, _ in node.value:
            if key_node.tag == _MERGE_TAG:
                continue
            key = self.construct_object(key_node, deep=deep)
            if not isinstance(key, Hashable):
                continue
            if key in seen:
                raise yaml.constructor.ConstructorError(
                    "while constructing a mapping",
                    node.start_mark,
                    f"found duplicate key {key!r}",
                    key_node.start_mark,
                )
            seen.add(key)
        return super().construct_mapping(node, deep=deep)


class RecursiveAliasError(ValueError):
    """Raised when a YAML alias refers to one of its own ancestors."""


def to_structured(data: Any, _ancestors: frozenset[int] = frozenset()) -> StructuredValue:
    """Convert a loaded YAML value into the document model.

    Args:
        data: Value produced by the YAML loader.

    Returns:
        The equivalent structured value, preserving mapping order.

    Raises:
        RecursiveAliasError: If a container contains itself through an alias.

    """
    if isinstance(data, dict | list | tuple):
        if id(data) in _ancestors:
            raise RecursiveAliasError("recursive YAML alias (a node contains itself)")
        _ancestors = _ancestors | {id(data)}

    match data:
        case None:
            return Null()
        case dict():
            return MapValue(tuple((str(key), to_structured(value, _ancestors)) for key, value in data.items()))
        case list() | tuple():
            return ListValue(tuple(to_structured(item, _ancestors) for item in data))
        case set() | frozenset():
            return ListValue(tuple(Scalar(str(item)) for item in sorted(data, key=str)))
        case bool() | int() | float() | str():
            return Scalar(data)
        case bytes():
            # !!binary values stay lossless as their base64 text
            return Scalar(base64.b64encode(data).decode("ascii"))
        case _:
            # Timestamps and other tagged scalars
            return Scalar(str(data))


def to_plain(value: StructuredValue) -> Any:
    """Convert a structured value back into plain Python data."""
    match value:
        case Scalar(value=scalar):
            return scalar
        case ListValue(items=items):
            return [to_plain(item) for item in items]
        case MapValue(entries=entries):
            return {key: to_plain(item) for key, item in entries}
        case _:
            return None


def serialize_list(value: ListValue) -> str:
    """Render a list leaf as compact, order-preserving JSON."""
    return json.dumps(to_plain(value), ensure_ascii=False)


def parse_document(plaintext: str, path: Path) -> StructuredValue:
    """Parse decrypted plaintext into a structured document.

    Args:
        plaintext: Decrypted YAML content.
        path: Source file, for error context.

    Returns:
        The parsed document.

    Raises:
        ParseError: If the content is not valid YAML, holds several documents,
            repeats a mapping key, is recursive through an alias or is nested
            too deeply to walk.

    """
    try:
        data = yaml.load(plaintext, Loader=_UniqueKeyLoader)  # noqa: S506 - SafeLoader subclass
        return to_structured(data)
    except yaml.YAMLError as err:
        problem = getattr(err, "problem", None) or type(err).__name__
        mark = getattr(err, "problem_mark", None)
        location = f" (line {mark.line + 1}, column {mark.column + 1})" if mark is not None else ""
        raise ParseError(path, f"Malformed YAML: {problem}{location}") from err
    except RecursiveAliasError as err:
        raise ParseError(path, f"Malformed YAML: {err}") from err
    except RecursionError as err:
        raise ParseError(path, "Malformed YAML: document is nested too deeply") from err


def flatten(value: StructuredValue, prefix: str = "") -> Iterator[tuple[str, str]]:
    """Walk a document depth-first and yield ``(dotted_key, text)`` leaves.

    Null leaves are skipped entirely; they represent disabled variables.

    Args:
        value: Node to walk.
        prefix: Dotted path of the node.

    Yields:
        Leaf key and its textual value, in document order.

    """
    match value:
        case MapValue(entries=entries):
            for key, child in entries:
                yield from flatten(child, f"{prefix}.{key}" if prefix else key)
        case ListValue():
            yield prefix, serialize_list(value)
        case Scalar():
            yield prefix, value.text
        case Null():
            return


def extract(plaintext: str, source: SecretFile) -> list[ExtractedSecret]:
    """Extract every non-null leaf of a decrypted vault file.

    Args:
        plaintext: Decrypted file content.
        source: The vault file the content came from.

    Returns:
        Extracted secrets in document order.

    Raises:
        ParseError: If the content cannot be parsed, is not a mapping at the
            top level, or flattens two leaves onto the same dotted key.

    """
    document = parse_document(plaintext, source.path)
    if not isinstance(document, MapValue):
        kind = type(document).__name__
        raise ParseError(source.path, f"Expected a YAML mapping at the top level, got {kind}")

    try:
        leaves = list(flatten(document))
    except RecursionError as err:
        raise ParseError(source.path, "Malformed YAML: document is nested too deeply") from err

    secrets: list[ExtractedSecret] = []
    seen: set[str] = set()
    for key, text in leaves:
        if key in seen:
            raise ParseError(source.path, f"Duplicate flattened key '{key}'")
        seen.add(key)
        secrets.append(ExtractedSecret(key=key, value=text, source=source))
    return secrets
