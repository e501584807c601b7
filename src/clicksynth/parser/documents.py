"""Helpers for text and JSON replay documents."""

from __future__ import annotations

import json
from typing import Any

import jsonschema

from ..schema import validate_document
from .binary import decode_text
from .errors import InvalidPayloadError


def load_json(data: bytes, format_name: str, schema_name: str | None = None) -> Any:
    """Parse a JSON replay and optionally validate it against a bundled schema.

    Raises:
        InvalidPayloadError: On invalid UTF-8, invalid JSON, or a schema
            violation (the message names the offending path).
    """
    text = decode_text(data, format_name)
    try:
        document = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidPayloadError(format_name, f"invalid JSON: {e}") from e

    if schema_name is not None:
        check_schema(document, format_name, schema_name)
    return document


def check_schema(document: Any, format_name: str, schema_name: str) -> None:
    try:
        validate_document(document, schema_name)
    except jsonschema.ValidationError as e:
        raise InvalidPayloadError(format_name, str(e.message)) from e


def text_lines(data: bytes, format_name: str) -> list[str]:
    """Decode a text replay into stripped lines, dropping blank ones."""
    text = decode_text(data, format_name)
    return [line.strip() for line in text.splitlines() if line.strip()]


def parse_number(
    token: str, format_name: str, kind: type = int, line: int | None = None
):
    """Parse an int/float token, raising InvalidPayloadError on failure."""
    try:
        return kind(token)
    except ValueError as e:
        where = f" on line {line}" if line is not None else ""
        raise InvalidPayloadError(
            format_name, f"expected {kind.__name__}{where}, got {token!r}"
        ) from e
