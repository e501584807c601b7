"""JSON Schema validation for JSON replay payloads and render configs."""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

import jsonschema
from jsonschema import Draft7Validator

SCHEMA_DIR = Path(__file__).parent / "schemas"


def _load_schema(name: str) -> dict[str, Any]:
    """Load a bundled JSON schema by name.

    Args:
        name: Schema name without the ``.schema.json`` suffix.

    Returns:
        The parsed JSON schema dictionary.

    Raises:
        FileNotFoundError: If schema file is missing.
        json.JSONDecodeError: If schema file is invalid JSON.
    """
    schema_path = SCHEMA_DIR / f"{name}.schema.json"

    if not schema_path.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_path}")

    with open(schema_path, encoding="utf-8") as f:
        return json.load(f)


@lru_cache(maxsize=None)
def _create_validator(name: str) -> Draft7Validator:
    """Create (and cache) a Draft-07 validator for a bundled schema."""
    return Draft7Validator(_load_schema(name))


def _format_validation_error(error: jsonschema.ValidationError) -> str:
    """Format a validation error into a clear, actionable message.

    Args:
        error: The validation error from jsonschema.

    Returns:
        Formatted error message with path and context.
    """
    path_str = ""
    if error.absolute_path:
        path_parts = []
        for part in error.absolute_path:
            if isinstance(part, int):
                path_parts.append(f"[{part}]")
            elif path_parts:
                path_parts.append(f".{part}")
            else:
                path_parts.append(str(part))
        path_str = f" at path '{''.join(path_parts)}'"

    if error.validator == "required":
        missing_props = error.message.split("'")[1::2]
        return f"Missing required field(s): {', '.join(missing_props)}{path_str}"

    elif error.validator == "enum":
        allowed_values = list(error.validator_value)
        return (
            f"Invalid value{path_str}. Allowed values: {allowed_values}. "
            f"Got: {error.instance}"
        )

    elif error.validator == "type":
        expected_type = error.validator_value
        actual_type = type(error.instance).__name__
        return (
            f"Invalid type{path_str}. Expected {expected_type}, "
            f"got {actual_type}: {error.instance}"
        )

    elif error.validator in ("minimum", "maximum", "exclusiveMinimum"):
        limit = error.validator_value
        op = {"minimum": ">=", "maximum": "<=", "exclusiveMinimum": ">"}[
            error.validator
        ]
        return f"Value{path_str} must be {op} {limit}. Got: {error.instance}"

    elif error.validator == "additionalProperties":
        return f"Additional properties not allowed{path_str}: {error.message}"

    else:
        return f"{error.message}{path_str}"


def validate_document(obj: Any, schema_name: str) -> None:
    """Validate a decoded document against a bundled schema.

    Args:
        obj: The decoded JSON/TOML/MessagePack document.
        schema_name: Bundled schema name (e.g. ``"tasbot"``).

    Raises:
        jsonschema.ValidationError: If the document is invalid. The message
            names the offending path and the expected vs actual values.
    """
    validator = _create_validator(schema_name)

    # best_match surfaces the most relevant error for anyOf/oneOf schemas
    error = jsonschema.exceptions.best_match(validator.iter_errors(obj))
    if error is not None:
        raise jsonschema.ValidationError(_format_validation_error(error)) from error


def list_schemas() -> list[str]:
    """Names of the bundled schemas."""
    return sorted(
        p.name.removesuffix(".schema.json") for p in SCHEMA_DIR.glob("*.schema.json")
    )
