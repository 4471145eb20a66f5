"""
Post-generation JSON Schema validation.

The decoder guarantees well-formed JSON with the schema's shape, but some
keywords are never enforced token by token (string lengths, patterns,
formats, uniqueness, ``required`` when a property is declared). Validation
reports those against the full JSON Schema.

Usage:
    ```python
    from guided_json.validation import validate

    schema = {"type": "object", "properties": {"age": {"type": "integer"}}}
    result = validate('{"age": 25}', schema)
    for error in result.errors:
        print(f"{error.path}: {error.message}")
    ```
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Union

from jsonschema import Draft202012Validator
from jsonschema.exceptions import relevance
from jsonschema.validators import validator_for

from guided_json.schema.types import GenerationSchema

logger = logging.getLogger(__name__)

SchemaLike = Union[Dict[str, Any], GenerationSchema]


@dataclass
class ValidationError:
    """
    One failed constraint.

    Attributes:
        path: Dotted location in the instance (".address.city", or "root")
        message: jsonschema's message
        schema_path: Dotted location of the failing keyword in the schema
        validator: Keyword that failed ("type", "minLength", "json", ...)
        expected: The keyword's value in the schema
        actual: The offending part of the instance
    """
    path: str
    message: str
    schema_path: str
    validator: str
    expected: Any
    actual: Any


@dataclass
class ValidationResult:
    """
    Outcome of ``validate``.

    Attributes:
        is_valid: No errors were found
        errors: Errors, most relevant first
        raw_output: The text that was validated
        parsed_output: Parsed value when valid, else None
    """
    is_valid: bool
    errors: List[ValidationError]
    raw_output: str
    parsed_output: Optional[Any]


def _dotted(parts: Iterable[Any]) -> str:
    parts = [str(p) for p in parts]
    return "." + ".".join(parts) if parts else "root"


def validate(output: str, schema: SchemaLike) -> ValidationResult:
    """
    Validate JSON text against a schema.

    The JSON Schema draft is taken from ``$schema`` when present, otherwise
    Draft 2020-12.

    Args:
        output: JSON text
        schema: JSON Schema dict or GenerationSchema

    Returns:
        ValidationResult

    Example:
        ```python
        schema = {"type": "object", "required": ["name"]}
        validate('{"name": "Alice"}', schema).is_valid  # True
        validate('{"age": 25}', schema).is_valid        # False
        ```
    """
    if isinstance(schema, GenerationSchema):
        schema = schema.to_json_schema()

    try:
        parsed = json.loads(output)
    except json.JSONDecodeError as e:
        error = ValidationError(
            path="root",
            message=f"Invalid JSON: {e.msg}",
            schema_path="",
            validator="json",
            expected="valid JSON",
            actual=f"parse error at position {e.pos}",
        )
        return ValidationResult(False, [error], output, None)

    validator = validator_for(schema, default=Draft202012Validator)(schema)
    errors = [
        ValidationError(
            path=_dotted(error.absolute_path),
            message=error.message,
            schema_path=_dotted(error.absolute_schema_path),
            validator=str(error.validator),
            expected=error.validator_value,
            actual=error.instance,
        )
        for error in sorted(validator.iter_errors(parsed), key=relevance)
    ]

    if errors:
        logger.debug(f"Output failed validation with {len(errors)} errors")
        return ValidationResult(False, errors, output, None)
    return ValidationResult(True, [], output, parsed)


def format_validation_errors(errors: List[ValidationError]) -> str:
    """
    Render errors as an indented, numbered list.

    Example:
        ```python
        print(format_validation_errors(result.errors))
        # 1 error:
        #   1. At .age: 'x' is not of type 'integer'
        #      expected integer, got 'x'
        ```
    """
    if not errors:
        return "No validation errors"

    lines = [f"{len(errors)} error{'s' if len(errors) > 1 else ''}:"]
    for i, error in enumerate(errors, 1):
        lines.append(f"  {i}. At {error.path}: {error.message}")
        lines.append(f"     expected {error.expected}, got {error.actual!r}")
    return "\n".join(lines)


def quick_validate(output: str, schema: SchemaLike) -> bool:
    return validate(output, schema).is_valid
