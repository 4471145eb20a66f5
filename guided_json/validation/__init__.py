"""
Validation layer module.

Post-generation validation of decoder output against JSON Schema, with
per-error paths, expected values and actual values.

Example:
    ```python
    from guided_json.validation import validate

    result = validate('{"age": "not a number"}', {
        "type": "object", "properties": {"age": {"type": "integer"}}
    })
    for error in result.errors:
        print(f"  - {error.path}: {error.message}")
    ```
"""

from guided_json.validation.validator import (
    ValidationError,
    ValidationResult,
    format_validation_errors,
    quick_validate,
    validate,
)

__all__ = [
    "validate",
    "quick_validate",
    "ValidationResult",
    "ValidationError",
    "format_validation_errors",
]
