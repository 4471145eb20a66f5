"""
Schema module.

Converts JSON Schema dicts and Pydantic models into the immutable
GenerationSchema tree consumed by the structural walker.

Components:
    - types: GenerationSchema and its node dataclasses
    - parser: JSON Schema -> GenerationSchema
    - pydantic_adapter: Pydantic model -> JSON Schema

Example:
    ```python
    from guided_json.schema import parse_schema

    schema = parse_schema({"type": "array", "items": {"type": "integer"}, "minItems": 2})
    schema.root.element_count()  # 2
    ```
"""

from guided_json.schema.parser import parse_schema, validate_schema
from guided_json.schema.pydantic_adapter import is_pydantic_model, pydantic_to_schema
from guided_json.schema.types import (
    AnyOfNode,
    ArrayNode,
    BooleanNode,
    GenerationSchema,
    NullNode,
    NumberNode,
    ObjectNode,
    RefNode,
    SchemaNode,
    StringNode,
)

__all__ = [
    "parse_schema",
    "validate_schema",
    "is_pydantic_model",
    "pydantic_to_schema",
    "GenerationSchema",
    "SchemaNode",
    "StringNode",
    "NumberNode",
    "BooleanNode",
    "NullNode",
    "ArrayNode",
    "ObjectNode",
    "AnyOfNode",
    "RefNode",
]
