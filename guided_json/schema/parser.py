"""
JSON Schema parser - converts JSON Schema dicts to a GenerationSchema tree.

This module is the main entry point for turning user-provided schemas into
the node tree the structural walker understands. It handles:
    - The node kinds the decoder supports (string, number, integer, boolean,
      null, array, object, anyOf/oneOf, $ref)
    - Named definitions under ``$defs`` or ``definitions``
    - Type lists such as ``["string", "null"]`` (parsed as anyOf)
    - Pydantic models (converted to JSON Schema first)

Anything outside that subset is rejected with ``SchemaError`` rather than
silently ignored.

Usage:
    ```python
    from guided_json.schema import parse_schema

    schema = {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "role": {"$ref": "#/$defs/Role"}
        },
        "$defs": {"Role": {"type": "string", "enum": ["admin", "user"]}}
    }

    generation_schema = parse_schema(schema)
    generation_schema.root.sorted_keys()  # ['name', 'role']
    ```
"""

import math
from typing import Any, Dict, List, Optional, Tuple, Union

from guided_json.errors import SchemaError
from guided_json.schema.types import (
    AnyOfNode,
    ArrayNode,
    BooleanNode,
    GenerationSchema,
    NullNode,
    Number,
    NumberNode,
    ObjectNode,
    RefNode,
    SchemaNode,
    StringNode,
)

UNSUPPORTED_KEYWORDS = ["allOf", "not", "if", "then", "else", "patternProperties"]
VALID_TYPES = ["object", "array", "string", "integer", "number", "boolean", "null"]
REF_PREFIXES = ("#/$defs/", "#/definitions/")


def parse_schema(schema: Union[Dict[str, Any], type, GenerationSchema]) -> GenerationSchema:
    """
    Parse a JSON Schema or Pydantic model into a GenerationSchema.

    Args:
        schema: JSON Schema dict, Pydantic model class, or an existing
            GenerationSchema (returned unchanged)

    Returns:
        GenerationSchema: Root node plus parsed definitions

    Raises:
        SchemaError: If the schema uses unsupported features or is malformed

    Example:
        ```python
        # JSON Schema
        parse_schema({"type": "boolean"}).root  # BooleanNode()

        # Pydantic model
        from pydantic import BaseModel
        class User(BaseModel):
            name: str
            age: int

        parse_schema(User).root.sorted_keys()  # ['age', 'name']
        ```
    """
    if isinstance(schema, GenerationSchema):
        return schema

    if isinstance(schema, type):
        from guided_json.schema.pydantic_adapter import is_pydantic_model, pydantic_to_schema

        if not is_pydantic_model(schema):
            raise SchemaError(f"{schema.__name__} is a class but not a Pydantic model")
        schema = pydantic_to_schema(schema)

    if not isinstance(schema, dict):
        raise SchemaError(f"Schema must be a dict, got {type(schema).__name__}")

    defs = {}
    for key in ("definitions", "$defs"):
        for name, def_schema in schema.get(key, {}).items():
            node = _parse_node(def_schema)
            if node is None:
                raise SchemaError(f"Definition {name!r} must describe a concrete value")
            defs[name] = node

    root = _parse_node(schema)
    if root is None:
        raise SchemaError("The root schema must describe a concrete value")

    return GenerationSchema(root=root, defs=defs)


def _parse_node(schema: Any) -> Optional[SchemaNode]:
    """
    Parse one JSON Schema fragment.

    Returns:
        SchemaNode, or None for the "anything" schemas ``{}`` and ``True``
    """
    if schema is True or schema == {}:
        return None
    if not isinstance(schema, dict):
        raise SchemaError(f"Expected a schema object, got {schema!r}")

    for keyword in UNSUPPORTED_KEYWORDS:
        if keyword in schema:
            raise SchemaError(f"Keyword '{keyword}' is not supported")

    if "$ref" in schema:
        return RefNode(name=_ref_name(schema["$ref"]))

    if "anyOf" in schema:
        return _parse_union(schema["anyOf"])
    if "oneOf" in schema:
        return _parse_union(schema["oneOf"])

    schema_type = schema.get("type")

    if schema_type is None:
        if "properties" in schema:
            schema_type = "object"
        elif "items" in schema:
            schema_type = "array"
        elif "enum" in schema or "const" in schema:
            schema_type = "string"
        else:
            raise SchemaError(f"Cannot determine the type of schema {schema!r}")

    if isinstance(schema_type, list):
        rest = {k: v for k, v in schema.items() if k != "type"}
        return _parse_union([{**rest, "type": t} for t in schema_type])

    if schema_type == "object":
        return _parse_object(schema)
    elif schema_type == "array":
        return _parse_array(schema)
    elif schema_type == "string":
        return _parse_string(schema)
    elif schema_type == "integer":
        return _parse_number(schema, integer_only=True)
    elif schema_type == "number":
        return _parse_number(schema, integer_only=False)
    elif schema_type == "boolean":
        _reject_enum(schema, "boolean")
        return BooleanNode()
    elif schema_type == "null":
        return NullNode()
    else:
        raise SchemaError(f"Unsupported schema type: {schema_type}")


def _ref_name(ref: str) -> str:
    for prefix in REF_PREFIXES:
        if ref.startswith(prefix) and len(ref) > len(prefix):
            return ref[len(prefix):]
    raise SchemaError(f"Unsupported $ref {ref!r}; use '#/$defs/<name>'")


def _reject_enum(schema: Dict[str, Any], type_name: str) -> None:
    if "enum" in schema or "const" in schema:
        raise SchemaError(f"enum/const is only supported for strings, not {type_name}")


def _parse_object(schema: Dict[str, Any]) -> ObjectNode:
    properties = {
        name: _parse_node(prop_schema)
        for name, prop_schema in schema.get("properties", {}).items()
    }
    return ObjectNode(properties=properties, required=frozenset(schema.get("required", [])))


def _parse_array(schema: Dict[str, Any]) -> ArrayNode:
    items_schema = schema.get("items")
    if items_schema is None:
        raise SchemaError("Array schemas must declare 'items'")
    items = _parse_node(items_schema)
    if items is None:
        raise SchemaError("Array 'items' must be a concrete schema")

    return ArrayNode(
        items=items,
        min_items=schema.get("minItems"),
        max_items=schema.get("maxItems"),
    )


def _parse_string(schema: Dict[str, Any]) -> StringNode:
    enum_values = schema.get("enum")
    if "const" in schema:
        enum_values = [schema["const"]]

    if enum_values is None:
        return StringNode()

    if not enum_values or not all(isinstance(v, str) for v in enum_values):
        raise SchemaError(f"String enum must be a non-empty list of strings: {enum_values!r}")

    # Keep declaration order, drop duplicates
    return StringNode(enum_choices=tuple(dict.fromkeys(enum_values)))


def _parse_number(schema: Dict[str, Any], integer_only: bool) -> NumberNode:
    _reject_enum(schema, "integer" if integer_only else "number")

    minimum, exclusive_minimum = _lower_bound(schema)
    maximum, exclusive_maximum = _upper_bound(schema)

    if integer_only:
        if minimum is not None:
            minimum = math.floor(minimum) + 1 if exclusive_minimum else math.ceil(minimum)
        if maximum is not None:
            maximum = math.ceil(maximum) - 1 if exclusive_maximum else math.floor(maximum)
        exclusive_minimum = exclusive_maximum = False

    return NumberNode(
        integer_only=integer_only,
        minimum=minimum,
        maximum=maximum,
        exclusive_minimum=exclusive_minimum,
        exclusive_maximum=exclusive_maximum,
    )


def _bound_value(schema: Dict[str, Any], keyword: str) -> Optional[Number]:
    value = schema.get(keyword)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SchemaError(f"{keyword} must be a number, got {value!r}")
    return value


def _lower_bound(schema: Dict[str, Any]) -> Tuple[Optional[Number], bool]:
    """
    Tightest lower bound and whether it is exclusive.

    Draft-4 schemas spell the exclusive flag as ``"exclusiveMinimum": true``
    next to ``minimum``; later drafts give ``exclusiveMinimum`` its own value.
    """
    minimum = _bound_value(schema, "minimum")
    exclusive = schema.get("exclusiveMinimum")

    if isinstance(exclusive, bool):
        if exclusive and minimum is None:
            raise SchemaError("exclusiveMinimum: true requires minimum")
        return minimum, exclusive

    exclusive = _bound_value(schema, "exclusiveMinimum")
    if exclusive is not None and (minimum is None or exclusive >= minimum):
        return exclusive, True
    return minimum, False


def _upper_bound(schema: Dict[str, Any]) -> Tuple[Optional[Number], bool]:
    """Mirror of ``_lower_bound`` for ``maximum`` / ``exclusiveMaximum``."""
    maximum = _bound_value(schema, "maximum")
    exclusive = schema.get("exclusiveMaximum")

    if isinstance(exclusive, bool):
        if exclusive and maximum is None:
            raise SchemaError("exclusiveMaximum: true requires maximum")
        return maximum, exclusive

    exclusive = _bound_value(schema, "exclusiveMaximum")
    if exclusive is not None and (maximum is None or exclusive <= maximum):
        return exclusive, True
    return maximum, False


def _parse_union(schemas: List[Any]) -> AnyOfNode:
    if not schemas:
        raise SchemaError("anyOf/oneOf must list at least one alternative")

    alternatives = []
    for sub_schema in schemas:
        node = _parse_node(sub_schema)
        alternatives.append(node if node is not None else NullNode())
    return AnyOfNode(alternatives=tuple(alternatives))


def validate_schema(schema: Dict[str, Any]) -> None:
    """
    Check that a JSON Schema only uses features the decoder supports.

    Args:
        schema: JSON Schema dictionary

    Raises:
        SchemaError: If schema is invalid or uses unsupported features

    Example:
        ```python
        validate_schema({"type": "unknown"})  # raises SchemaError
        ```
    """
    for keyword in UNSUPPORTED_KEYWORDS:
        if keyword in schema:
            raise SchemaError(f"Keyword '{keyword}' is not supported")

    schema_type = schema.get("type")
    if schema_type is not None:
        types = schema_type if isinstance(schema_type, list) else [schema_type]
        if not isinstance(schema_type, (str, list)):
            raise SchemaError(f"Type must be string or array, got: {type(schema_type)}")
        for t in types:
            if t not in VALID_TYPES:
                raise SchemaError(f"Invalid type: {t}")

    if "$ref" in schema:
        _ref_name(schema["$ref"])

    for key in ("properties", "definitions", "$defs"):
        for sub_schema in schema.get(key, {}).values():
            if isinstance(sub_schema, dict):
                validate_schema(sub_schema)

    if isinstance(schema.get("items"), dict):
        validate_schema(schema["items"])

    for key in ("anyOf", "oneOf"):
        if key in schema:
            if not schema[key]:
                raise SchemaError(f"{key} must list at least one alternative")
            for sub_schema in schema[key]:
                if isinstance(sub_schema, dict):
                    validate_schema(sub_schema)
