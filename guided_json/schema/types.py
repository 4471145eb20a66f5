"""
GenerationSchema - the immutable schema tree that generated output must satisfy.

The decoder understands a deliberately small AST instead of full JSON Schema.
Every node is a frozen dataclass; a schema is built once (usually by
``parse_schema``) and can be shared by any number of generation runs.

Type Hierarchy:
    SchemaNode (abstract)
    ├── StringNode:  any JSON string, or one of ``enum_choices``
    ├── NumberNode:  integer or decimal number, optionally clamped
    ├── BooleanNode: the literals true / false
    ├── NullNode:    the literal null
    ├── ArrayNode:   fixed element count chosen from minItems / maxItems
    ├── ObjectNode:  properties emitted in sorted key order
    ├── AnyOfNode:   resolves to its first alternative
    └── RefNode:     named reference into ``GenerationSchema.defs``

Every node can render itself back to JSON Schema (``to_json_schema``), which
is what post-generation validation runs against.

Example:
    ```python
    from guided_json.schema.types import (
        GenerationSchema, ObjectNode, StringNode, BooleanNode
    )

    schema = GenerationSchema(
        root=ObjectNode(properties={
            "name": StringNode(),
            "active": BooleanNode(),
        })
    )
    schema.root.sorted_keys()  # ['active', 'name']
    ```
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from guided_json.errors import MissingReference, SchemaError

Number = Union[int, float]


class SchemaNode(ABC):
    """Abstract base class for all schema nodes."""

    @abstractmethod
    def to_json_schema(self) -> Dict[str, Any]:
        """
        Render this node as a JSON Schema dictionary.

        Returns:
            Dict: JSON Schema fragment equivalent to this node
        """
        pass


@dataclass(frozen=True)
class StringNode(SchemaNode):
    """
    A JSON string.

    Attributes:
        enum_choices: If set, the output must be exactly one of these values
            (in declaration order). ``None`` means any valid string content.
    """

    enum_choices: Optional[Tuple[str, ...]] = None

    def __post_init__(self):
        if self.enum_choices is not None:
            choices = tuple(self.enum_choices)
            if not all(isinstance(c, str) for c in choices):
                raise SchemaError("String enum choices must all be strings")
            object.__setattr__(self, "enum_choices", choices)

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": "string"}
        if self.enum_choices:
            schema["enum"] = list(self.enum_choices)
        return schema


@dataclass(frozen=True)
class NumberNode(SchemaNode):
    """
    A JSON number.

    Attributes:
        integer_only: Emit an integer (no decimal point)
        minimum: Lower bound applied by clamping (None = unbounded)
        maximum: Upper bound applied by clamping (None = unbounded)
        exclusive_minimum: ``minimum`` itself is not allowed
        exclusive_maximum: ``maximum`` itself is not allowed

    Integer nodes never carry exclusive flags; the parser turns exclusive
    integer bounds into the nearest inclusive ones.
    """

    integer_only: bool = False
    minimum: Optional[Number] = None
    maximum: Optional[Number] = None
    exclusive_minimum: bool = False
    exclusive_maximum: bool = False

    def __post_init__(self):
        if self.exclusive_minimum and self.minimum is None:
            raise SchemaError("exclusive_minimum needs a minimum")
        if self.exclusive_maximum and self.maximum is None:
            raise SchemaError("exclusive_maximum needs a maximum")
        if self.integer_only and (self.exclusive_minimum or self.exclusive_maximum):
            raise SchemaError("Integer bounds must be inclusive")
        if self.minimum is None or self.maximum is None:
            return
        if self.minimum > self.maximum or (
            self.minimum == self.maximum and (self.exclusive_minimum or self.exclusive_maximum)
        ):
            raise SchemaError(
                f"Number range from {self.minimum} to {self.maximum} is empty"
            )

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": "integer" if self.integer_only else "number"}
        if self.minimum is not None:
            schema["exclusiveMinimum" if self.exclusive_minimum else "minimum"] = self.minimum
        if self.maximum is not None:
            schema["exclusiveMaximum" if self.exclusive_maximum else "maximum"] = self.maximum
        return schema


@dataclass(frozen=True)
class BooleanNode(SchemaNode):
    """A JSON boolean; generated by choosing between "true" and "false"."""

    LITERALS = ("true", "false")

    def to_json_schema(self) -> Dict[str, Any]:
        return {"type": "boolean"}


@dataclass(frozen=True)
class NullNode(SchemaNode):
    """The JSON literal null."""

    def to_json_schema(self) -> Dict[str, Any]:
        return {"type": "null"}


@dataclass(frozen=True)
class ArrayNode(SchemaNode):
    """
    A JSON array whose elements all match ``items``.

    The element count is chosen deterministically: ``min_items`` if set,
    otherwise ``max_items``, otherwise the configured default (4).

    Attributes:
        items: Schema for every element
        min_items: Minimum number of items (None = unspecified)
        max_items: Maximum number of items (None = unspecified)
    """

    items: SchemaNode
    min_items: Optional[int] = None
    max_items: Optional[int] = None

    def __post_init__(self):
        for name in ("min_items", "max_items"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise SchemaError(f"{name} must be >= 0, got {value}")
        if (
            self.min_items is not None
            and self.max_items is not None
            and self.min_items > self.max_items
        ):
            raise SchemaError(
                f"min_items {self.min_items} is greater than max_items {self.max_items}"
            )

    def element_count(self, default: int = 4) -> int:
        """Number of elements the walker will emit."""
        if self.min_items is not None:
            return self.min_items
        if self.max_items is not None:
            return self.max_items
        return default

    def to_json_schema(self) -> Dict[str, Any]:
        schema: Dict[str, Any] = {"type": "array", "items": self.items.to_json_schema()}
        if self.min_items is not None:
            schema["minItems"] = self.min_items
        if self.max_items is not None:
            schema["maxItems"] = self.max_items
        return schema


@dataclass(frozen=True)
class ObjectNode(SchemaNode):
    """
    A JSON object.

    Keys are always emitted in sorted order, whatever order the properties
    were declared in. A property mapped to ``None`` has no usable
    definition and is emitted as ``null``.

    Attributes:
        properties: Mapping from key to node (read-only after construction)
        required: Names of required properties (used for validation only;
            every property is generated)
    """

    properties: Mapping[str, Optional[SchemaNode]] = field(default_factory=dict)
    required: FrozenSet[str] = frozenset()

    def __post_init__(self):
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))
        object.__setattr__(self, "required", frozenset(self.required))

    def sorted_keys(self):
        return sorted(self.properties)

    def to_json_schema(self) -> Dict[str, Any]:
        properties = {}
        for key, node in self.properties.items():
            properties[key] = node.to_json_schema() if node is not None else {}
        schema: Dict[str, Any] = {"type": "object", "properties": properties}
        if self.required:
            schema["required"] = sorted(self.required)
        return schema


@dataclass(frozen=True)
class AnyOfNode(SchemaNode):
    """
    A union of alternatives.

    Generation always takes the first alternative; the other alternatives
    only matter for validation.
    """

    alternatives: Tuple[SchemaNode, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "alternatives", tuple(self.alternatives))

    def to_json_schema(self) -> Dict[str, Any]:
        return {"anyOf": [alt.to_json_schema() for alt in self.alternatives]}


@dataclass(frozen=True)
class RefNode(SchemaNode):
    """A reference to a named definition in ``GenerationSchema.defs``."""

    name: str

    def to_json_schema(self) -> Dict[str, Any]:
        return {"$ref": f"#/$defs/{self.name}"}


@dataclass(frozen=True)
class GenerationSchema:
    """
    Root of a schema tree plus its named definitions.

    Attributes:
        root: Node the generated output must match
        defs: Named nodes that RefNodes resolve against (read-only)
    """

    root: SchemaNode
    defs: Mapping[str, SchemaNode] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "defs", MappingProxyType(dict(self.defs)))

    def resolve(self, name: str) -> SchemaNode:
        """
        Look up a named definition.

        Raises:
            MissingReference: If ``name`` is not defined
        """
        try:
            return self.defs[name]
        except KeyError:
            raise MissingReference(name) from None

    def to_json_schema(self) -> Dict[str, Any]:
        """
        Render the whole schema (root and defs) as a JSON Schema document.

        Example:
            ```python
            schema = GenerationSchema(root=RefNode("User"), defs={"User": ObjectNode()})
            schema.to_json_schema()
            # {'$ref': '#/$defs/User', '$defs': {'User': {'type': 'object', 'properties': {}}}}
            ```
        """
        document = dict(self.root.to_json_schema())
        if self.defs:
            document["$defs"] = {
                name: node.to_json_schema() for name, node in self.defs.items()
            }
        return document
