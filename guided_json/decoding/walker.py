"""
Structural walker - depth-first generation of JSON from a GenerationSchema.

The walker is the entry point of a constrained-decoding run. It descends the
schema tree, emits the structural punctuation itself (through the
LiteralEmitter) and hands every leaf to the matching generator:

    StringNode   '"' + (LiteralChoiceMatcher | FreeStringGenerator) + '"'
    NumberNode   NumberGenerator
    BooleanNode  LiteralChoiceMatcher over ["true", "false"]
    NullNode     'null'
    ArrayNode    '[' item (',' item)* ']'  with a fixed element count
    ObjectNode   '{' "key":value (',' "key":value)* '}'  keys sorted
    AnyOfNode    first alternative
    RefNode      resolved definition (depth-guarded)

Because every token goes through the shared DecodingContext, the returned
text is exactly the concatenation of what was decoded, and a run either
returns complete JSON or raises.

Example:
    ```python
    from guided_json.decoding import (
        DecodingContext, StructuralWalker, TokenBudget, classify_vocabulary
    )
    from guided_json.schema import parse_schema

    schema = parse_schema({
        "type": "object",
        "properties": {"name": {"type": "string"}, "active": {"type": "boolean"}},
    })
    context = DecodingContext(backend, TokenBudget(50), classify_vocabulary(backend))
    output = StructuralWalker(context, schema).generate()
    # '{"active":false,"name":"x"}'
    ```
"""

import json
import logging
from typing import List, Optional

from guided_json.decoding.context import DecodingContext
from guided_json.decoding.emitters import FreeStringGenerator, LiteralEmitter, NumberGenerator
from guided_json.decoding.literal_choice import LiteralChoiceMatcher
from guided_json.errors import InvalidTokenization, ReferenceDepthExceeded
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

logger = logging.getLogger(__name__)


def json_string_body(text: str) -> str:
    """JSON-escape ``text`` without the surrounding quotes."""
    return json.dumps(text, ensure_ascii=False)[1:-1]


class StructuralWalker:
    """
    Generate JSON text for a schema, one constrained token at a time.

    Attributes:
        context: DecodingContext shared with every leaf generator
        schema: GenerationSchema being generated
    """

    def __init__(self, context: DecodingContext, schema: GenerationSchema):
        self.context = context
        self.schema = schema

        self.emitter = LiteralEmitter(context)
        self.strings = FreeStringGenerator(context)
        self.numbers = NumberGenerator(context)
        self.literals = LiteralChoiceMatcher(context)

        self._ref_depth = 0

    def generate(self, node: Optional[SchemaNode] = None) -> str:
        """
        Generate JSON text for ``node`` (the schema root by default).

        Returns:
            str: Complete JSON text

        Raises:
            TokenBudgetExceeded: If the budget runs out before completion
            InvalidTokenization: On unresolvable refs, empty anyOf or
                untokenizable literals
            ReferenceDepthExceeded: If refs nest deeper than max_ref_depth
        """
        if node is None:
            node = self.schema.root

        self.context.budget.require()

        if isinstance(node, StringNode):
            return self._generate_string(node)
        if isinstance(node, NumberNode):
            return self.numbers.generate(node)
        if isinstance(node, BooleanNode):
            return self.literals.choose(BooleanNode.LITERALS)
        if isinstance(node, NullNode):
            return self.emitter.emit("null")
        if isinstance(node, ArrayNode):
            return self._generate_array(node)
        if isinstance(node, ObjectNode):
            return self._generate_object(node)
        if isinstance(node, AnyOfNode):
            if not node.alternatives:
                raise InvalidTokenization("anyOf has no alternatives")
            return self.generate(node.alternatives[0])
        if isinstance(node, RefNode):
            return self._generate_ref(node)

        raise TypeError(f"Unsupported schema node: {type(node).__name__}")

    def _generate_string(self, node: StringNode) -> str:
        parts = [self.emitter.emit('"')]
        if node.enum_choices:
            parts.append(self.literals.choose([json_string_body(c) for c in node.enum_choices]))
        else:
            budget = self.context.budget
            cap = self.context.config.string_token_cap(budget.remaining, budget.total)
            parts.append(self.strings.generate(cap))
        parts.append(self.emitter.emit('"'))
        return "".join(parts)

    def _generate_array(self, node: ArrayNode) -> str:
        count = node.element_count(self.context.config.default_array_count)
        parts = [self.emitter.emit("[")]
        for index in range(count):
            if index > 0:
                parts.append(self.emitter.emit(","))
            parts.append(self.generate(node.items))
        parts.append(self.emitter.emit("]"))
        return "".join(parts)

    def _generate_object(self, node: ObjectNode) -> str:
        parts: List[str] = [self.emitter.emit("{")]
        for index, key in enumerate(node.sorted_keys()):
            if index > 0:
                parts.append(self.emitter.emit(","))
            parts.append(self.emitter.emit(f'"{json_string_body(key)}":'))

            child = node.properties.get(key)
            if child is None:
                logger.debug(f"Property {key!r} has no definition; emitting null")
                parts.append(self.emitter.emit("null"))
            else:
                parts.append(self.generate(child))
        parts.append(self.emitter.emit("}"))
        return "".join(parts)

    def _generate_ref(self, node: RefNode) -> str:
        max_depth = self.context.config.max_ref_depth
        if self._ref_depth >= max_depth:
            raise ReferenceDepthExceeded(node.name, max_depth)

        resolved = self.schema.resolve(node.name)
        self._ref_depth += 1
        try:
            return self.generate(resolved)
        finally:
            self._ref_depth -= 1


ConstrainedJSONGenerator = StructuralWalker
