"""
Unit tests for the structural walker.
"""

import json
import threading

import pytest

from guided_json.config import DecoderConfig
from guided_json.decoding import ConstrainedJSONGenerator, StructuralWalker
from guided_json.errors import (
    GenerationCancelled,
    InvalidTokenization,
    MissingReference,
    ReferenceDepthExceeded,
    TokenBudgetExceeded,
)
from guided_json.schema import parse_schema
from guided_json.schema.types import (
    AnyOfNode,
    ArrayNode,
    BooleanNode,
    GenerationSchema,
    NullNode,
    NumberNode,
    ObjectNode,
    RefNode,
    StringNode,
)


def run(context, root, defs=None):
    return StructuralWalker(context, GenerationSchema(root=root, defs=defs or {})).generate()


class TestWalkerScenario:
    """The reference object scenario."""

    def test_name_and_active(self, make_context):
        """Sorted keys, greedy 'false', and the scripted string "x"."""
        context = make_context(budget=50, script=["x"])
        root = ObjectNode(properties={"name": StringNode(), "active": BooleanNode()})

        output = run(context, root)

        assert output == '{"active":false,"name":"x"}'
        assert json.loads(output) == {"active": False, "name": "x"}

    def test_reproducible(self, make_context):
        root = ObjectNode(properties={"name": StringNode(), "active": BooleanNode()})

        first = run(make_context(script=["x"]), root)
        second = run(make_context(script=["x"]), root)

        assert first == second


class TestWalkerStructure:
    """Test output structure per node kind."""

    def test_key_order_is_sorted(self, make_context):
        context = make_context(budget=200)
        root = ObjectNode(properties={
            "score": NumberNode(), "name": StringNode(), "age": NumberNode(integer_only=True),
        })

        output = run(context, root)

        assert list(json.loads(output)) == ["age", "name", "score"]

    def test_empty_object(self, make_context):
        assert run(make_context(), ObjectNode()) == "{}"

    def test_missing_property_definition_emits_null(self, make_context):
        root = ObjectNode(properties={"x": None})

        assert run(make_context(), root) == '{"x":null}'

    def test_null_node(self, make_context):
        assert run(make_context(), NullNode()) == "null"

    @pytest.mark.parametrize("node,expected_count", [
        (ArrayNode(items=BooleanNode(), min_items=2), 2),
        (ArrayNode(items=BooleanNode(), max_items=3), 3),
        (ArrayNode(items=BooleanNode(), min_items=1, max_items=5), 1),
        (ArrayNode(items=BooleanNode()), 4),
        (ArrayNode(items=BooleanNode(), max_items=0), 0),
    ])
    def test_array_element_count(self, make_context, node, expected_count):
        output = run(make_context(budget=100), node)

        assert json.loads(output) == [False] * expected_count

    def test_configured_default_array_count(self, make_context):
        context = make_context(config=DecoderConfig(default_array_count=2))

        assert run(context, ArrayNode(items=NullNode())) == "[null,null]"

    def test_enum_string(self, make_context):
        context = make_context(script=["gre", "en"])

        assert run(context, StringNode(enum_choices=("red", "green"))) == '"green"'

    def test_enum_values_are_escaped(self, make_context):
        """Enum values containing quotes are emitted JSON-escaped."""
        output = run(make_context(), StringNode(enum_choices=('a"b',)))

        assert json.loads(output) == 'a"b'

    def test_number_has_no_quotes(self, make_context):
        context = make_context(script=["4", "2"])

        assert run(context, NumberNode(integer_only=True)) == "42"

    def test_anyof_uses_first_alternative(self, make_context):
        root = AnyOfNode(alternatives=(NullNode(), BooleanNode()))

        assert run(make_context(), root) == "null"

    def test_empty_anyof(self, make_context):
        with pytest.raises(InvalidTokenization):
            run(make_context(), AnyOfNode(alternatives=()))

    def test_ref_resolution(self, make_context):
        root = ObjectNode(properties={"role": RefNode("Role")})
        defs = {"Role": StringNode(enum_choices=("red",))}

        assert run(make_context(), root, defs) == '{"role":"red"}'

    def test_missing_ref(self, make_context):
        with pytest.raises(MissingReference):
            run(make_context(), RefNode("Nope"))

    def test_recursive_ref_depth_guard(self, make_context):
        """A self-referential schema stops at max_ref_depth."""
        context = make_context(budget=10000, config=DecoderConfig(max_ref_depth=3))
        defs = {"Node": ObjectNode(properties={"next": RefNode("Node")})}

        with pytest.raises(ReferenceDepthExceeded) as exc_info:
            run(context, RefNode("Node"), defs)
        assert exc_info.value.max_depth == 3

    def test_nested_refs_within_depth(self, make_context):
        context = make_context(config=DecoderConfig(max_ref_depth=2))
        defs = {"A": RefNode("B"), "B": NullNode()}

        assert run(context, RefNode("A"), defs) == "null"

    def test_alias(self):
        assert ConstrainedJSONGenerator is StructuralWalker


class TestWalkerBudget:
    """Test budget behaviour of whole runs."""

    def test_budget_conservation(self, make_context):
        """Tokens charged equal tokens decoded; output equals decoded text."""
        context = make_context(budget=300, script=list("hi"))
        schema = parse_schema({
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "tags": {"type": "array", "items": {"type": "string", "enum": ["red", "green"]}, "minItems": 2},
                "score": {"type": "number"},
                "active": {"type": "boolean"},
            },
        })

        output = StructuralWalker(context, schema).generate()

        assert context.budget.used == len(context.backend.decoded)
        assert context.budget.used == len(context.decoded_tokens)
        assert output == context.backend.decoded_text
        json.loads(output)

    def test_exhaustion_fails_instead_of_truncating(self, make_context):
        context = make_context(budget=10, script=list("hello") * 5)
        root = ArrayNode(items=StringNode(), min_items=5)

        with pytest.raises(TokenBudgetExceeded):
            run(context, root)
        assert context.budget.remaining == 0

    def test_zero_budget(self, make_context):
        with pytest.raises(TokenBudgetExceeded):
            run(make_context(budget=0), NullNode())

    def test_exact_budget_succeeds(self, make_context):
        """'{"x":null}' needs '{', '"', 'x', '"', ':', 'null', '}'."""
        context = make_context(budget=7)

        assert run(context, ObjectNode(properties={"x": None})) == '{"x":null}'
        assert context.budget.remaining == 0


class TestWalkerCancellation:
    """Test cooperative cancellation."""

    def test_cancelled_before_start(self, backend):
        from guided_json.decoding import DecodingContext, TokenBudget, classify_vocabulary

        event = threading.Event()
        event.set()
        context = DecodingContext(backend, TokenBudget(50), classify_vocabulary(backend), cancel_event=event)

        with pytest.raises(GenerationCancelled):
            run(context, ObjectNode(properties={"name": StringNode()}))
        assert backend.decoded == []

    def test_cancelled_mid_run(self, backend):
        from guided_json.decoding import DecodingContext, TokenBudget, classify_vocabulary

        event = threading.Event()
        original_decode = backend.decode

        def decode_then_cancel(token):
            original_decode(token)
            if len(backend.decoded) == 3:
                event.set()

        backend.decode = decode_then_cancel
        context = DecodingContext(backend, TokenBudget(50), classify_vocabulary(backend), cancel_event=event)

        with pytest.raises(GenerationCancelled):
            run(context, ArrayNode(items=BooleanNode(), min_items=5))
        assert len(backend.decoded) == 3
