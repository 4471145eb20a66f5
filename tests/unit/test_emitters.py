"""
Unit tests for the leaf generators: literals, free strings and numbers.
"""

import math

import pytest

from guided_json.config import DecoderConfig
from guided_json.decoding import FreeStringGenerator, LiteralEmitter, NumberGenerator
from guided_json.errors import InvalidTokenization, TokenBudgetExceeded
from guided_json.schema.types import NumberNode


class TestLiteralEmitter:
    """Test forced literal emission."""

    def test_emit_decodes_every_token(self, make_context):
        context = make_context(budget=10)

        assert LiteralEmitter(context).emit('"name":') == '"name":'
        assert context.backend.decoded == [context.backend.token('"name":')]
        assert context.budget.used == 1

    def test_emit_multi_token_literal(self, make_context):
        context = make_context(budget=10)

        LiteralEmitter(context).emit("null,")

        assert context.backend.decoded_text == "null,"
        assert context.budget.used == 2

    def test_budget_exhausted_mid_literal(self, make_context):
        """Tokens before the failure are charged; the failing one is not decoded."""
        context = make_context(budget=1)

        with pytest.raises(TokenBudgetExceeded):
            LiteralEmitter(context).emit("null,")

        assert context.backend.decoded_text == "null"
        assert context.budget.remaining == 0

    def test_untokenizable_literal(self, make_context):
        context = make_context()

        with pytest.raises(InvalidTokenization):
            LiteralEmitter(context).emit("ÿ")

    def test_empty_literal(self, make_context):
        context = make_context()

        assert LiteralEmitter(context).emit("") == ""
        assert context.budget.used == 0


class TestFreeStringGenerator:
    """Test open-ended string bodies."""

    def test_greedy_string_stops_at_quote(self, make_context):
        """Greedy sampling takes the smallest content token, then the quote."""
        context = make_context()

        assert FreeStringGenerator(context).generate(max_tokens=32) == ","
        assert context.budget.used == 1

    def test_scripted_string(self, make_context):
        context = make_context(script=list("hello"))

        assert FreeStringGenerator(context).generate(max_tokens=32) == "hello"
        assert context.budget.used == 5
        assert context.backend.decoded_text == "hello"

    def test_first_step_excludes_quote(self, make_context):
        """An empty string cannot be closed before any content."""
        context = make_context()
        FreeStringGenerator(context).generate(max_tokens=32)

        vocabulary = context.vocabulary
        first, second = context.backend.sample_calls
        assert vocabulary.quote_token not in first
        assert first == vocabulary.string_content_tokens
        assert vocabulary.quote_token in second

    def test_quote_is_not_decoded(self, make_context):
        context = make_context(script=["a"])
        FreeStringGenerator(context).generate(max_tokens=32)

        assert context.vocabulary.quote_token not in context.backend.decoded

    def test_end_token_terminates(self, make_context):
        context = make_context(script=["a", "<eos>"])

        assert FreeStringGenerator(context).generate(max_tokens=32) == "a"
        assert context.backend.decoded_text == "a"

    def test_cap_limits_length(self, make_context):
        context = make_context(script=list("hello"))

        assert FreeStringGenerator(context).generate(max_tokens=3) == "hel"
        assert context.budget.used == 3

    def test_budget_limits_length(self, make_context):
        """Running out of budget ends the string without raising."""
        context = make_context(budget=2, script=list("hello"))

        assert FreeStringGenerator(context).generate(max_tokens=32) == "he"
        assert context.budget.remaining == 0

    def test_zero_cap(self, make_context):
        context = make_context()

        assert FreeStringGenerator(context).generate(max_tokens=0) == ""
        assert context.backend.sample_calls == []

    def test_no_string_safe_tokens(self, make_context):
        """A vocabulary with only quote, backslash and newline cannot build a body."""
        context = make_context(vocabulary=['"', "\\", "\n"])
        assert context.vocabulary.string_content_tokens == frozenset()

        with pytest.raises(InvalidTokenization):
            FreeStringGenerator(context).generate(max_tokens=32)
        assert context.budget.used == 0


class TestNumberGenerator:
    """Test the digit grammar."""

    def test_greedy_number(self, make_context):
        """Greedy picks '-', then '0', then a terminator."""
        context = make_context()

        assert NumberGenerator(context).generate(NumberNode()) == "-0"
        assert context.budget.used == 2

    def test_decimal_number(self, make_context):
        context = make_context(script=["1", "2", ".", "5"])

        assert NumberGenerator(context).generate(NumberNode()) == "12.5"
        assert context.budget.used == 4

    def test_multi_digit_token(self, make_context):
        context = make_context(script=["12", "05", "}"])

        assert NumberGenerator(context).generate(NumberNode(integer_only=True)) == "1205"

    def test_terminator_not_decoded(self, make_context):
        context = make_context(script=["7", ","])

        assert NumberGenerator(context).generate(NumberNode(integer_only=True)) == "7"
        assert context.backend.decoded_text == "7"

    def test_integer_never_offers_decimal_point(self, make_context):
        context = make_context(script=["4"])
        NumberGenerator(context).generate(NumberNode(integer_only=True))

        decimal_point = context.vocabulary.decimal_point_token
        assert all(decimal_point not in allowed for allowed in context.backend.sample_calls)

    def test_no_leading_zero(self, make_context):
        """After a leading '0' no more integer digits are offered."""
        context = make_context(script=["0"])
        NumberGenerator(context).generate(NumberNode())

        digits = context.vocabulary.digit_tokens
        first, second = context.backend.sample_calls
        assert context.backend.token("05") not in first
        assert not (second & digits)

    def test_integer_token_limit(self, make_context):
        context = make_context(script=["9", "9", "9", "9"])

        assert NumberGenerator(context).generate(NumberNode(integer_only=True)) == "999"
        assert context.backend.script == [context.backend.token("9")]

    def test_fraction_token_limit(self, make_context):
        config = DecoderConfig(max_fraction_tokens=2)
        backend_kwargs = {"script": ["3", ".", "1", "4", "1", "5"]}
        context = make_context(config=config, **backend_kwargs)

        assert NumberGenerator(context).generate(NumberNode()) == "3.14"

    def test_minus_not_offered_for_non_negative(self, make_context):
        context = make_context()

        assert NumberGenerator(context).generate(NumberNode(minimum=0)) == "0"
        assert context.vocabulary.minus_token not in context.backend.sample_calls[0]

    def test_negative_numbers_disabled(self, make_context):
        context = make_context(config=DecoderConfig(allow_negative_numbers=False))

        assert NumberGenerator(context).generate(NumberNode(integer_only=True)) == "0"

    def test_clamped_to_maximum(self, make_context):
        context = make_context(script=["9", "9", "9"])

        assert NumberGenerator(context).generate(NumberNode(integer_only=True, maximum=100)) == "100"

    def test_clamped_to_minimum(self, make_context):
        context = make_context()

        assert NumberGenerator(context).generate(NumberNode(minimum=2.5)) == "2.5"

    def test_clamped_past_exclusive_minimum(self, make_context):
        """A decimal at an exclusive bound moves to the next float above it."""
        context = make_context()
        node = NumberNode(minimum=0, exclusive_minimum=True)

        output = NumberGenerator(context).generate(node)

        assert output == repr(math.nextafter(0.0, math.inf))
        assert float(output) > 0

    def test_clamped_below_exclusive_maximum(self, make_context):
        context = make_context(script=["7"])
        node = NumberNode(maximum=1, exclusive_maximum=True)

        output = NumberGenerator(context).generate(node)

        assert float(output) < 1
        assert output == repr(math.nextafter(1.0, -math.inf))

    def test_within_bounds_unchanged(self, make_context):
        context = make_context(script=["4", "2"])
        node = NumberNode(integer_only=True, minimum=0, maximum=100)

        assert NumberGenerator(context).generate(node) == "42"

    def test_budget_exhausted_after_minus(self, make_context):
        """A lone '-' is not a number: running out there is an error."""
        context = make_context(budget=1, script=["-"])

        with pytest.raises(TokenBudgetExceeded):
            NumberGenerator(context).generate(NumberNode())

    def test_budget_exhausted_after_dot(self, make_context):
        context = make_context(budget=2, script=["1", "."])

        with pytest.raises(TokenBudgetExceeded):
            NumberGenerator(context).generate(NumberNode())

    def test_budget_exhausted_after_digit(self, make_context):
        """A complete integer simply ends when the budget does."""
        context = make_context(budget=1, script=["7"])

        assert NumberGenerator(context).generate(NumberNode()) == "7"

    def test_no_digit_tokens_falls_back_to_zero(self, make_context):
        digit_texts = [str(d) for d in range(10)] + ["12", "05"]
        context = make_context(special_texts=digit_texts)

        assert NumberGenerator(context).generate(NumberNode()) == "0"
        assert context.backend.decoded_text == "0"
        assert context.backend.sample_calls == []
