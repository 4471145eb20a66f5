"""
Unit tests for the literal-choice matcher.
"""

import pytest

from guided_json.decoding import LiteralChoiceMatcher
from guided_json.errors import InvalidTokenization, TokenBudgetExceeded


class TestLiteralChoiceMatcher:
    """Test prefix narrowing over candidate tokenizations."""

    def test_boolean_greedy(self, make_context):
        """'false' sorts before 'true', so greedy sampling picks it."""
        context = make_context()

        assert LiteralChoiceMatcher(context).choose(["true", "false"]) == "false"
        assert context.budget.used == 1

    def test_boolean_scripted(self, make_context):
        context = make_context(script=["true"])

        assert LiteralChoiceMatcher(context).choose(["true", "false"]) == "true"

    def test_shared_prefix(self, make_context):
        """green and grey share 'gre'; the next token decides."""
        context = make_context(script=["gre", "y"])

        assert LiteralChoiceMatcher(context).choose(["red", "green", "grey"]) == "grey"
        assert context.backend.decoded_text == "grey"
        assert context.budget.used == 2

    def test_enum_exactness(self, make_context):
        """Preferring green's tokens yields exactly "green"."""
        context = make_context(script=["gre", "en"])

        assert LiteralChoiceMatcher(context).choose(["red", "green", "blue"]) == "green"
        assert context.backend.decoded_text == "green"

    def test_allowed_set_is_union_of_next_tokens(self, make_context):
        context = make_context(script=["gre", "en"])
        LiteralChoiceMatcher(context).choose(["red", "green", "grey"])

        backend = context.backend
        first, second = backend.sample_calls
        assert first == {backend.token("red"), backend.token("gre")}
        assert second == {backend.token("en"), backend.token("y")}

    def test_stops_exactly_at_full_match(self, make_context):
        """No sample is taken once a candidate is complete."""
        context = make_context(script=["red"])
        LiteralChoiceMatcher(context).choose(["red", "green"])

        assert len(context.backend.sample_calls) == 1

    def test_shorter_prefix_candidate_wins(self, make_context):
        """A candidate whose tokens prefix another's wins once matched."""
        context = make_context()

        assert LiteralChoiceMatcher(context).choose(["gre", "green"]) == "gre"

    def test_single_candidate(self, make_context):
        context = make_context()

        assert LiteralChoiceMatcher(context).choose(["hello"]) == "hello"

    def test_untokenizable_candidates_dropped(self, make_context):
        context = make_context()

        assert LiteralChoiceMatcher(context).choose(["ÿ", "red"]) == "red"

    def test_no_tokenizable_candidate(self, make_context):
        context = make_context()

        with pytest.raises(InvalidTokenization):
            LiteralChoiceMatcher(context).choose(["ÿ", "ü"])

    def test_empty_candidate_list(self, make_context):
        with pytest.raises(InvalidTokenization):
            LiteralChoiceMatcher(make_context()).choose([])

    def test_budget_exhausted_mid_literal(self, make_context):
        context = make_context(budget=1)

        with pytest.raises(TokenBudgetExceeded):
            LiteralChoiceMatcher(context).choose(["green"])
        assert context.budget.used == 1

    def test_backend_outside_allowed_set(self, make_context, backend):
        """A backend that ignores the allowed set is caught."""
        backend.sample = lambda allowed: backend.token("hello")
        context = make_context(backend=backend)

        with pytest.raises(InvalidTokenization):
            LiteralChoiceMatcher(context).choose(["true", "false"])
