"""
Literal-choice matcher - pick one of a few fixed literals token by token.

Enum values and the booleans "true"/"false" rarely tokenize to the same
number of tokens, and two candidates may share their first tokens. The
matcher tokenizes every candidate and narrows the set of viable token
sequences one position at a time:

    candidates  "red"    -> [r, ed]
                "green"  -> [gre, en]
                "grey"   -> [gre, y]

    step 0  allowed {r, gre}      sampled gre   viable: green, grey
    step 1  allowed {en, y}       sampled en    viable: green
    step 2  "green" fully matched -> stop

The model is only ever offered tokens that keep at least one candidate
alive, and matching stops exactly when a full candidate has been
reproduced.

Note:
    If one candidate's token sequence is a prefix of another's, the shorter
    candidate wins as soon as it is matched.
"""

import logging
from typing import List, Sequence, Tuple

from guided_json.decoding.context import DecodingContext
from guided_json.errors import InvalidTokenization

logger = logging.getLogger(__name__)


class LiteralChoiceMatcher:
    """
    Choose among candidate literals by prefix narrowing.

    Example:
        ```python
        matcher = LiteralChoiceMatcher(context)
        colour = matcher.choose(["red", "green", "blue"])
        flag = matcher.choose(["true", "false"])
        ```
    """

    def __init__(self, context: DecodingContext):
        self.context = context

    def choose(self, candidates: Sequence[str]) -> str:
        """
        Emit exactly one of ``candidates``.

        Args:
            candidates: Literal texts to choose from

        Returns:
            str: The matched candidate

        Raises:
            InvalidTokenization: If no candidate can be tokenized, or no
                candidate matches the sampled tokens
            TokenBudgetExceeded: If the budget runs out mid-literal
        """
        prefixes: List[Tuple[str, List[int]]] = []
        for candidate in candidates:
            tokens = self.context.tokenize(candidate)
            if tokens:
                prefixes.append((candidate, tokens))
            else:
                logger.debug(f"Dropping candidate {candidate!r}: no tokens")

        if not prefixes:
            raise InvalidTokenization(
                f"None of the candidates {list(candidates)!r} could be tokenized"
            )

        position = 0

        while True:
            for candidate, tokens in prefixes:
                if len(tokens) == position:
                    logger.debug(f"Matched literal {candidate!r} in {position} tokens")
                    return candidate

            allowed = {tokens[position] for _, tokens in prefixes}

            self.context.budget.require()
            token = self.context.sample(allowed)
            self.context.decode(token)

            prefixes = [
                (candidate, tokens)
                for candidate, tokens in prefixes
                if tokens[position] == token
            ]
            position += 1

            if not prefixes:
                raise InvalidTokenization(
                    f"Sampled token {token} matches none of the candidates"
                )
