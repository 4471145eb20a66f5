"""
Leaf generators: literal text, free strings and numbers.

These are the components the structural walker calls for everything that is
not structure:

    LiteralEmitter       forces fixed text (punctuation, keys, quotes)
    FreeStringGenerator  samples an open-ended string body
    NumberGenerator      walks a small number grammar token by token

All of them go through the DecodingContext, so every decoded token is
charged to the shared budget exactly once.

Example:
    ```python
    emitter = LiteralEmitter(context)
    strings = FreeStringGenerator(context)

    out = emitter.emit('"')
    out += strings.generate(max_tokens=32)
    out += emitter.emit('"')
    ```
"""

import logging
import math
from typing import AbstractSet, List, Optional

from guided_json.decoding.context import DecodingContext
from guided_json.errors import InvalidTokenization
from guided_json.schema.types import NumberNode

logger = logging.getLogger(__name__)


class LiteralEmitter:
    """
    Emit fixed text as if the model had already chosen it.

    Nothing is sampled: the text is tokenized and each token is decoded
    through the backend and charged to the budget.
    """

    def __init__(self, context: DecodingContext):
        self.context = context

    def emit(self, text: str) -> str:
        """
        Force ``text`` into the model state.

        Args:
            text: Literal fragment (e.g. '{', '"name":', ',')

        Returns:
            str: ``text`` unchanged, for composing output

        Raises:
            TokenBudgetExceeded: If the budget runs out part-way
            InvalidTokenization: If non-empty text tokenizes to nothing
        """
        tokens = self.context.tokenize(text)
        if text and not tokens:
            raise InvalidTokenization(f"Literal {text!r} produced no tokens")

        for token in tokens:
            self.context.decode(token)
        return text


class FreeStringGenerator:
    """
    Sample the body of a JSON string from string-safe tokens.

    The first step only offers string content, later steps also offer the
    closing quote (and end tokens). Sampling a terminator stops the string;
    the terminator itself is neither decoded nor returned, because the
    caller emits the delimiting quotes.
    """

    def __init__(self, context: DecodingContext):
        self.context = context

    def generate(self, max_tokens: int) -> str:
        """
        Generate a string body.

        Args:
            max_tokens: Cap on content tokens for this string

        Returns:
            str: String body without quotes (may be empty)

        Raises:
            InvalidTokenization: If the vocabulary has no string-safe tokens
        """
        vocabulary = self.context.vocabulary
        budget = self.context.budget

        pieces: List[str] = []
        generated = 0

        while budget.remaining > 0 and generated < max_tokens:
            if generated == 0:
                allowed = vocabulary.string_content_tokens
                if not allowed:
                    raise InvalidTokenization("Vocabulary has no string-safe tokens")
            else:
                allowed = vocabulary.string_continuation_tokens

            token = self.context.sample(allowed)
            if token in vocabulary.string_terminators:
                break

            pieces.append(self.context.token_text(token))
            self.context.decode(token)
            generated += 1

        if generated >= max_tokens:
            logger.debug(f"Free string hit its cap of {max_tokens} tokens")

        return "".join(pieces)


class NumberGenerator:
    """
    Generate a JSON number by walking a digit grammar.

    Grammar:
        number  := "-"? integer ("." digits)?
        integer := "0" | leading-digit-token digit-token*

    The fraction is only offered for non-integer nodes. Once the integer
    part has a digit, the number terminators (',', '}', ']' and end tokens)
    become legal; sampling one ends the number without decoding it.
    """

    def __init__(self, context: DecodingContext):
        self.context = context

    def generate(self, node: NumberNode) -> str:
        """
        Generate a number for ``node``.

        Args:
            node: NumberNode (integer_only, optional minimum/maximum)

        Returns:
            str: JSON number text, clamped to the node's bounds

        Raises:
            TokenBudgetExceeded: If the budget runs out before a digit
        """
        context = self.context
        vocabulary = context.vocabulary
        config = context.config

        integer_start = set(vocabulary.leading_digit_tokens)
        if vocabulary.zero_token is not None:
            integer_start.add(vocabulary.zero_token)

        if not integer_start:
            logger.warning("Vocabulary has no usable digit tokens; emitting 0")
            return _clamp(LiteralEmitter(context).emit("0"), node)

        pieces: List[str] = []

        first_allowed = set(integer_start)
        if self._allow_negative(node):
            first_allowed.add(vocabulary.minus_token)

        token = self._required_step(first_allowed, pieces)
        if token == vocabulary.minus_token:
            token = self._required_step(integer_start, pieces)

        integer_tokens = 1
        integer_closed = token == vocabulary.zero_token
        allow_fraction = not node.integer_only and vocabulary.decimal_point_token is not None

        while not context.budget.exhausted:
            allowed = set(vocabulary.number_terminators)
            if not integer_closed and integer_tokens < config.max_integer_tokens:
                allowed |= vocabulary.digit_tokens
            if allow_fraction:
                allowed.add(vocabulary.decimal_point_token)
            if allowed <= vocabulary.number_terminators:
                break

            token = context.sample(allowed)
            if token in vocabulary.number_terminators:
                break

            self._append(token, pieces)
            if token == vocabulary.decimal_point_token:
                self._generate_fraction(pieces)
                break
            integer_tokens += 1

        return _clamp("".join(pieces), node)

    def _generate_fraction(self, pieces: List[str]) -> None:
        context = self.context
        vocabulary = context.vocabulary

        self._required_step(vocabulary.digit_tokens, pieces)
        fraction_tokens = 1

        while (
            fraction_tokens < context.config.max_fraction_tokens
            and not context.budget.exhausted
        ):
            token = context.sample(vocabulary.digit_tokens | vocabulary.number_terminators)
            if token in vocabulary.number_terminators:
                break
            self._append(token, pieces)
            fraction_tokens += 1

    def _allow_negative(self, node: NumberNode) -> bool:
        if not self.context.config.allow_negative_numbers:
            return False
        if self.context.vocabulary.minus_token is None:
            return False
        return node.minimum is None or node.minimum < 0

    def _required_step(self, allowed: AbstractSet[int], pieces: List[str]) -> int:
        self.context.budget.require()
        token = self.context.sample(allowed)
        self._append(token, pieces)
        return token

    def _append(self, token: int, pieces: List[str]) -> None:
        pieces.append(self.context.token_text(token))
        self.context.decode(token)


def _clamp(text: str, node: NumberNode) -> str:
    """
    Clamp generated number text to the node's bounds.

    The text is returned unchanged when it already lies within bounds. An
    exclusive decimal bound clamps to the nearest float past the bound.

    Example:
        ```python
        _clamp("250", NumberNode(integer_only=True, maximum=100))      # "100"
        _clamp("-3", NumberNode(minimum=0.5))                          # "0.5"
        _clamp("0", NumberNode(minimum=0, exclusive_minimum=True))     # "5e-324"
        _clamp("42", NumberNode())                                     # "42"
        ```
    """
    if node.minimum is None and node.maximum is None:
        return text

    value = int(text) if node.integer_only else float(text)
    lower: Optional[float] = node.minimum
    upper: Optional[float] = node.maximum

    if node.integer_only:
        lower = math.ceil(lower) if lower is not None else None
        upper = math.floor(upper) if upper is not None else None
    else:
        if node.exclusive_minimum:
            lower = math.nextafter(lower, math.inf)
        if node.exclusive_maximum:
            upper = math.nextafter(upper, -math.inf)

    if lower is not None and value < lower:
        return _format_number(lower, node.integer_only)
    if upper is not None and value > upper:
        return _format_number(upper, node.integer_only)
    return text


def _format_number(value: float, integer_only: bool) -> str:
    if integer_only or float(value).is_integer():
        return str(int(value))
    return repr(float(value))
