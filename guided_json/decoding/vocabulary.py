"""
Vocabulary classification - precompute the token sets the decoder samples from.

Before a structured-generation run starts, every token in the vocabulary is
looked at exactly once and sorted into reusable sets:

    digit_tokens                    text is non-empty and all ASCII digits
    string_content_tokens           text is non-empty and contains no '"',
                                    no '\\' and no control character (< 0x20)
    string_content_or_quote_tokens  string_content_tokens + the quote token
    quote_token                     the single token for '"'

The string rule is conservative on purpose: a token mixing valid and invalid
characters is excluded as a whole, so every token the free-string generator
can emit keeps the surrounding JSON string well formed.

For the number grammar a few more classes are derived from the same scan:
digit tokens that may start an integer (no leading zero), the "0" token, and
the single tokens for '-', '.', and the structural terminators ',', '}', ']'.

Special tokens and end tokens reported by the backend are never classified
as content.

Example:
    ```python
    from guided_json.decoding import classify_vocabulary

    vocabulary = classify_vocabulary(backend)
    print(f"Quote token: {vocabulary.quote_token}")
    print(f"{len(vocabulary.digit_tokens)} digit tokens")
    ```
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Optional

from guided_json.errors import InvalidQuoteToken, InvalidVocabSize

logger = logging.getLogger(__name__)

DIGITS = frozenset("0123456789")
NUMBER_TERMINATOR_TEXTS = (",", "}", "]")


@dataclass(frozen=True)
class VocabularyClassification:
    """
    Token sets computed once per vocabulary.

    Attributes:
        vocab_size: Size of the classified vocabulary
        quote_token: The token whose text is exactly '"'
        digit_tokens: Tokens made only of decimal digits
        string_content_tokens: Tokens that are safe inside a JSON string
        string_content_or_quote_tokens: string_content_tokens plus quote_token
        string_terminators: Tokens that end a free string (quote + end tokens)
        leading_digit_tokens: Digit tokens that may start an integer
        zero_token: Token whose text is "0" (None if absent)
        minus_token: Single token for '-' (None if absent)
        decimal_point_token: Single token for '.' (None if absent)
        number_terminators: Tokens that may end a number (',', '}', ']' and end tokens)
        string_continuation_tokens: Tokens allowed once a free string has a character
    """

    vocab_size: int
    quote_token: int
    digit_tokens: FrozenSet[int]
    string_content_tokens: FrozenSet[int]
    string_content_or_quote_tokens: FrozenSet[int]
    string_terminators: FrozenSet[int]
    leading_digit_tokens: FrozenSet[int]
    zero_token: Optional[int]
    minus_token: Optional[int]
    decimal_point_token: Optional[int]
    number_terminators: FrozenSet[int]
    string_continuation_tokens: FrozenSet[int]

    def get_stats(self) -> Dict[str, Any]:
        """
        Summary of the classification for logging and the CLI.

        Example:
            ```python
            stats = vocabulary.get_stats()
            print(f"{stats['string_content_ratio']:.1%} of tokens are string-safe")
            ```
        """
        return {
            'vocab_size': self.vocab_size,
            'quote_token': self.quote_token,
            'num_digit_tokens': len(self.digit_tokens),
            'num_leading_digit_tokens': len(self.leading_digit_tokens),
            'num_string_content_tokens': len(self.string_content_tokens),
            'string_content_ratio': len(self.string_content_tokens) / self.vocab_size,
            'zero_token': self.zero_token,
            'minus_token': self.minus_token,
            'decimal_point_token': self.decimal_point_token,
            'num_number_terminators': len(self.number_terminators),
        }


def is_digit_text(text: str) -> bool:
    return bool(text) and all(c in DIGITS for c in text)


def is_string_content_text(text: str) -> bool:
    """
    Whether a token's text may appear verbatim inside a JSON string.

    Example:
        ```python
        is_string_content_text("hello")   # True
        is_string_content_text('say "')   # False (quote)
        is_string_content_text("a\\nb")    # False (control character)
        ```
    """
    if not text:
        return False
    for c in text:
        if c == '"' or c == '\\' or ord(c) < 0x20:
            return False
    return True


def _single_token(backend: Any, text: str) -> Optional[int]:
    tokens = backend.tokenize(text)
    if len(tokens) == 1:
        return tokens[0]
    return None


def classify_vocabulary(backend: Any) -> VocabularyClassification:
    """
    Scan the backend vocabulary and build the decoder's token sets.

    Args:
        backend: TokenBackend providing vocab_size, token_text and tokenize

    Returns:
        VocabularyClassification: Token sets for this vocabulary

    Raises:
        InvalidVocabSize: If vocab_size is not a positive integer
        InvalidQuoteToken: If '"' does not tokenize to exactly one token

    Performance Notes:
        - One token_text call per vocabulary entry, O(vocab_size)
        - Results are not cached here; see VocabularyCache
    """
    vocab_size = backend.vocab_size
    if isinstance(vocab_size, bool) or not isinstance(vocab_size, int) or vocab_size <= 0:
        raise InvalidVocabSize(vocab_size)

    quote_tokens = backend.tokenize('"')
    if len(quote_tokens) != 1:
        raise InvalidQuoteToken(len(quote_tokens))
    quote_token = quote_tokens[0]

    end_tokens = frozenset(backend.end_tokens)

    start_time = time.time()
    digits = set()
    leading_digits = set()
    string_content = set()
    zero_token = None

    for token in range(vocab_size):
        if token in end_tokens or backend.is_special_token(token):
            continue

        text = backend.token_text(token)
        if not text:
            continue

        if is_digit_text(text):
            digits.add(token)
            if text[0] != "0":
                leading_digits.add(token)
            elif text == "0" and zero_token is None:
                zero_token = token

        if is_string_content_text(text):
            string_content.add(token)

    minus_token = _single_token(backend, "-")
    decimal_point_token = _single_token(backend, ".")

    number_terminators = set(end_tokens)
    for text in NUMBER_TERMINATOR_TEXTS:
        token = _single_token(backend, text)
        if token is not None:
            number_terminators.add(token)

    if minus_token is None:
        logger.warning("Tokenizer has no single '-' token; numbers will be non-negative")
    if decimal_point_token is None:
        logger.warning("Tokenizer has no single '.' token; numbers will have no fraction")

    classification = VocabularyClassification(
        vocab_size=vocab_size,
        quote_token=quote_token,
        digit_tokens=frozenset(digits),
        string_content_tokens=frozenset(string_content),
        string_content_or_quote_tokens=frozenset(string_content | {quote_token}),
        string_terminators=frozenset(end_tokens | {quote_token}),
        leading_digit_tokens=frozenset(leading_digits),
        zero_token=zero_token,
        minus_token=minus_token,
        decimal_point_token=decimal_point_token,
        number_terminators=frozenset(number_terminators),
        string_continuation_tokens=frozenset(string_content | end_tokens | {quote_token}),
    )

    logger.info(
        f"Classified vocabulary of {vocab_size} tokens in "
        f"{(time.time() - start_time) * 1000:.0f}ms: "
        f"{len(string_content)} string, {len(digits)} digit tokens"
    )

    return classification
