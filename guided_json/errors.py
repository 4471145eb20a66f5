"""
Error types raised by the constrained decoder.

Every failure of a structured-generation run is terminal: the decoder never
retries internally and never returns truncated JSON. Each error carries a
``kind`` string so callers (and logs) can group failures without matching on
class names.

Hierarchy:
    ConstrainedGenerationError
    ├── InvalidQuoteToken       tokenizer does not map '"' to exactly one token
    ├── InvalidTokenization     literal cannot be tokenized / impossible matcher state
    │   └── MissingReference    $ref name not present in the schema defs
    ├── TokenBudgetExceeded     budget ran out before the structure was complete
    ├── InvalidVocabSize        backend reported a non-positive vocabulary
    ├── ReferenceDepthExceeded  too many nested $ref resolutions
    └── GenerationCancelled     cancel event was set between steps

    SchemaError (ValueError)    schema could not be parsed into a GenerationSchema

Errors raised by a backend (tokenizer failures, sampling from an empty set)
are not wrapped.
"""

from typing import Optional


class ConstrainedGenerationError(Exception):
    """Base class for all decoder failures."""

    kind = "constrainedGeneration"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.kind)


class InvalidQuoteToken(ConstrainedGenerationError):
    """The backend tokenizer does not represent '"' as a single token."""

    kind = "invalidQuoteToken"

    def __init__(self, token_count: int):
        self.token_count = token_count
        super().__init__(
            f'Tokenizer maps \'"\' to {token_count} tokens; '
            f"structured generation needs exactly one"
        )


class InvalidTokenization(ConstrainedGenerationError):
    kind = "invalidTokenization"


class MissingReference(InvalidTokenization):
    """A RefNode names a definition that does not exist."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unresolved schema reference: {name!r}")


class TokenBudgetExceeded(ConstrainedGenerationError):
    kind = "tokenBudgetExceeded"

    def __init__(self, total: Optional[int] = None):
        self.total = total
        message = "Token budget exhausted before the JSON structure was complete"
        if total is not None:
            message += f" (budget: {total} tokens)"
        super().__init__(message)


class InvalidVocabSize(ConstrainedGenerationError):
    kind = "invalidVocabSize"

    def __init__(self, vocab_size: object):
        self.vocab_size = vocab_size
        super().__init__(f"Backend reported an invalid vocabulary size: {vocab_size!r}")


class ReferenceDepthExceeded(ConstrainedGenerationError):
    kind = "referenceDepthExceeded"

    def __init__(self, name: str, max_depth: int):
        self.name = name
        self.max_depth = max_depth
        super().__init__(
            f"Resolving reference {name!r} exceeded the maximum depth of {max_depth}"
        )


class GenerationCancelled(ConstrainedGenerationError):
    kind = "cancelled"


class SchemaError(ValueError):
    """Raised when a JSON Schema cannot be turned into a GenerationSchema."""
