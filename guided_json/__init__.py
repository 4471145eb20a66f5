"""
guided_json: schema-constrained JSON generation, one token at a time.

guided_json drives a language model token by token and, at every step,
only lets it choose among tokens that keep the output valid JSON for the
target schema. Structure (braces, keys, commas, quotes) is emitted by the
decoder itself; the model only chooses string contents, digits and
enum/boolean literals.

Key Features:
    - JSON Schema and Pydantic model support
    - Exact token budget accounting (fails instead of truncating)
    - Enum and boolean matching across uneven tokenizations
    - Backends for HuggingFace transformers and llama.cpp
    - Optimized for Apple Silicon with MPS support

Quick Start:
    ```python
    from pydantic import BaseModel

    from guided_json import StructuredGenerator
    from guided_json.backends import BackendFactory

    class User(BaseModel):
        name: str
        age: int
        active: bool

    backend = BackendFactory.create("TinyLlama/TinyLlama-1.1B-Chat-v1.0", device="mps")
    result = StructuredGenerator(backend).generate(
        User, max_tokens=128, prompt="Generate a user profile for John Doe"
    )
    print(result.output)
    ```

Architecture:
    1. Schema Parser: JSON Schema / Pydantic -> GenerationSchema tree
    2. Vocabulary Classifier: token sets for strings, digits and the quote
    3. Structural Walker: depth-first generation with leaf generators
    4. Token Backend: tokenize / decode / sample against a real model
    5. Validator: post-generation JSON Schema validation
"""

__version__ = "0.1.0"

from guided_json.api import DecoderConfig, GenerationResult, StructuredGenerator  # noqa: F401
from guided_json.errors import (  # noqa: F401
    ConstrainedGenerationError,
    GenerationCancelled,
    InvalidQuoteToken,
    InvalidTokenization,
    InvalidVocabSize,
    MissingReference,
    ReferenceDepthExceeded,
    SchemaError,
    TokenBudgetExceeded,
)
from guided_json.schema import GenerationSchema, parse_schema  # noqa: F401

__all__ = [
    "StructuredGenerator",
    "GenerationResult",
    "DecoderConfig",
    "GenerationSchema",
    "parse_schema",
    "ConstrainedGenerationError",
    "InvalidQuoteToken",
    "InvalidTokenization",
    "MissingReference",
    "TokenBudgetExceeded",
    "InvalidVocabSize",
    "ReferenceDepthExceeded",
    "GenerationCancelled",
    "SchemaError",
]
