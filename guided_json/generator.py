"""
Structured generation orchestrator.

Ties the components together for one request:
    1. Parse the schema (JSON Schema dict, Pydantic model or GenerationSchema)
    2. Classify the backend vocabulary (through the VocabularyCache)
    3. Prime the backend with the prompt
    4. Walk the schema with a fresh TokenBudget
    5. Validate the output against the JSON Schema

Failures of the decoder (budget exhaustion, bad tokenization, cancellation)
are raised, never retried: a caller that wants another attempt calls
``generate`` again with fresh model state.

Usage:
    ```python
    from guided_json import StructuredGenerator
    from guided_json.backends import BackendFactory

    backend = BackendFactory.create("TinyLlama/TinyLlama-1.1B-Chat-v1.0", device="mps")
    generator = StructuredGenerator(backend)

    result = generator.generate(
        schema={"type": "object", "properties": {"name": {"type": "string"}}},
        prompt="Generate a user profile",
        max_tokens=200,
    )
    print(result.output)
    ```
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from guided_json.config import DecoderConfig
from guided_json.decoding import DecodingContext, StructuralWalker, TokenBudget, VocabularyCache
from guided_json.schema import GenerationSchema, is_pydantic_model, parse_schema, pydantic_to_schema
from guided_json.validation import validate

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 256


@dataclass
class GenerationResult:
    """
    Result of a structured-generation run.

    Attributes:
        output: Generated JSON text
        tokens_used: Tokens decoded through the backend
        token_budget: Budget the run started with
        latency_ms: Wall time of the run in milliseconds
        is_valid: Whether the output passed JSON Schema validation
        validation_errors: Errors from validation (empty if valid)
    """
    output: str
    tokens_used: int
    token_budget: int
    latency_ms: float
    is_valid: bool
    validation_errors: List[Any] = field(default_factory=list)


class StructuredGenerator:
    """
    Generate schema-conforming JSON with a token backend.

    Attributes:
        backend: TokenBackend driven by every run
        config: DecoderConfig shared by every run
        cache: VocabularyCache scoped to this generator's backend
    """

    def __init__(
        self,
        backend: Any,
        config: Optional[DecoderConfig] = None,
        cache: Optional[VocabularyCache] = None
    ):
        self.backend = backend
        self.config = config or DecoderConfig()
        self.cache = cache if cache is not None else VocabularyCache()

        logger.info(f"Initializing StructuredGenerator with {backend!r}")

    def generate(
        self,
        schema: Union[Dict[str, Any], type, GenerationSchema],
        max_tokens: int = DEFAULT_MAX_TOKENS,
        prompt: Optional[str] = None,
        cancel_event: Optional[threading.Event] = None
    ) -> GenerationResult:
        """
        Generate JSON conforming to ``schema``.

        Args:
            schema: JSON Schema dict, Pydantic model class or GenerationSchema
            max_tokens: Token budget for the whole JSON value
            prompt: Optional prompt to prime the model with
            cancel_event: Optional event that stops the run when set

        Returns:
            GenerationResult: Output text, token accounting and validation

        Raises:
            SchemaError: If the schema uses unsupported features
            TokenBudgetExceeded: If ``max_tokens`` is too small for the schema
            InvalidQuoteToken: If the backend cannot express '"' as one token
            GenerationCancelled: If ``cancel_event`` was set

        Example:
            ```python
            result = generator.generate(User, max_tokens=128, prompt="A user:")
            if result.is_valid:
                user = User.model_validate_json(result.output)
            ```
        """
        start_time = time.time()

        json_schema = self._json_schema(schema)
        generation_schema = parse_schema(json_schema if json_schema is not None else schema)
        if json_schema is None:
            json_schema = generation_schema.to_json_schema()

        vocabulary = self.cache.get_or_classify(self.backend)
        budget = TokenBudget(max_tokens)
        context = DecodingContext(
            self.backend,
            budget,
            vocabulary,
            config=self.config,
            cancel_event=cancel_event,
        )

        self.backend.start(prompt)
        output = StructuralWalker(context, generation_schema).generate()

        validation_result = validate(output, json_schema)
        latency_ms = (time.time() - start_time) * 1000

        if validation_result.is_valid:
            logger.info(f"Generated {budget.used} tokens in {latency_ms:.0f}ms")
        else:
            logger.warning(
                f"Output failed validation with {len(validation_result.errors)} errors"
            )

        return GenerationResult(
            output=output,
            tokens_used=budget.used,
            token_budget=budget.total,
            latency_ms=latency_ms,
            is_valid=validation_result.is_valid,
            validation_errors=validation_result.errors,
        )

    @staticmethod
    def _json_schema(schema: Any) -> Optional[Dict[str, Any]]:
        if isinstance(schema, dict):
            return schema
        if is_pydantic_model(schema):
            return pydantic_to_schema(schema)
        return None

    def get_info(self) -> Dict[str, Any]:
        info = {'config': self.config, 'cache': self.cache.get_stats()}
        info.update(self.backend.get_model_info())
        return info

    def __repr__(self) -> str:
        return f"StructuredGenerator(backend={self.backend!r})"
