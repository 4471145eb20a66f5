"""
Decoding context - the state owned by one structured-generation run.

Every generator reaches the backend through a DecodingContext. Funnelling
sample/decode through one object is what makes budget accounting exact: a
token is charged if and only if it was decoded.

Each step is sample -> decode -> charge, strictly in that order; there is no
parallelism inside a run. Cancellation is checked between steps.
"""

import logging
import threading
from typing import AbstractSet, Any, List, Optional

from guided_json.config import DecoderConfig
from guided_json.decoding.budget import TokenBudget
from guided_json.decoding.vocabulary import VocabularyClassification
from guided_json.errors import GenerationCancelled, InvalidTokenization

logger = logging.getLogger(__name__)


class DecodingContext:
    """
    Backend, budget, vocabulary and config for a single run.

    Attributes:
        backend: TokenBackend being driven
        budget: Shared TokenBudget
        vocabulary: Classification of the backend vocabulary
        config: DecoderConfig limits
        decoded_tokens: Every token pushed through ``backend.decode``, in order
        cancel_event: Optional event; once set the next step raises
            GenerationCancelled
    """

    def __init__(
        self,
        backend: Any,
        budget: TokenBudget,
        vocabulary: VocabularyClassification,
        config: Optional[DecoderConfig] = None,
        cancel_event: Optional[threading.Event] = None
    ):
        self.backend = backend
        self.budget = budget
        self.vocabulary = vocabulary
        self.config = config or DecoderConfig()
        self.cancel_event = cancel_event
        self.decoded_tokens: List[int] = []

    def check_cancelled(self) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            logger.info(f"Generation cancelled after {len(self.decoded_tokens)} tokens")
            raise GenerationCancelled("Generation was cancelled")

    def sample(self, allowed: AbstractSet[int]) -> int:
        """
        Ask the backend for one token from ``allowed``.

        Raises:
            InvalidTokenization: If the backend answers outside the set
        """
        self.check_cancelled()
        token = self.backend.sample(allowed)
        if token not in allowed:
            raise InvalidTokenization(
                f"Backend sampled token {token} outside the allowed set"
            )
        return token

    def decode(self, token: int) -> None:
        """
        Feed ``token`` to the model and charge one unit of budget.

        Raises:
            TokenBudgetExceeded: If no budget is left (nothing is decoded)
        """
        self.check_cancelled()
        self.budget.require()
        self.backend.decode(token)
        self.budget.consume()
        self.decoded_tokens.append(token)

    def token_text(self, token: int) -> str:
        return self.backend.token_text(token) or ""

    def tokenize(self, text: str) -> List[int]:
        return self.backend.tokenize(text)
