"""
Sampling strategies - how a backend picks one token from an allowed set.

The decoder only ever asks a backend for "one token out of this set". How
that token is chosen is a backend concern, so the model backends delegate
to a pluggable SamplingStrategy:

    GreedySampler       argmax over the allowed logits
    MultinomialSampler  temperature / top-k / top-p sampling restricted to
                        the allowed tokens, reproducible with a seed

Both strategies mask the logits first: tokens outside the allowed set get
no probability mass, so the selected token is always inside the set.

Example:
    ```python
    from guided_json.backends.sampling import MultinomialSampler

    sampler = MultinomialSampler(temperature=0.7, top_p=0.9, seed=0)
    token = sampler.select(logits, allowed={11, 42, 97})
    ```
"""

import logging
from typing import AbstractSet, Any, Optional

import torch
from typing_extensions import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class SamplingStrategy(Protocol):
    """Anything that can pick a token from masked logits."""

    def select(self, logits: Any, allowed: AbstractSet[int]) -> int:
        ...


def _allowed_logits(logits: Any, allowed: AbstractSet[int]):
    """
    Gather the logits of the allowed tokens.

    Returns:
        (token_ids, values): 1-D tensors on CPU, ordered by token id
    """
    if not allowed:
        raise ValueError("Cannot sample from an empty allowed-token set")

    scores = torch.as_tensor(logits).detach().reshape(-1).float().cpu()
    token_ids = torch.tensor(sorted(allowed), dtype=torch.long)
    if int(token_ids[-1]) >= scores.shape[0]:
        raise ValueError(
            f"Allowed token {int(token_ids[-1])} is outside the logits of size {scores.shape[0]}"
        )
    return token_ids, scores[token_ids]


class GreedySampler:
    """Always pick the highest-scoring allowed token (ties -> lowest id)."""

    def select(self, logits: Any, allowed: AbstractSet[int]) -> int:
        token_ids, values = _allowed_logits(logits, allowed)
        return int(token_ids[int(torch.argmax(values))])

    def __repr__(self) -> str:
        return "GreedySampler()"


class MultinomialSampler:
    """
    Sample from the allowed tokens' softmax distribution.

    Attributes:
        temperature: Softmax temperature; <= 0 falls back to greedy
        top_k: Keep only the k most likely allowed tokens (None = all)
        top_p: Keep the smallest set whose probability mass reaches p
        generator: torch.Generator seeded for reproducible runs
    """

    def __init__(
        self,
        temperature: float = 1.0,
        top_k: Optional[int] = None,
        top_p: Optional[float] = None,
        seed: Optional[int] = None
    ):
        if top_k is not None and top_k < 1:
            raise ValueError("top_k must be >= 1")
        if top_p is not None and not 0.0 < top_p <= 1.0:
            raise ValueError("top_p must be in (0, 1]")

        self.temperature = temperature
        self.top_k = top_k
        self.top_p = top_p
        self.seed = seed

        self.generator = torch.Generator()
        if seed is not None:
            self.generator.manual_seed(seed)

    def select(self, logits: Any, allowed: AbstractSet[int]) -> int:
        if self.temperature <= 0:
            return GreedySampler().select(logits, allowed)

        token_ids, values = _allowed_logits(logits, allowed)
        values = values / self.temperature

        if self.top_k is not None and self.top_k < values.shape[0]:
            values, order = torch.topk(values, self.top_k)
            token_ids = token_ids[order]

        probs = torch.softmax(values, dim=-1)

        if self.top_p is not None and self.top_p < 1.0:
            probs, order = torch.sort(probs, descending=True)
            token_ids = token_ids[order]
            cumulative = torch.cumsum(probs, dim=-1)
            # keep tokens until the mass before them reaches top_p
            keep = (cumulative - probs) < self.top_p
            probs = probs[keep]
            token_ids = token_ids[keep]
            probs = probs / probs.sum()

        index = torch.multinomial(probs, num_samples=1, generator=self.generator)
        return int(token_ids[int(index)])

    def __repr__(self) -> str:
        return (
            f"MultinomialSampler(temperature={self.temperature}, "
            f"top_k={self.top_k}, top_p={self.top_p}, seed={self.seed})"
        )


def build_sampler(
    temperature: float = 0.0,
    top_k: Optional[int] = None,
    top_p: Optional[float] = None,
    seed: Optional[int] = None
) -> SamplingStrategy:
    """
    Strategy for the CLI's sampling options.

    Example:
        ```python
        build_sampler()                  # GreedySampler()
        build_sampler(temperature=0.8)   # MultinomialSampler(...)
        ```
    """
    if temperature <= 0:
        return GreedySampler()
    return MultinomialSampler(temperature=temperature, top_k=top_k, top_p=top_p, seed=seed)
