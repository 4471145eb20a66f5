"""
Unit tests for sampling strategies.
"""

import pytest
import torch

from guided_json.backends.sampling import (
    GreedySampler,
    MultinomialSampler,
    SamplingStrategy,
    build_sampler,
)


LOGITS = torch.tensor([5.0, 1.0, 3.0, 4.0, 0.5])


class TestGreedySampler:
    """Test argmax over allowed tokens."""

    def test_picks_best_allowed(self):
        sampler = GreedySampler()

        assert sampler.select(LOGITS, {0, 1, 2, 3, 4}) == 0
        assert sampler.select(LOGITS, {1, 2, 3}) == 3
        assert sampler.select(LOGITS, {4}) == 4

    def test_accepts_batched_logits(self):
        assert GreedySampler().select(LOGITS.unsqueeze(0), {1, 2}) == 2

    def test_empty_set(self):
        with pytest.raises(ValueError):
            GreedySampler().select(LOGITS, set())

    def test_token_outside_logits(self):
        with pytest.raises(ValueError):
            GreedySampler().select(LOGITS, {1, 99})


class TestMultinomialSampler:
    """Test temperature / top-k / top-p sampling."""

    def test_always_inside_allowed(self):
        sampler = MultinomialSampler(temperature=1.0, seed=0)
        allowed = {1, 2, 4}

        for _ in range(50):
            assert sampler.select(LOGITS, allowed) in allowed

    def test_seed_reproducible(self):
        first = MultinomialSampler(temperature=1.5, seed=42)
        second = MultinomialSampler(temperature=1.5, seed=42)
        allowed = {0, 1, 2, 3, 4}

        draws_a = [first.select(LOGITS, allowed) for _ in range(20)]
        draws_b = [second.select(LOGITS, allowed) for _ in range(20)]

        assert draws_a == draws_b

    def test_top_k_one_is_greedy(self):
        sampler = MultinomialSampler(temperature=2.0, top_k=1, seed=0)

        for _ in range(10):
            assert sampler.select(LOGITS, {1, 2, 3}) == 3

    def test_small_top_p_is_greedy(self):
        sampler = MultinomialSampler(temperature=1.0, top_p=0.01, seed=0)

        for _ in range(10):
            assert sampler.select(LOGITS, {0, 1, 2}) == 0

    def test_zero_temperature_is_greedy(self):
        assert MultinomialSampler(temperature=0.0).select(LOGITS, {1, 2}) == 2

    def test_invalid_parameters(self):
        with pytest.raises(ValueError):
            MultinomialSampler(top_k=0)
        with pytest.raises(ValueError):
            MultinomialSampler(top_p=1.5)

    def test_protocol(self):
        assert isinstance(GreedySampler(), SamplingStrategy)
        assert isinstance(MultinomialSampler(), SamplingStrategy)


class TestBuildSampler:
    """Test CLI option mapping."""

    def test_greedy_by_default(self):
        assert isinstance(build_sampler(), GreedySampler)

    def test_multinomial_with_temperature(self):
        sampler = build_sampler(temperature=0.8, top_k=5, top_p=0.9, seed=1)

        assert isinstance(sampler, MultinomialSampler)
        assert (sampler.top_k, sampler.top_p, sampler.seed) == (5, 0.9, 1)
