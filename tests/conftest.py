"""
Shared pytest fixtures.

MockTokenBackend is a deterministic TokenBackend:
    - token ids are assigned in sorted order of token text
    - tokenize() is greedy longest-match over the vocabulary and returns []
      for text it cannot cover
    - sample() returns the smallest allowed id, unless the next scripted
      token is allowed, in which case that one is taken
"""

from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence

import pytest

from guided_json.backends.base import TokenBackend


EOS = "<eos>"

DEFAULT_VOCABULARY = (
    ['"', '",', '"active":', '"name":', '"tags":', '"age":', '"score":', '"role":']
    + [',', '-', '.', ':', '[', ']', '{', '}', '\\', '\n']
    + [str(d) for d in range(10)] + ['12', '05']
    + list("abcdefghijklmnopqrstuvwxyz")
    + ['true', 'false', 'null', 'red', 'gre', 'en', 'ed', 'hello']
    + [EOS]
)


class MockTokenBackend(TokenBackend):
    """Deterministic in-memory backend for decoder tests."""

    def __init__(
        self,
        vocabulary: Iterable[str] = DEFAULT_VOCABULARY,
        script: Sequence[str] = (),
        end_texts: Iterable[str] = (EOS,),
        special_texts: Iterable[str] = ()
    ):
        self.texts: List[str] = sorted(set(vocabulary))
        self.ids: Dict[str, int] = {text: i for i, text in enumerate(self.texts)}
        self.script: List[int] = [self.ids[text] for text in script]
        self._end_tokens = frozenset(self.ids[t] for t in end_texts if t in self.ids)
        self._special = frozenset(self.ids[t] for t in special_texts if t in self.ids)

        self.decoded: List[int] = []
        self.sample_calls: List[frozenset] = []
        self.prompts: List[Optional[str]] = []

    @property
    def vocab_size(self) -> int:
        return len(self.texts)

    @property
    def end_tokens(self):
        return self._end_tokens

    def is_special_token(self, token: int) -> bool:
        return token in self._special

    def tokenize(self, text: str) -> List[int]:
        tokens = []
        position = 0
        while position < len(text):
            for end in range(len(text), position, -1):
                token = self.ids.get(text[position:end])
                if token is not None:
                    tokens.append(token)
                    position = end
                    break
            else:
                return []
        return tokens

    def token_text(self, token: int) -> Optional[str]:
        if 0 <= token < len(self.texts):
            return self.texts[token]
        return None

    def decode(self, token: int) -> None:
        self.decoded.append(token)

    def sample(self, allowed_tokens: AbstractSet[int]) -> int:
        if not allowed_tokens:
            raise ValueError("Cannot sample from an empty allowed-token set")
        self.sample_calls.append(frozenset(allowed_tokens))
        if self.script and self.script[0] in allowed_tokens:
            return self.script.pop(0)
        return min(allowed_tokens)

    def start(self, prompt: Optional[str] = None) -> None:
        self.prompts.append(prompt)
        self.reset()

    @property
    def decoded_text(self) -> str:
        return "".join(self.texts[t] for t in self.decoded)

    def token(self, text: str) -> int:
        return self.ids[text]


@pytest.fixture
def make_backend():
    """Factory for MockTokenBackend instances."""
    def factory(**kwargs) -> MockTokenBackend:
        return MockTokenBackend(**kwargs)
    return factory


@pytest.fixture
def backend() -> MockTokenBackend:
    return MockTokenBackend()


@pytest.fixture
def make_context(make_backend):
    """Build a DecodingContext around a fresh (or given) mock backend."""
    from guided_json.config import DecoderConfig
    from guided_json.decoding import DecodingContext, TokenBudget, classify_vocabulary

    def factory(budget: int = 100, backend=None, config: Optional[DecoderConfig] = None, **kwargs):
        backend = backend or make_backend(**kwargs)
        return DecodingContext(backend, TokenBudget(budget), classify_vocabulary(backend), config=config)
    return factory
