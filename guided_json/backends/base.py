"""
Backend abstraction - the token-level interface the decoder drives.

The constrained decoder never touches a model directly. It only needs a
backend that can:
    - tokenize(text): text -> token ids
    - token_text(token): token id -> text fragment (pure, called once per
      vocabulary entry during classification)
    - decode(token): advance model state by one token
    - sample(allowed): pick one token from an allowed set
    - vocab_size: number of token ids

This keeps all model-specific concerns (KV-cache layout, precision, device,
sampling policy) out of the grammar logic, so the same walker runs
unmodified against HuggingFace transformers, llama.cpp or a test mock.

Usage:
    ```python
    from guided_json.backends import BackendFactory

    # Auto-detect HuggingFace model
    backend = BackendFactory.create("gpt2", device="cpu")

    # Auto-detect GGUF file
    backend = BackendFactory.create("models/mistral-7b.gguf")

    backend.start("Describe a user as JSON:")
    token = backend.sample({backend.tokenize("{")[0]})
    backend.decode(token)
    ```
"""

from abc import ABC, abstractmethod
from typing import AbstractSet, Any, Dict, FrozenSet, Hashable, List, Optional, Tuple


class TokenBackend(ABC):
    """
    Abstract base class for token-level model backends.

    Subclasses must implement the four operations and ``vocab_size``. The
    optional hooks (``end_tokens``, ``is_special_token``, ``start``,
    ``reset``) have neutral defaults.
    """

    @property
    @abstractmethod
    def vocab_size(self) -> int:
        """Number of token ids in the vocabulary."""
        pass

    @abstractmethod
    def tokenize(self, text: str) -> List[int]:
        """
        Convert text into token ids.

        Args:
            text: Text fragment (no special tokens are added)

        Returns:
            List of token ids (may be empty if the text is not representable)
        """
        pass

    @abstractmethod
    def token_text(self, token: int) -> Optional[str]:
        """
        Text of a single token, or None if the id has no text.

        Called ``vocab_size`` times during vocabulary classification, so
        implementations should be O(1) or memoized.
        """
        pass

    @abstractmethod
    def decode(self, token: int) -> None:
        """
        Advance the model state by one token.

        Args:
            token: Token id to feed to the model
        """
        pass

    @abstractmethod
    def sample(self, allowed_tokens: AbstractSet[int]) -> int:
        """
        Pick the next token from ``allowed_tokens``.

        The choice must lie strictly inside the set; the sampling policy
        (greedy, top-k, top-p, temperature) is up to the backend.

        Raises:
            ValueError: If ``allowed_tokens`` is empty
        """
        pass

    @property
    def end_tokens(self) -> FrozenSet[int]:
        """Tokens that end generation (EOS and friends)."""
        return frozenset()

    def is_special_token(self, token: int) -> bool:
        """Whether ``token`` is a control token that must never be emitted as text."""
        return False

    @property
    def vocabulary_id(self) -> Optional[str]:
        """Stable name of the tokenizer, used to persist classifications."""
        return None

    def vocabulary_key(self) -> Optional[Tuple[Hashable, ...]]:
        """
        Cache key identifying this backend's vocabulary.

        Two backends with the same key classify to the same token sets.
        Returns None when the backend has no ``vocabulary_id``: size and end
        tokens alone do not identify a vocabulary, so such a backend only
        ever reuses its own classification.
        """
        if self.vocabulary_id is None:
            return None
        return (self.vocab_size, self.end_tokens, self.vocabulary_id)

    def start(self, prompt: Optional[str] = None) -> None:
        """Prepare fresh model state, optionally primed with a prompt."""
        self.reset()

    def reset(self) -> None:
        """Discard model state accumulated by previous decode calls."""
        pass

    def get_model_info(self) -> Dict[str, Any]:
        """Backend metadata for display and logging."""
        return {"backend": self.__class__.__name__, "vocab_size": self.vocab_size}

    def __repr__(self) -> str:
        info = self.get_model_info()
        return (
            f"{self.__class__.__name__}("
            f"model={info.get('model_id', 'unknown')}, "
            f"vocab={info.get('vocab_size', 'unknown')})"
        )


class BackendFactory:
    """
    Factory for creating backend instances.

    Usage:
        ```python
        backend = BackendFactory.create("gpt2", device="mps")
        backend = BackendFactory.create("models/mistral-7b.gguf")
        backend = BackendFactory.create("gpt2", backend_type="transformers")
        ```
    """

    @staticmethod
    def create(
        model_id: str,
        backend_type: Optional[str] = None,
        device: Optional[str] = None,
        **kwargs
    ) -> TokenBackend:
        """
        Create the appropriate backend for a model.

        Args:
            model_id: Model identifier or file path
            backend_type: "transformers" or "llamacpp" (None = auto-detect)
            device: Device for the transformers backend
            **kwargs: Backend-specific options (e.g. ``sampler``)

        Returns:
            TokenBackend: Initialized backend instance

        Raises:
            ValueError: If the backend type is unsupported
        """
        if backend_type is None:
            backend_type = BackendFactory._detect_backend_type(model_id)

        if backend_type == "transformers":
            from guided_json.backends.transformers_backend import TransformersTokenBackend
            return TransformersTokenBackend(model_id, device=device, **kwargs)

        elif backend_type == "llamacpp":
            from guided_json.backends.llamacpp_backend import LlamaCppTokenBackend
            return LlamaCppTokenBackend(model_id, **kwargs)

        raise ValueError(f"Unsupported backend type: {backend_type}")

    @staticmethod
    def _detect_backend_type(model_id: str) -> str:
        """
        Auto-detect backend type from a model identifier.

        Strategy:
            - .gguf / .ggml / .bin files -> llamacpp
            - anything else (HF "org/model" names, local dirs) -> transformers
        """
        if model_id.lower().endswith(('.gguf', '.ggml', '.bin')):
            return "llamacpp"
        return "transformers"

    @staticmethod
    def list_available_backends() -> List[str]:
        """List backends whose runtime libraries are importable."""
        available = []

        try:
            import transformers  # noqa: F401
            available.append("transformers")
        except ImportError:
            pass

        try:
            import llama_cpp  # noqa: F401
            available.append("llamacpp")
        except ImportError:
            pass

        return available
