"""
llama.cpp token backend with Metal acceleration for Apple Silicon.

Runs GGUF models through llama-cpp-python, one token at a time:

    start(prompt)   reset the context and evaluate the prompt
    sample(allowed) read the last logits and let the sampling strategy pick
    decode(token)   evaluate the chosen token

Usage:
    ```python
    from guided_json.backends import LlamaCppTokenBackend

    backend = LlamaCppTokenBackend(
        "models/mistral-7b-q4.gguf",
        n_gpu_layers=-1  # All layers on GPU (Metal)
    )
    backend.start("Generate a user profile as JSON:")
    ```
"""

import logging
from pathlib import Path
from typing import AbstractSet, Any, Dict, FrozenSet, List, Optional

from guided_json.backends.base import TokenBackend
from guided_json.backends.sampling import GreedySampler, SamplingStrategy

logger = logging.getLogger(__name__)


class LlamaCppTokenBackend(TokenBackend):
    """
    Token backend for llama.cpp (GGUF) models.

    Attributes:
        model_path: Path to the GGUF model file
        llm: llama_cpp.Llama instance
        n_gpu_layers: Number of layers on GPU (-1 = all)
        n_ctx: Context length
        sampler: SamplingStrategy used by ``sample``
    """

    def __init__(
        self,
        model_path: str,
        n_gpu_layers: int = -1,
        n_ctx: int = 2048,
        n_batch: int = 512,
        sampler: Optional[SamplingStrategy] = None,
        **kwargs
    ):
        """
        Load a GGUF model.

        Args:
            model_path: Path to GGUF model file
            n_gpu_layers: Layers to offload to GPU (-1 = all, 0 = CPU only)
            n_ctx: Context window size
            n_batch: Batch size for prompt processing
            sampler: Sampling strategy (default: GreedySampler)
            **kwargs: Additional ``llama_cpp.Llama`` options

        Raises:
            FileNotFoundError: If the model file does not exist
            ImportError: If llama-cpp-python is not installed
        """
        self.model_path = Path(model_path)
        self.n_gpu_layers = n_gpu_layers
        self.n_ctx = n_ctx
        self.n_batch = n_batch
        self.sampler = sampler or GreedySampler()
        self.llm = None

        logger.info(
            f"Initializing LlamaCppTokenBackend: model={model_path}, "
            f"n_gpu_layers={n_gpu_layers}"
        )

        if not self.model_path.exists():
            raise FileNotFoundError(f"Model file not found: {model_path}")

        self._load_model(**kwargs)
        self._token_texts: Dict[int, Optional[str]] = {}

    def _load_model(self, **kwargs):
        try:
            from llama_cpp import Llama
        except ImportError:
            raise ImportError(
                "llama-cpp-python is required. "
                "Install with: pip install 'guided-json[llamacpp]'"
            )

        logger.info(f"Loading GGUF model: {self.model_path}")

        load_kwargs = {
            'model_path': str(self.model_path),
            'n_gpu_layers': self.n_gpu_layers,
            'n_ctx': self.n_ctx,
            'n_batch': self.n_batch,
            'verbose': False,
        }
        load_kwargs.update(kwargs)

        try:
            self.llm = Llama(**load_kwargs)
            logger.info("Model loaded successfully")
        except Exception as e:
            logger.error(f"Failed to load model: {e}")
            raise

    @property
    def vocab_size(self) -> int:
        return self.llm.n_vocab()

    @property
    def end_tokens(self) -> FrozenSet[int]:
        return frozenset([self.llm.token_eos()])

    @property
    def vocabulary_id(self) -> Optional[str]:
        return f"llamacpp:{self.model_path.resolve()}"

    def is_special_token(self, token: int) -> bool:
        return token == self.llm.token_bos()

    def tokenize(self, text: str) -> List[int]:
        return self.llm.tokenize(text.encode('utf-8'), add_bos=False, special=False)

    def token_text(self, token: int) -> Optional[str]:
        """Decoded text of one token (None for partial UTF-8 sequences)."""
        if token not in self._token_texts:
            try:
                text = self.llm.detokenize([token]).decode('utf-8')
            except UnicodeDecodeError:
                text = None
            self._token_texts[token] = text
        return self._token_texts[token]

    def reset(self) -> None:
        self.llm.reset()

    def start(self, prompt: Optional[str] = None) -> None:
        self.reset()
        if prompt:
            tokens = self.llm.tokenize(prompt.encode('utf-8'), add_bos=True)
        else:
            tokens = [self.llm.token_bos()]
        logger.debug(f"Evaluating {len(tokens)} prompt tokens")
        self.llm.eval(tokens)

    def decode(self, token: int) -> None:
        self.llm.eval([token])

    def sample(self, allowed_tokens: AbstractSet[int]) -> int:
        if not allowed_tokens:
            raise ValueError("Cannot sample from an empty allowed-token set")

        if self.llm.n_tokens == 0:
            self.start()
        logits = self.llm.scores[self.llm.n_tokens - 1]
        return self.sampler.select(logits, allowed_tokens)

    def get_model_info(self) -> Dict[str, Any]:
        info = {
            'model_path': str(self.model_path),
            'backend': 'llamacpp',
            'n_gpu_layers': self.n_gpu_layers,
            'context_length': self.n_ctx,
            'n_batch': self.n_batch,
            'sampler': repr(self.sampler),
        }
        if self.llm:
            info['vocab_size'] = self.llm.n_vocab()
        return info

    def __repr__(self) -> str:
        return (
            f"LlamaCppTokenBackend(model={self.model_path.name}, "
            f"n_gpu_layers={self.n_gpu_layers})"
        )
