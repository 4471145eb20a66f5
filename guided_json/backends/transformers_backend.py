"""
HuggingFace Transformers token backend with Apple Silicon MPS support.

Drives an ``AutoModelForCausalLM`` one token at a time so the constrained
decoder can choose every token itself:

    start(prompt)   run the prompt once and keep the KV cache
    sample(allowed) mask the last logits to ``allowed`` and let the
                    sampling strategy pick
    decode(token)   feed the chosen token, extending the KV cache

Features:
    - Auto device selection (MPS, CUDA, CPU)
    - Half precision on GPU, float32 on CPU
    - Memoized token texts for fast vocabulary classification

Usage:
    ```python
    from guided_json.backends import TransformersTokenBackend
    from guided_json.backends.sampling import MultinomialSampler

    backend = TransformersTokenBackend(
        "TinyLlama/TinyLlama-1.1B-Chat-v1.0",
        device="mps",
        sampler=MultinomialSampler(temperature=0.7, seed=0),
    )
    backend.start("Generate a user profile as JSON:")
    ```
"""

import logging
from typing import AbstractSet, Any, Dict, FrozenSet, List, Optional

from guided_json.backends.base import TokenBackend
from guided_json.backends.sampling import GreedySampler, SamplingStrategy

logger = logging.getLogger(__name__)


class TransformersTokenBackend(TokenBackend):
    """
    Token backend for HuggingFace causal language models.

    Attributes:
        model_id: HuggingFace model identifier
        device: Device the model runs on (mps, cuda, cpu)
        torch_dtype: Model precision
        sampler: SamplingStrategy used by ``sample``
        model: Loaded AutoModelForCausalLM
        tokenizer: Loaded AutoTokenizer
    """

    def __init__(
        self,
        model_id: str,
        device: Optional[str] = None,
        torch_dtype: Optional[Any] = None,
        sampler: Optional[SamplingStrategy] = None,
        **kwargs
    ):
        """
        Load model and tokenizer.

        Args:
            model_id: HuggingFace model identifier (e.g., "gpt2")
            device: "mps", "cuda", "cpu", or None for auto-detect
            torch_dtype: None for auto (float16 on GPU, float32 on CPU)
            sampler: Sampling strategy (default: GreedySampler)
            **kwargs: Extra arguments for ``from_pretrained``
        """
        try:
            import torch
        except ImportError:
            raise ImportError(
                "transformers and torch are required. "
                "Install with: pip install transformers torch"
            )

        self.model_id = model_id
        self.sampler = sampler or GreedySampler()
        self.model = None
        self.tokenizer = None

        from guided_json.backends.device_utils import resolve_device
        device = resolve_device(device)
        self.device = device

        if torch_dtype is None:
            self.torch_dtype = torch.float16 if device in ["mps", "cuda"] else torch.float32
        else:
            self.torch_dtype = torch_dtype

        logger.info(
            f"Initializing TransformersTokenBackend: model={model_id}, "
            f"device={device}, dtype={self.torch_dtype}"
        )

        self._load_model(**kwargs)
        self._load_tokenizer()

        self._token_texts: List[Optional[str]] = [None] * len(self.tokenizer)
        self._token_texts_loaded = [False] * len(self.tokenizer)
        self._special_ids = frozenset(self.tokenizer.all_special_ids)

        self._past_key_values = None
        self._logits = None

    def _load_model(self, **kwargs):
        from transformers import AutoModelForCausalLM
        import torch

        logger.info(f"Loading model: {self.model_id}")

        load_kwargs = {
            'torch_dtype': self.torch_dtype,
            'low_cpu_mem_usage': True,
        }
        load_kwargs.update(kwargs)

        try:
            self.model = AutoModelForCausalLM.from_pretrained(self.model_id, **load_kwargs)
            self.model = self.model.to(torch.device(self.device))
            self.model.eval()
            logger.info(f"Model loaded successfully on {self.device}")
        except Exception as e:
            logger.error(f"Failed to load model: {e}")
            raise

    def _load_tokenizer(self):
        from transformers import AutoTokenizer

        logger.info(f"Loading tokenizer: {self.model_id}")

        try:
            self.tokenizer = AutoTokenizer.from_pretrained(self.model_id)
        except Exception as e:
            logger.error(f"Failed to load tokenizer: {e}")
            raise

    @property
    def vocab_size(self) -> int:
        return len(self.tokenizer)

    @property
    def end_tokens(self) -> FrozenSet[int]:
        if self.tokenizer.eos_token_id is None:
            return frozenset()
        return frozenset([self.tokenizer.eos_token_id])

    @property
    def vocabulary_id(self) -> Optional[str]:
        return f"transformers:{self.model_id}"

    def is_special_token(self, token: int) -> bool:
        return token in self._special_ids

    def tokenize(self, text: str) -> List[int]:
        return self.tokenizer.encode(text, add_special_tokens=False)

    def token_text(self, token: int) -> Optional[str]:
        """
        Decoded text of one token, memoized.

        Tokens that decode to a partial UTF-8 sequence have no standalone
        text and return None.
        """
        if token < 0 or token >= len(self._token_texts):
            return None
        if not self._token_texts_loaded[token]:
            text = self.tokenizer.decode([token], clean_up_tokenization_spaces=False)
            self._token_texts[token] = None if "\ufffd" in text else text
            self._token_texts_loaded[token] = True
        return self._token_texts[token]

    def reset(self) -> None:
        self._past_key_values = None
        self._logits = None

    def start(self, prompt: Optional[str] = None) -> None:
        """
        Reset the KV cache and run the prompt through the model.

        Without a prompt the model is primed with its BOS token if it has
        one.
        """
        self.reset()

        if prompt:
            input_ids = self.tokenizer(prompt)["input_ids"]
        elif self.tokenizer.bos_token_id is not None:
            input_ids = [self.tokenizer.bos_token_id]
        else:
            input_ids = []

        if input_ids:
            logger.debug(f"Priming model with {len(input_ids)} prompt tokens")
            self._forward(input_ids)

    def decode(self, token: int) -> None:
        self._forward([token])

    def sample(self, allowed_tokens: AbstractSet[int]) -> int:
        if not allowed_tokens:
            raise ValueError("Cannot sample from an empty allowed-token set")

        if self._logits is None:
            import torch
            # No context yet: every token is equally likely
            logits = torch.zeros(self.vocab_size)
        else:
            logits = self._logits
        return self.sampler.select(logits, allowed_tokens)

    def _forward(self, input_ids: List[int]) -> None:
        import torch

        ids = torch.tensor([input_ids], dtype=torch.long, device=self.device)
        try:
            with torch.no_grad():
                outputs = self.model(
                    input_ids=ids,
                    past_key_values=self._past_key_values,
                    use_cache=True,
                )
        except Exception as e:
            logger.error(f"Forward pass failed: {e}")
            raise

        self._past_key_values = outputs.past_key_values
        self._logits = outputs.logits[0, -1, :self.vocab_size]

    def get_model_info(self) -> Dict[str, Any]:
        """
        Model metadata.

        Example:
            ```python
            info = backend.get_model_info()
            print(f"Vocab size: {info['vocab_size']}")
            ```
        """
        info = {
            'model_id': self.model_id,
            'device': self.device,
            'dtype': str(self.torch_dtype),
            'backend': 'transformers',
            'sampler': repr(self.sampler),
            'vocab_size': self.vocab_size,
        }

        config = getattr(self.model, 'config', None)
        if config is not None:
            if hasattr(config, 'max_position_embeddings'):
                info['context_length'] = config.max_position_embeddings
            if hasattr(config, 'num_hidden_layers'):
                info['num_layers'] = config.num_hidden_layers

        return info

    def __repr__(self) -> str:
        return (
            f"TransformersTokenBackend(model={self.model_id}, "
            f"device={self.device}, dtype={self.torch_dtype})"
        )
