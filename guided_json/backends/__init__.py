"""
Model backend module.

The constrained decoder drives models through the narrow TokenBackend
interface (tokenize, token_text, decode, sample, vocab_size), so the same
decoding logic works against HuggingFace transformers, llama.cpp or a test
double.

Components:
    - base: TokenBackend ABC and BackendFactory
    - sampling: pluggable sampling strategies (greedy, multinomial)
    - transformers_backend: HuggingFace transformers implementation
    - llamacpp_backend: llama.cpp implementation with Metal support
    - device_utils: Device detection (MPS, CUDA, CPU)

Apple Silicon Optimization:
    - transformers: Uses MPS (Metal Performance Shaders) via torch.device("mps")
    - llama.cpp: Uses Metal acceleration via n_gpu_layers=-1

Example:
    ```python
    from guided_json.backends import BackendFactory, MultinomialSampler

    backend = BackendFactory.create(
        "TinyLlama/TinyLlama-1.1B-Chat-v1.0",
        device="mps",
        sampler=MultinomialSampler(temperature=0.7, seed=1),
    )
    ```
"""

from guided_json.backends.base import BackendFactory, TokenBackend
from guided_json.backends.device_utils import (
    get_device_info,
    is_cuda_available,
    is_mps_available,
    resolve_device,
)
from guided_json.backends.llamacpp_backend import LlamaCppTokenBackend
from guided_json.backends.sampling import (
    GreedySampler,
    MultinomialSampler,
    SamplingStrategy,
    build_sampler,
)
from guided_json.backends.transformers_backend import TransformersTokenBackend

__all__ = [
    "TokenBackend",
    "BackendFactory",
    "TransformersTokenBackend",
    "LlamaCppTokenBackend",
    "SamplingStrategy",
    "GreedySampler",
    "MultinomialSampler",
    "build_sampler",
    "resolve_device",
    "is_mps_available",
    "is_cuda_available",
    "get_device_info",
]
