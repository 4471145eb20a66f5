"""
Torch device selection for the transformers backend.

Auto-detection order is Apple Silicon MPS, then CUDA, then CPU. An explicit
request for an accelerator that is not present falls back to CPU with a
warning rather than failing at model load.

Usage:
    ```python
    from guided_json.backends.device_utils import resolve_device

    resolve_device(None)    # "mps" on an M-series Mac
    resolve_device("cuda")  # "cpu" (with a warning) on a machine without CUDA
    ```
"""

import logging
import platform
from typing import Any, Dict, Optional

import torch

logger = logging.getLogger(__name__)

SUPPORTED_DEVICES = ("mps", "cuda", "cpu")


def is_mps_available() -> bool:
    mps = getattr(torch.backends, "mps", None)
    return bool(mps is not None and mps.is_available())


def is_cuda_available() -> bool:
    return torch.cuda.is_available()


def resolve_device(requested: Optional[str] = None) -> str:
    """
    Turn a user device request into a usable torch device name.

    Args:
        requested: "mps", "cuda", "cpu" (case-insensitive) or None to
            auto-detect

    Returns:
        str: One of SUPPORTED_DEVICES

    Raises:
        ValueError: If ``requested`` is not a supported device name
    """
    availability = {"mps": is_mps_available, "cuda": is_cuda_available}

    if requested is None:
        for name, available in availability.items():
            if available():
                logger.info(f"Auto-selected device: {name}")
                return name
        logger.info("No accelerator found, using CPU")
        return "cpu"

    device = requested.lower()
    if device not in SUPPORTED_DEVICES:
        raise ValueError(f"Unknown device {requested!r}; use one of {', '.join(SUPPORTED_DEVICES)}")

    if device != "cpu" and not availability[device]():
        logger.warning(f"{device.upper()} requested but not available, using CPU")
        return "cpu"
    return device


def get_device_info() -> Dict[str, Any]:
    """Platform and accelerator summary for ``guided-json inspect-vocab``."""
    info: Dict[str, Any] = {
        'platform': f"{platform.system()} {platform.machine()}",
        'torch_version': torch.__version__,
        'mps_available': is_mps_available(),
        'cuda_available': is_cuda_available(),
    }
    if info['cuda_available']:
        info['cuda_device_count'] = torch.cuda.device_count()
    return info
