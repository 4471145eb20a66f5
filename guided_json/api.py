"""
High-level Python API for guided_json.

This module provides the main user-facing API for constrained JSON generation.
"""

from guided_json.config import DecoderConfig
from guided_json.generator import GenerationResult, StructuredGenerator

__all__ = ["StructuredGenerator", "GenerationResult", "DecoderConfig"]
