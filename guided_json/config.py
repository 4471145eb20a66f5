"""
Decoder configuration.

All tunable constants of the constrained decoder live here so that backends,
the CLI and tests can override them in one place.
"""

from dataclasses import dataclass


@dataclass
class DecoderConfig:
    """
    Tunable limits for a structured-generation run.

    Attributes:
        default_array_count: Element count for arrays without minItems/maxItems
        min_string_tokens: Floor of the per-string token cap
        string_budget_divisor: A single free string may use at most
            total_budget // string_budget_divisor tokens (but never less than
            min_string_tokens)
        max_integer_tokens: Maximum digit tokens in the integer part of a number
        max_fraction_tokens: Maximum digit tokens after the decimal point
        max_ref_depth: Maximum nested $ref resolutions on one path
        allow_negative_numbers: Offer the '-' token at the start of numbers
    """

    default_array_count: int = 4
    min_string_tokens: int = 32
    string_budget_divisor: int = 4
    max_integer_tokens: int = 3
    max_fraction_tokens: int = 4
    max_ref_depth: int = 32
    allow_negative_numbers: bool = True

    def __post_init__(self):
        if self.default_array_count < 0:
            raise ValueError("default_array_count must be >= 0")
        if self.min_string_tokens < 1:
            raise ValueError("min_string_tokens must be >= 1")
        if self.string_budget_divisor < 1:
            raise ValueError("string_budget_divisor must be >= 1")
        if self.max_integer_tokens < 1:
            raise ValueError("max_integer_tokens must be >= 1")
        if self.max_fraction_tokens < 1:
            raise ValueError("max_fraction_tokens must be >= 1")
        if self.max_ref_depth < 1:
            raise ValueError("max_ref_depth must be >= 1")

    def string_token_cap(self, remaining: int, total: int) -> int:
        """
        Per-string token cap: min(remaining, max(floor, total // divisor)).

        Example:
            ```python
            DecoderConfig().string_token_cap(remaining=500, total=1000)  # 250
            DecoderConfig().string_token_cap(remaining=10, total=1000)   # 10
            DecoderConfig().string_token_cap(remaining=90, total=100)    # 32
            ```
        """
        per_string = max(self.min_string_tokens, total // self.string_budget_divisor)
        return min(remaining, per_string)
