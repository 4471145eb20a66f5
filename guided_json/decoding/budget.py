"""
Token budget tracking.

A single TokenBudget is shared by every component of a generation run. The
only way to spend budget is ``consume()``, which ``DecodingContext.decode``
calls exactly once per token pushed through the backend, so
``budget.used`` always equals the number of tokens decoded.
"""

import logging

from guided_json.errors import TokenBudgetExceeded

logger = logging.getLogger(__name__)


class TokenBudget:
    """
    Monotonically decreasing token counter.

    Attributes:
        total: Budget the run started with (constant)
        remaining: Tokens still available
    """

    def __init__(self, total: int):
        if isinstance(total, bool) or not isinstance(total, int) or total < 0:
            raise ValueError(f"Token budget must be a non-negative integer, got {total!r}")
        self.total = total
        self.remaining = total

    @property
    def used(self) -> int:
        return self.total - self.remaining

    @property
    def exhausted(self) -> bool:
        return self.remaining <= 0

    def require(self) -> None:
        """
        Fail unless at least one token is left.

        Raises:
            TokenBudgetExceeded: If the budget is exhausted
        """
        if self.remaining <= 0:
            logger.debug(f"Token budget of {self.total} exhausted")
            raise TokenBudgetExceeded(self.total)

    def consume(self) -> None:
        """Spend one token. There is no refund."""
        self.require()
        self.remaining -= 1

    def __repr__(self) -> str:
        return f"TokenBudget(remaining={self.remaining}, total={self.total})"
