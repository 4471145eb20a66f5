"""
Utility functions and helpers shared across guided_json components.

Example:
    ```python
    from guided_json.utils import setup_logging

    setup_logging(level="INFO")
    ```
"""

from guided_json.utils.logging import setup_logging

__all__ = ["setup_logging"]
