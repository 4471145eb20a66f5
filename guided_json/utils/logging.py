"""
Logging configuration.

Library modules only create ``logging.getLogger(__name__)`` loggers; the
application decides where records go. The CLI calls ``setup_logging`` once,
which routes the ``guided_json`` logger through rich.

Example:
    ```python
    from guided_json.utils import setup_logging

    setup_logging(level="DEBUG")
    ```
"""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "guided_json"


def setup_logging(
    level: Union[str, int] = "WARNING",
    rich_tracebacks: bool = True,
    console: Optional[Console] = None
) -> logging.Logger:
    """
    Configure the package logger with a RichHandler.

    Calling it again replaces the previous handler instead of adding a
    second one.

    Args:
        level: Level name ("DEBUG", "INFO", ...) or number
        rich_tracebacks: Render exception tracebacks with rich
        console: Console to log to (default: stderr)

    Returns:
        logging.Logger: The configured ``guided_json`` logger

    Raises:
        ValueError: If ``level`` is not a known level name
    """
    if isinstance(level, str):
        numeric = logging.getLevelName(level.upper())
        if not isinstance(numeric, int):
            raise ValueError(f"Unknown log level: {level}")
        level = numeric

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=rich_tracebacks,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger
