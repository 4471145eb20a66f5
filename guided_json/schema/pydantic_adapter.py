"""
Pydantic integration - turn BaseModel classes into JSON Schema dicts.

Pydantic v2 emits nested models under ``$defs`` with ``#/$defs/...``
references and optional fields as ``anyOf: [<type>, {"type": "null"}]``,
both of which ``parse_schema`` understands directly.
"""

import logging
from typing import Any, Dict

from guided_json.errors import SchemaError

logger = logging.getLogger(__name__)


def is_pydantic_model(obj: Any) -> bool:
    """Return True if ``obj`` is a Pydantic BaseModel subclass."""
    try:
        from pydantic import BaseModel
    except ImportError:
        return False

    return isinstance(obj, type) and issubclass(obj, BaseModel)


def pydantic_to_schema(model: type) -> Dict[str, Any]:
    """
    Convert a Pydantic model class to a JSON Schema dictionary.

    Args:
        model: Pydantic BaseModel subclass

    Returns:
        Dict: JSON Schema for the model

    Raises:
        SchemaError: If ``model`` is not a Pydantic model

    Example:
        ```python
        from pydantic import BaseModel

        class Point(BaseModel):
            x: int
            y: int

        pydantic_to_schema(Point)["properties"]
        # {'x': {'title': 'X', 'type': 'integer'}, 'y': {'title': 'Y', 'type': 'integer'}}
        ```
    """
    if not is_pydantic_model(model):
        raise SchemaError(f"{model!r} is not a Pydantic model")

    schema = model.model_json_schema()
    logger.debug(f"Converted Pydantic model {model.__name__} to JSON Schema")
    return schema
