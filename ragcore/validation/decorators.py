"""
ragcore — Validation Decorators

Applies Pydantic validation to async MCP tools and converts failures into
structured error responses.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, ValidationError

from ..errors import ErrorCode, make_error_response
from ..observability import get_observability

logger = logging.getLogger(__name__)


def validate_input(
    schema: type[BaseModel],
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[Any]]]:
    """
    Decorator to validate tool inputs using a Pydantic schema.

    Args:
        schema: Pydantic model class for input validation

    Returns:
        Decorated coroutine function receiving validated keyword arguments

    Error Response:
        {
            "success": False,
            "error_code": "INVALID_INPUT",
            "message": "Input validation failed",
            "details": {
                "validation_errors": [
                    {"field": "query", "message": "...", "type": "string_too_short"}
                ],
                "function": "search_knowledge"
            }
        }
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                validated = schema(**kwargs)
            except ValidationError as e:
                validation_errors = [
                    {
                        "field": " -> ".join(str(loc) for loc in error["loc"]),
                        "message": error["msg"],
                        "type": error["type"],
                    }
                    for error in e.errors()
                ]

                logger.warning(
                    f"Input validation failed for {func.__name__}",
                    extra={"function": func.__name__, "validation_errors": validation_errors},
                )
                get_observability().increment(
                    "validation.failed",
                    tags={"function": func.__name__},
                )

                return make_error_response(
                    error_code=ErrorCode.INVALID_INPUT,
                    message="Input validation failed",
                    context={"validation_errors": validation_errors, "function": func.__name__},
                )

            return await func(*args, **validated.model_dump())

        return wrapper

    return decorator
