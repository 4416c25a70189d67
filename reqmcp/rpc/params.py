"""Helpers for turning raw ``params`` into typed handler arguments."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from reqmcp.rpc.errors import invalid_params, validation_error

ModelT = TypeVar("ModelT", bound=BaseModel)


def _format_validation_error(e: ValidationError) -> str:
    parts = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "params"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


def extract_params(params: Any, model: type[ModelT]) -> ModelT:
    """Validate params against a pydantic model.

    Args:
        params: Raw params value from the request.
        model: Model describing the expected parameters.

    Returns:
        The validated model instance.

    Raises:
        JsonRpcError: Invalid params when params are absent or do not fit
            the model.
    """
    if params is None:
        raise invalid_params("Parameters are required")
    try:
        return model.model_validate(params)
    except ValidationError as e:
        raise invalid_params(f"Parameter validation failed: {_format_validation_error(e)}") from e


def validate_with(value: ModelT, check: Callable[[ModelT], None]) -> ModelT:
    """Run a semantic check on validated params.

    ``check`` raises ValueError to reject the value; the message becomes
    the validation error detail.

    Raises:
        JsonRpcError: Validation error (-32003).
    """
    try:
        check(value)
    except ValueError as e:
        raise validation_error(str(e)) from e
    return value
