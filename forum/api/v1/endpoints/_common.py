"""Helpers shared by the resource endpoints."""

from __future__ import annotations

from typing import Any, TypeVar

from fastapi import Request
from pydantic import BaseModel, ValidationError

from forum.core.exceptions import (
    BAD_JSON_MESSAGE,
    BadRequestError,
    EditConflictError,
    FailedValidationError,
    field_errors,
)
from forum.schemas.filters import Filters

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def check_sort(filters: Filters, safelist: tuple[str, ...]) -> None:
    if filters.sort not in safelist:
        raise FailedValidationError({"sort": "invalid sort value"})


def check_expected_version(expected: str | None, current: int) -> None:
    """Reject the write early when the client read an older version."""
    if expected is not None and expected.strip() != str(current):
        raise EditConflictError()


def json_body(schema: type[BaseModel]) -> dict[str, Any]:
    """OpenAPI description for a body that ``read_body`` parses by hand."""
    return {
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": schema.model_json_schema()}},
        }
    }


async def read_body(request: Request, schema: type[SchemaT]) -> SchemaT:
    """Decode and validate the JSON body.

    Guarded handlers call this after their permission dependencies have run,
    so an unauthorised caller never learns anything about body parsing.
    """
    try:
        payload = await request.json()
    except ValueError:
        raise BadRequestError(BAD_JSON_MESSAGE) from None
    try:
        return schema.model_validate(payload)
    except ValidationError as exc:
        raise FailedValidationError(field_errors(exc.errors())) from None
