from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..api_client import RiderApiClient
from ..exceptions import InvalidArgumentError, ServerError

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class BaseClient:
    api: RiderApiClient


def require_id(value: object, name: str) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise InvalidArgumentError(code="INVALID_ARGUMENT", message=f"{name} is required")
    return text


def parse_model(model: type[ModelT], data: Any, what: str) -> ModelT:
    if not isinstance(data, dict):
        raise ServerError(code="MALFORMED_RESPONSE", message=f"Expected {what} response to be a JSON object")
    try:
        return model.model_validate(data)
    except PydanticValidationError as exc:
        raise ServerError(
            code="MALFORMED_RESPONSE",
            message=f"Unexpected {what} response shape",
            details=exc.errors(include_url=False),
        ) from exc


def parse_model_list(model: type[ModelT], data: Any, what: str) -> list[ModelT]:
    if isinstance(data, dict):
        for key in ("data", "items", "rows"):
            if isinstance(data.get(key), list):
                data = data[key]
                break
    if not isinstance(data, list):
        raise ServerError(code="MALFORMED_RESPONSE", message=f"Expected {what} response to be a JSON array")
    return [parse_model(model, item, what) for item in data]
