"""Request models for the public memory operations."""

from __future__ import annotations

from typing import Any, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, ValidationInfo, field_validator

from recollect.models import Category

ModelT = TypeVar("ModelT", bound=BaseModel)


class InvalidRequest(ValueError):
    """A request was rejected before touching storage."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class _Request(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


class StoreRequest(_Request):
    text: str = Field(min_length=1)
    category: Category = Category.OTHER


class SearchRequest(_Request):
    query: str = Field(min_length=1)
    limit: int | None = Field(default=None, strict=True, validate_default=True)

    @field_validator("limit")
    @classmethod
    def _check_limit(cls, value: int | None, info: ValidationInfo) -> int:
        context = info.context or {}
        max_limit = context.get("max_limit", 20)
        if value is None:
            return context.get("default_limit", 5)
        if not 1 <= value <= max_limit:
            raise ValueError(f"must be between 1 and {max_limit}")
        return value


class ForgetRequest(_Request):
    id: str = Field(min_length=1)


def parse_request(model: Type[ModelT], data: dict[str, Any], **context: Any) -> ModelT:
    """Validate ``data`` against ``model``, raising :class:`InvalidRequest` on failure."""
    try:
        return model.model_validate(data, context=context)
    except ValidationError as exc:
        error = exc.errors()[0]
        field = ".".join(str(part) for part in error["loc"]) or model.__name__
        raise InvalidRequest(field, error["msg"]) from exc
