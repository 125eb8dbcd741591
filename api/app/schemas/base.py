"""Shared schema base: camelCase on the wire, snake_case in Python."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model whose JSON keys are camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class OkResponse(CamelModel):
    ok: bool = True


class SuccessResponse(CamelModel):
    success: bool = True
    message: str


def to_iso(value: datetime | None) -> str | None:
    """ISO-8601 timestamp; naive values (SQLite) are treated as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()
