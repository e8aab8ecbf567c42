"""Common Pydantic schemas used across the API."""

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
    )


class HealthResponse(BaseSchema):
    """Health check response schema."""

    status: str
    version: str
    environment: str
    checks: dict[str, str]


class ErrorDetail(BaseSchema):
    """Body of the ``error`` envelope."""

    code: int
    message: str
    fields: list[str] | None = None


class ErrorResponse(BaseSchema):
    """Every non-2xx response is ``{"error": {...}}``."""

    error: ErrorDetail
