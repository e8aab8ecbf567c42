"""Pydantic schemas for signatures."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field, field_validator

from openletter.schemas.common import BaseSchema

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class SignatureCreate(BaseSchema):
    """Signature form submission."""

    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    occupation: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, max_length=255)
    organization: str | None = Field(default=None, max_length=255)
    share_email: bool = False

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("name")
    @classmethod
    def require_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("occupation", "city", "organization")
    @classmethod
    def strip_blank(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class SignatureResponse(BaseSchema):
    """Public view of a signature. Emails are never listed."""

    id: UUID
    name: str
    occupation: str | None
    city: str | None
    organization: str | None
    is_verified: bool
    created_at: datetime


class SignatureStats(BaseSchema):
    total: int
    verified: int


class VerifiedSignatures(BaseSchema):
    """Verified signatures for a letter page.

    Either ``all`` is filled, or ``first``/``latest`` hold samples from both
    ends of a list too long to send in full.
    """

    all: list[SignatureResponse] = Field(default_factory=list)
    first: list[SignatureResponse] | None = None
    latest: list[SignatureResponse] | None = None

    @property
    def sampled(self) -> bool:
        return self.first is not None


class SignResponse(BaseSchema):
    status: Literal["signature_sent"] = "signature_sent"
