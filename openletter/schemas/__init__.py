"""Pydantic schemas for request/response validation."""

from openletter.schemas.common import ErrorDetail, ErrorResponse, HealthResponse
from openletter.schemas.letter import (
    LetterCreate,
    LetterCreateRequest,
    LetterDetail,
    LetterPatch,
    LetterResponse,
    LetterSummary,
    LetterUpdateRequest,
    LetterUpdateResponse,
    SubscribersByLocale,
)
from openletter.schemas.signature import (
    SignatureCreate,
    SignatureResponse,
    SignatureStats,
    SignResponse,
    VerifiedSignatures,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    # Letters
    "LetterCreate",
    "LetterCreateRequest",
    "LetterDetail",
    "LetterPatch",
    "LetterResponse",
    "LetterSummary",
    "LetterUpdateRequest",
    "LetterUpdateResponse",
    "SubscribersByLocale",
    # Signatures
    "SignatureCreate",
    "SignatureResponse",
    "SignatureStats",
    "SignResponse",
    "VerifiedSignatures",
]
