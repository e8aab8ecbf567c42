"""Pydantic schemas for letters."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import Field, model_validator

from openletter.schemas.common import BaseSchema
from openletter.schemas.signature import SignatureResponse, SignatureStats

LOCALE_PATTERN = r"^[a-z]{2}(-[A-Za-z]{2})?$"

# === Requests ===


class LetterCreate(BaseSchema):
    """One locale variant of a letter being published."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    text: str | None = Field(default=None, description="HTML body, sanitized on save")
    locale: str = Field(default="en", pattern=LOCALE_PATTERN)
    image: str | None = Field(default=None, max_length=2048)


class LetterCreateRequest(BaseSchema):
    """Publish a letter in one or more locales."""

    letters: list[LetterCreate] = Field(..., min_length=1)
    type: Literal["letter", "info"] = "letter"
    password: str | None = Field(
        default=None,
        min_length=6,
        max_length=128,
        description="Lets anonymous authors manage the letter later",
    )

    @model_validator(mode="after")
    def check_letters(self) -> "LetterCreateRequest":
        # The slug comes from the first title; later locales may omit theirs
        if not self.letters[0].title:
            raise ValueError("The first letter needs a title")
        _reject_duplicate_locales(self.letters)
        return self


class LetterUpdateRequest(BaseSchema):
    """Post an update to a letter, one entry per locale."""

    updates: list[LetterCreate] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_updates(self) -> "LetterUpdateRequest":
        if any(not update.title for update in self.updates):
            raise ValueError("Every update needs a title")
        _reject_duplicate_locales(self.updates)
        return self


def _reject_duplicate_locales(letters: list[LetterCreate]) -> None:
    seen: set[str] = set()
    for letter in letters:
        if letter.locale in seen:
            raise ValueError(f"Locale '{letter.locale}' is given more than once")
        seen.add(letter.locale)


class LetterPatch(BaseSchema):
    """Edit a single locale row. Only provided fields change."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    text: str | None = None
    image: str | None = Field(default=None, max_length=2048)
    password: str | None = Field(default=None, min_length=6, max_length=128)


# === Responses ===


class LetterResponse(BaseSchema):
    """Public fields of a letter row."""

    id: UUID
    slug: str
    locale: str
    title: str
    text: str | None
    image: str | None
    type: str
    user_id: str | None
    parent_letter_id: UUID | None
    featured_at: datetime | None
    created_at: datetime


class LetterUpdateResponse(LetterResponse):
    """An update together with the parent row it was attached to."""

    parent_letter: LetterResponse


class LetterSummary(BaseSchema):
    """One logical letter in a listing, grouped across locales."""

    slug: str
    created_at: datetime
    title: str | None
    text: str
    locales: str = Field(..., description="Comma-joined locale codes, e.g. 'en,fr'")
    total_signatures: int
    image: str | None
    featured_at: datetime | None


class LetterDetail(LetterResponse):
    """Letter page payload."""

    locales: list[str]
    updates: list[LetterResponse]
    signatures: list[SignatureResponse]
    signatures_stats: SignatureStats
    first_verified_signatures: list[SignatureResponse] | None = None
    latest_verified_signatures: list[SignatureResponse] | None = None


class SubscribersByLocale(BaseSchema):
    """Verified subscriber emails per locale; ``total`` counts all of them."""

    by_locale: dict[str, list[str]]
    total: int
