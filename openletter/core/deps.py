"""Dependency injection for FastAPI routes."""

from collections.abc import AsyncGenerator
from typing import Annotated, Any

from fastapi import Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from openletter.core.auth import (
    CurrentUser,
    OptionalUser,
    get_current_user,
    get_optional_user,
)
from openletter.core.config import settings
from openletter.core.database import get_async_session
from openletter.models.letter import Letter
from openletter.services.letter_service import LetterService
from openletter.services.signature_service import SignatureService


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Alias for get_async_session so tests can override one name."""
    async for session in get_async_session():
        yield session


# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]


def get_letter_service(db: DBSession) -> LetterService:
    return LetterService(db, settings.secret_key, settings.password_hash_iterations)


def get_signature_service(db: DBSession) -> SignatureService:
    return SignatureService(
        db,
        settings.secret_key,
        token_ttl_days=settings.confirmation_token_ttl_days,
    )


LetterServiceDep = Annotated[LetterService, Depends(get_letter_service)]
SignatureServiceDep = Annotated[SignatureService, Depends(get_signature_service)]


async def load_letter(
    service: LetterService,
    slug: str,
    locale: str | None = None,
) -> Letter:
    """Resolve ``slug`` (and optional ``locale``) to a letter row, or 404."""
    letter = await service.get_letter(slug, locale)
    if letter is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Letter not found",
        )
    return letter


async def load_managed_letter(
    service: LetterService,
    slug: str,
    user: dict[str, Any] | None,
    password: str | None,
    locale: str | None = None,
) -> Letter:
    """Like load_letter, but only for the owner or password holders."""
    letter = await load_letter(service, slug, locale)
    if not service.can_manage(letter, user, password):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You are not allowed to manage this letter",
        )
    return letter


__all__ = [
    "CurrentUser",
    "DBSession",
    "LetterServiceDep",
    "OptionalUser",
    "SignatureServiceDep",
    "get_current_user",
    "get_db",
    "get_letter_service",
    "get_optional_user",
    "get_signature_service",
    "load_letter",
    "load_managed_letter",
]
