"""Letter API endpoints: publishing, listing, updates, subscribers and signing."""

import logging
from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, Query, Request, Response, status
from kombu.exceptions import OperationalError

from openletter.core.config import settings
from openletter.core.deps import (
    LetterServiceDep,
    OptionalUser,
    SignatureServiceDep,
    load_letter,
    load_managed_letter,
)
from openletter.core.rate_limit import limiter, sign_rate_limit
from openletter.models.letter import Letter
from openletter.schemas.letter import (
    LOCALE_PATTERN,
    LetterCreateRequest,
    LetterDetail,
    LetterPatch,
    LetterResponse,
    LetterSummary,
    LetterUpdateRequest,
    LetterUpdateResponse,
    SubscribersByLocale,
)
from openletter.schemas.signature import SignatureCreate, SignResponse
from openletter.services.letter_service import EmptyLetterError
from openletter.services.text_service import text_to_html

logger = logging.getLogger(__name__)

router = APIRouter()

LetterPassword = Annotated[str | None, Header(alias="X-Letter-Password")]


def _require_locale(letter: Letter, locale: str) -> None:
    if letter.locale != locale:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Letter has no '{locale}' version",
        )


def _as_html(letter: Letter) -> LetterResponse:
    response = LetterResponse.model_validate(letter)
    response.text = text_to_html(letter.text)
    return response


# === Listing & publishing ===


@router.get(
    "",
    response_model=list[LetterSummary],
    summary="List letters",
    description="Latest (or featured) letters with enough signatures, grouped across locales.",
)
async def list_letters(
    response: Response,
    service: LetterServiceDep,
    locale: str | None = Query(default=None, pattern=LOCALE_PATTERN),
    featured: bool = False,
    limit: int = Query(default=10, ge=1, le=100),
    min_signatures: int | None = Query(default=None, ge=0),
) -> list[LetterSummary]:
    """List recent letters."""
    if min_signatures is None:
        min_signatures = settings.default_min_signatures
    response.headers["Cache-Control"] = settings.letter_cache_control
    return await service.list_letters(
        locale=locale,
        featured=featured,
        limit=limit,
        min_signatures=min_signatures,
    )


@router.post(
    "",
    response_model=list[LetterResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Publish letter",
    description="Publish a letter in one or more locales. Locales without text are dropped.",
)
async def create_letter(
    data: LetterCreateRequest,
    service: LetterServiceDep,
    user: OptionalUser,
) -> list[LetterResponse]:
    """Publish a new letter."""
    defaults = {
        "type": data.type,
        "user_id": user.get("sub") if user else None,
        "password": data.password,
    }
    letters = await service.create_with_locales(
        data.letters,
        {k: v for k, v in defaults.items() if v is not None},
    )
    if not letters:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="A letter needs text in at least one locale",
        )
    return [LetterResponse.model_validate(letter) for letter in letters]


# === Letter page ===


@router.get(
    "/{slug}",
    response_model=LetterDetail,
    summary="Get letter",
    description="Letter page payload: content, locales, updates and verified signatures.",
)
async def get_letter(
    slug: str,
    response: Response,
    service: LetterServiceDep,
    signatures: SignatureServiceDep,
    locale: str | None = Query(default=None, pattern=LOCALE_PATTERN),
    limit: int = Query(
        default=settings.signature_sample_size,
        ge=0,
        description="Verified signatures to return; 0 returns all of them",
    ),
) -> LetterDetail:
    """Get one locale of a letter with its signatures."""
    letter = await load_letter(service, slug, locale)
    locales = await service.get_locales(letter)
    stats = await signatures.get_stats(letter)
    verified = await signatures.get_verified_signatures(letter, limit, stats.verified)

    response.headers["Cache-Control"] = settings.letter_cache_control
    return LetterDetail(
        **_as_html(letter).model_dump(),
        locales=[row.locale for row in locales],
        updates=[_as_html(update) for update in letter.updates],
        signatures=verified.first if verified.sampled else verified.all,
        signatures_stats=stats,
        first_verified_signatures=verified.first,
        latest_verified_signatures=verified.latest,
    )


# === Owner operations ===


@router.post(
    "/{slug}/updates",
    response_model=list[LetterUpdateResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Post update",
    description="Attach an update to each locale of the letter that has a matching entry.",
)
async def create_update(
    slug: str,
    data: LetterUpdateRequest,
    service: LetterServiceDep,
    user: OptionalUser,
    password: LetterPassword = None,
) -> list[LetterUpdateResponse]:
    """Post an update to a letter."""
    parent = await load_managed_letter(service, slug, user, password)
    updates = await service.create_update(parent, data.updates)
    if not updates:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="No update matches a locale of this letter",
        )
    return [LetterUpdateResponse.model_validate(update) for update in updates]


@router.get(
    "/{slug}/subscribers",
    response_model=SubscribersByLocale,
    summary="Subscribers by locale",
)
async def get_subscribers_by_locale(
    slug: str,
    service: LetterServiceDep,
    user: OptionalUser,
    password: LetterPassword = None,
) -> SubscribersByLocale:
    """Verified signers who agreed to share their email, for every locale."""
    letter = await load_managed_letter(service, slug, user, password)
    return await service.get_subscribers_by_locale(letter)


@router.patch(
    "/{slug}/{locale}",
    response_model=LetterResponse,
    summary="Edit letter locale",
)
async def update_letter(
    slug: str,
    locale: str,
    data: LetterPatch,
    service: LetterServiceDep,
    user: OptionalUser,
    password: LetterPassword = None,
) -> LetterResponse:
    """Edit the title, text, image or password of one locale."""
    letter = await load_managed_letter(service, slug, user, password, locale)
    _require_locale(letter, locale)
    try:
        letter = await service.update_letter(letter, data)
    except EmptyLetterError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(e),
        )
    return LetterResponse.model_validate(letter)


@router.get(
    "/{slug}/{locale}/subscribers",
    response_model=list[str],
    summary="Subscribers of one locale",
)
async def get_subscribers(
    slug: str,
    locale: str,
    service: LetterServiceDep,
    user: OptionalUser,
    password: LetterPassword = None,
) -> list[str]:
    """Verified signers of one locale who agreed to share their email."""
    letter = await load_managed_letter(service, slug, user, password, locale)
    _require_locale(letter, locale)
    return await service.get_subscribers(letter)


# === Signing ===


@router.post(
    "/{slug}/{locale}/sign",
    response_model=SignResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign letter",
    description="Record an unverified signature and email the signer a confirmation link.",
)
@limiter.limit(sign_rate_limit)
async def sign_letter(
    request: Request,  # noqa: ARG001  # required by slowapi
    slug: str,
    locale: str,
    data: SignatureCreate,
    service: LetterServiceDep,
    signatures: SignatureServiceDep,
) -> SignResponse:
    """Sign a letter."""
    from openletter.workers.tasks.signatures import send_confirmation_email

    letter = await load_letter(service, slug, locale)
    signature = await signatures.sign(letter, data)
    try:
        send_confirmation_email.delay(str(signature.id))
    except OperationalError:
        # The signature row is already committed
        logger.exception("Could not queue confirmation email for signature %s", signature.id)
    return SignResponse()
