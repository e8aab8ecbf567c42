"""Signature confirmation endpoint (target of the emailed link)."""

import logging

from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import RedirectResponse

from openletter.core.config import settings
from openletter.core.deps import SignatureServiceDep
from openletter.core.security import InvalidConfirmationToken
from openletter.models.letter import Letter

logger = logging.getLogger(__name__)

router = APIRouter()


def letter_page_url(letter: Letter) -> str:
    """Frontend URL of a letter; English pages carry no locale prefix."""
    prefix = "" if letter.locale == "en" else f"/{letter.locale}"
    return f"{settings.frontend_url}{prefix}/{letter.slug}"


@router.get(
    "/confirm",
    response_class=RedirectResponse,
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Confirm signature",
    description="Verify a signature from its emailed link and redirect to the letter page.",
)
async def confirm_signature(
    signatures: SignatureServiceDep,
    token: str = Query(..., min_length=1),
) -> RedirectResponse:
    """Verify a signature."""
    try:
        _, letter = await signatures.confirm(token)
    except InvalidConfirmationToken as e:
        logger.info("Rejected confirmation link: %s", e)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )

    return RedirectResponse(
        url=f"{letter_page_url(letter)}?confirmed=1",
        status_code=status.HTTP_303_SEE_OTHER,
    )
