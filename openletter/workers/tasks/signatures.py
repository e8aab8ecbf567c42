"""Celery tasks for signature confirmation emails."""

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any, TypeVar
from uuid import UUID

from sqlalchemy import select

from openletter.core.config import settings
from openletter.core.database import async_session_maker, engine
from openletter.models.letter import Letter
from openletter.models.signature import Signature
from openletter.services.email_service import EmailService, build_confirmation_url
from openletter.services.signature_service import SignatureService
from openletter.workers.celery_app import BaseTask, celery_app

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine in a fresh event loop, disposing pooled connections after.

    asyncpg connections are bound to the loop that opened them, and each task
    gets a new loop.
    """
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.run_until_complete(engine.dispose())
        loop.close()


@celery_app.task(  # type: ignore[untyped-decorator]
    name="tasks.signatures.send_confirmation_email",
    base=BaseTask,
    bind=True,
)
def send_confirmation_email(
    self: BaseTask,  # noqa: ARG001
    signature_id: str,
) -> dict[str, Any]:
    """Email the signer the link that verifies their signature."""
    return _run_async(_send_confirmation_email_async(UUID(signature_id)))


async def _send_confirmation_email_async(signature_id: UUID) -> dict[str, Any]:
    async with async_session_maker() as session:
        stmt = (
            select(Signature, Letter)
            .join(Letter, Letter.id == Signature.letter_id)
            .where(Signature.id == signature_id)
        )
        row = (await session.execute(stmt)).one_or_none()
        if row is None:
            logger.warning("Signature %s not found, confirmation email not sent", signature_id)
            return {"status": "ignored", "reason": "signature not found"}

        signature, letter = row
        if signature.is_verified or not signature.email:
            return {"status": "ignored", "reason": "already verified"}

        service = SignatureService(
            session,
            settings.secret_key,
            token_ttl_days=settings.confirmation_token_ttl_days,
        )
        token = service.confirmation_token(signature, letter)

    email_id = await EmailService().send_signature_confirmation(
        to_email=signature.email,
        name=signature.name,
        letter_title=letter.title,
        confirm_url=build_confirmation_url(token),
        locale=letter.locale,
    )
    return {"status": "sent" if email_id else "failed", "email_id": email_id}
