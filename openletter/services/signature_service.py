"""Signing letters and confirming signatures."""

import logging
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from openletter.core.security import (
    InvalidConfirmationToken,
    create_confirmation_token,
    decode_confirmation_token,
)
from openletter.models.letter import Letter
from openletter.models.signature import Signature
from openletter.schemas.signature import (
    SignatureCreate,
    SignatureResponse,
    SignatureStats,
    VerifiedSignatures,
)

logger = logging.getLogger(__name__)


class SignatureService:
    """Creates signatures and moves them to the verified state."""

    def __init__(self, db: AsyncSession, secret: str, token_ttl_days: int = 30) -> None:
        self.db = db
        self.secret = secret
        self.token_ttl_days = token_ttl_days

    async def sign(self, letter: Letter, data: SignatureCreate) -> Signature:
        """Record an unverified signature on one locale row of a letter."""
        signature = Signature(
            letter_id=letter.id,
            name=data.name,
            occupation=data.occupation,
            city=data.city,
            organization=data.organization,
            email=data.email,
            share_email=data.share_email,
            is_verified=False,
        )
        self.db.add(signature)
        await self.db.commit()
        await self.db.refresh(signature)

        logger.info("New signature %s on %s (%s)", signature.id, letter.slug, letter.locale)
        return signature

    def confirmation_token(self, signature: Signature, letter: Letter) -> str:
        """Token for the link emailed to the signer."""
        if not letter.token:
            letter.refresh_token(self.secret)
        return create_confirmation_token(
            signature.id,
            letter.token or "",
            self.secret,
            ttl_days=self.token_ttl_days,
        )

    async def confirm(self, token: str) -> tuple[Signature, Letter]:
        """Verify the signature a confirmation link points at.

        Confirming twice is harmless. Once verified, the email of a signer
        who did not agree to share it with the author is dropped.

        Raises:
            InvalidConfirmationToken: If the token is invalid, expired, points
                at an unknown signature, or was issued for a letter whose
                token has since changed.
        """
        signature_id, letter_token = decode_confirmation_token(token, self.secret)

        stmt = (
            select(Signature, Letter)
            .join(Letter, Letter.id == Signature.letter_id)
            .where(Signature.id == signature_id)
        )
        row = (await self.db.execute(stmt)).one_or_none()
        if row is None:
            raise InvalidConfirmationToken("Signature not found")
        signature, letter = row
        if letter.token != letter_token:
            raise InvalidConfirmationToken("Confirmation link is no longer valid")

        if not signature.is_verified:
            signature.is_verified = True
            signature.verified_at = datetime.now(UTC)
            if not signature.share_email:
                signature.email = None
            await self.db.commit()
            logger.info("Signature %s verified on %s", signature.id, letter.slug)

        return signature, letter

    async def get_stats(self, letter: Letter) -> SignatureStats:
        stmt = select(
            func.count().label("total"),
            func.count().filter(Signature.is_verified.is_(True)).label("verified"),
        ).where(Signature.letter_id == letter.id)
        row = (await self.db.execute(stmt)).one()
        return SignatureStats(total=row.total or 0, verified=row.verified or 0)

    async def get_verified_signatures(
        self,
        letter: Letter,
        limit: int,
        verified_count: int | None = None,
    ) -> VerifiedSignatures:
        """Verified signatures for the letter page.

        With ``limit == 0`` or at most ``limit`` verified signatures, all of
        them are returned. Otherwise the ``limit // 2`` oldest and
        ``limit // 2`` newest are returned, both in signing order.
        """
        base = select(Signature).where(
            Signature.letter_id == letter.id,
            Signature.is_verified.is_(True),
        )
        if verified_count is None:
            verified_count = (await self.get_stats(letter)).verified

        if limit <= 0 or verified_count <= limit:
            stmt = base.order_by(Signature.created_at, Signature.id)
            rows = (await self.db.execute(stmt)).scalars().all()
            return VerifiedSignatures(all=[SignatureResponse.model_validate(s) for s in rows])

        half = max(limit // 2, 1)
        first_stmt = base.order_by(Signature.created_at, Signature.id).limit(half)
        latest_stmt = base.order_by(Signature.created_at.desc(), Signature.id.desc()).limit(half)
        first = (await self.db.execute(first_stmt)).scalars().all()
        latest = list(reversed((await self.db.execute(latest_stmt)).scalars().all()))
        return VerifiedSignatures(
            first=[SignatureResponse.model_validate(s) for s in first],
            latest=[SignatureResponse.model_validate(s) for s in latest],
        )
