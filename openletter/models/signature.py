"""Signature model: one signer on one letter locale row."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from openletter.models.base import Base

if TYPE_CHECKING:
    from openletter.models.letter import Letter


class Signature(Base):
    """A signature on a letter.

    Signatures start unverified and become verified once the signer follows
    the emailed confirmation link. Only verified signatures with an email
    count as subscribers of the letter.
    """

    __tablename__ = "signatures"

    letter_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("letters.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Signer details shown publicly
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    occupation: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str | None] = mapped_column(String(255), nullable=True)
    organization: Mapped[str | None] = mapped_column(String(255), nullable=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    share_email: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        index=True,
    )
    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    letter: Mapped["Letter"] = relationship(
        "Letter",
        back_populates="signatures",
    )

    def __repr__(self) -> str:
        state = "verified" if self.is_verified else "pending"
        return f"<Signature {self.name} ({state})>"
