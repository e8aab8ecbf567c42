"""Letter model: one row per locale variant of an open letter."""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from openletter.core.security import derive_letter_token
from openletter.models.base import Base

if TYPE_CHECKING:
    from openletter.models.signature import Signature


class LetterType(str, enum.Enum):
    """Kind of page a letter row renders as."""

    LETTER = "letter"
    INFO = "info"


class Letter(Base):
    """A single locale variant of an open letter.

    All rows sharing a ``slug`` are translations of the same logical letter.
    Updates are letters of their own whose ``parent_letter_id`` points at the
    parent row in the same locale.
    """

    __tablename__ = "letters"
    __table_args__ = (UniqueConstraint("slug", "locale"),)

    slug: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    locale: Mapped[str] = mapped_column(String(10), nullable=False, default="en")
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    image: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=LetterType.LETTER.value,
    )

    # Never accepted from clients, never serialized
    token: Mapped[str | None] = mapped_column(String(64), nullable=True)
    password: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Subject id of the owner in the account service
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)

    parent_letter_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("letters.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    featured_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # Relationships
    parent_letter: Mapped["Letter | None"] = relationship(
        "Letter",
        remote_side="Letter.id",
        back_populates="updates",
    )
    updates: Mapped[list["Letter"]] = relationship(
        "Letter",
        back_populates="parent_letter",
        order_by="Letter.created_at",
    )
    signatures: Mapped[list["Signature"]] = relationship(
        "Signature",
        back_populates="letter",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def refresh_token(self, secret: str) -> str:
        """Recompute ``token`` from the current slug and owner."""
        self.token = derive_letter_token(self.slug, self.user_id, secret)
        return self.token

    def __repr__(self) -> str:
        return f"<Letter {self.slug} ({self.locale})>"
