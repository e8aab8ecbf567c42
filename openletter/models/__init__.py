"""SQLAlchemy models."""

from openletter.models.base import Base
from openletter.models.letter import Letter, LetterType
from openletter.models.signature import Signature

__all__ = [
    "Base",
    "Letter",
    "LetterType",
    "Signature",
]
