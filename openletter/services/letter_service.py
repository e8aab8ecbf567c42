"""Letter publishing, updates and aggregate queries."""

import logging
from collections.abc import Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import and_, case, distinct, func, literal_column, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlalchemy.orm.attributes import set_committed_value

from openletter.core.security import hash_password, verify_password
from openletter.models.letter import Letter
from openletter.models.signature import Signature
from openletter.schemas.letter import (
    LetterCreate,
    LetterPatch,
    LetterSummary,
    SubscribersByLocale,
)
from openletter.services.text_service import generate_slug, make_teaser, sanitize_letter_html

logger = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"
DEFAULT_LIST_LIMIT = 10
DEFAULT_MIN_SIGNATURES = 10
SHORT_WINDOW_DAYS = 30
LONG_WINDOW_DAYS = 90


class EmptyLetterError(ValueError):
    """Raised when a letter's text is empty once sanitized."""


class LetterService:
    """Reads and writes letters.

    ``secret`` is the key every letter token is derived from; it is passed in
    rather than read from settings so tokens can be derived for any key.
    """

    def __init__(
        self,
        db: AsyncSession,
        secret: str,
        password_iterations: int = 200_000,
    ) -> None:
        self.db = db
        self.secret = secret
        self.password_iterations = password_iterations

    # === Writes ===

    async def create_with_locales(
        self,
        letters: Sequence[LetterCreate],
        defaults: Mapping[str, Any] | None = None,
    ) -> list[Letter]:
        """Publish a new letter with one row per locale.

        All rows share a slug derived from the first letter's title, which
        also stands in for locales submitted without one. Locales
        whose text is empty after sanitizing are dropped; the others are
        still created. Returns an empty list (and writes nothing) when no
        locale survives.
        """
        if not letters:
            return []

        first_title = letters[0].title or ""
        slug = generate_slug(first_title)
        defaults = dict(defaults or {})
        if defaults.get("password"):
            defaults["password"] = hash_password(defaults["password"], self.password_iterations)

        rows: list[Letter] = []
        for letter in letters:
            values: dict[str, Any] = {
                "title": letter.title or first_title,
                "text": sanitize_letter_html(letter.text),
                "locale": letter.locale,
                "image": letter.image,
                "slug": slug,
            }
            if not values["text"]:
                logger.info("Empty text for locale %s, skipping (slug=%s)", letter.locale, slug)
                continue
            for key, default in defaults.items():
                if not values.get(key):
                    values[key] = default

            row = Letter(**values)
            row.refresh_token(self.secret)
            rows.append(row)

        if not rows:
            logger.info("No locale of %s has any text, nothing created", slug)
            return []

        self.db.add_all(rows)
        await self.db.commit()
        for row in rows:
            await self.db.refresh(row)

        logger.info(
            "Created letter %s in %d locale(s): %s",
            slug,
            len(rows),
            ",".join(r.locale for r in rows),
        )
        return rows

    async def create_update(
        self,
        parent: Letter,
        updates: Sequence[LetterCreate],
    ) -> list[Letter]:
        """Attach an update to every locale of ``parent`` that has one.

        Each update row points at the parent row of the same locale. Locales
        without a matching update are skipped. Every locale is written in its
        own savepoint, so a failure in one locale leaves the others in place.
        """
        siblings = await self.get_locales(parent)
        by_locale = {u.locale: u for u in updates}
        matched = [by_locale[s.locale] for s in siblings if s.locale in by_locale]
        if not matched:
            logger.info("No update matches any locale of %s", parent.slug)
            return []

        first_title = matched[0].title or parent.title
        slug = generate_slug(first_title)
        created: list[tuple[Letter, Letter]] = []
        for sibling in siblings:
            payload = by_locale.get(sibling.locale)
            if payload is None:
                logger.info("No update found for locale %s, skipping", sibling.locale)
                continue

            update = Letter(
                slug=slug,
                locale=sibling.locale,
                title=payload.title or first_title,
                text=sanitize_letter_html(payload.text) or None,
                image=payload.image,
                user_id=parent.user_id,
                parent_letter_id=sibling.id,
            )
            update.refresh_token(self.secret)
            try:
                async with self.db.begin_nested():
                    self.db.add(update)
            except SQLAlchemyError:
                logger.exception("Failed to create %s update for %s", sibling.locale, parent.slug)
                continue
            created.append((update, sibling))

        await self.db.commit()
        for update, sibling in created:
            await self.db.refresh(update)
            set_committed_value(update, "parent_letter", sibling)

        logger.info("Created %d update(s) for %s", len(created), parent.slug)
        return [update for update, _ in created]

    async def update_letter(self, letter: Letter, changes: LetterPatch) -> Letter:
        """Edit one locale row.

        Raises:
            EmptyLetterError: If the new text is empty once sanitized.
        """
        data = changes.model_dump(exclude_unset=True)
        if "text" in data:
            data["text"] = sanitize_letter_html(data["text"])
            if not data["text"]:
                raise EmptyLetterError("Letter text cannot be empty")
        if data.get("password"):
            data["password"] = hash_password(data["password"], self.password_iterations)

        for field, value in data.items():
            if value is not None:
                setattr(letter, field, value)
        letter.refresh_token(self.secret)

        await self.db.commit()
        await self.db.refresh(letter)
        return letter

    # === Reads ===

    async def get_locales(self, letter: Letter) -> list[Letter]:
        """All locale rows sharing ``letter``'s slug."""
        stmt = (
            select(Letter)
            .where(Letter.slug == letter.slug)
            .order_by(Letter.created_at, Letter.locale)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_letter(self, slug: str, locale: str | None = None) -> Letter | None:
        """Row of ``slug`` in ``locale``, else English, else the oldest one."""
        stmt = (
            select(Letter)
            .where(Letter.slug == slug)
            .options(selectinload(Letter.updates))
            .order_by(Letter.created_at, Letter.locale)
        )
        rows = list((await self.db.execute(stmt)).scalars().all())
        if not rows:
            return None

        by_locale = {row.locale: row for row in rows}
        if locale and locale in by_locale:
            return by_locale[locale]
        return by_locale.get(DEFAULT_LOCALE, rows[0])

    async def list_letters(
        self,
        locale: str | None = None,
        featured: bool = False,
        limit: int | None = None,
        min_signatures: int | None = None,
    ) -> list[LetterSummary]:
        """Latest (or featured) letters grouped by slug.

        Title and text come from ``locale`` when that row has text, and from
        the English row otherwise. ``total_signatures`` counts every joined
        row, verified or not.
        """
        limit = limit or DEFAULT_LIST_LIMIT
        if min_signatures is None:
            min_signatures = DEFAULT_MIN_SIGNATURES
        days = LONG_WINDOW_DAYS if limit > 10 else SHORT_WINDOW_DAYS

        en_title = func.min(Letter.title).filter(Letter.locale == DEFAULT_LOCALE)
        en_text = func.min(Letter.text).filter(Letter.locale == DEFAULT_LOCALE)
        if locale and locale != DEFAULT_LOCALE:
            locale_title = func.min(Letter.title).filter(Letter.locale == locale)
            locale_text = func.min(Letter.text).filter(Letter.locale == locale)
            title = case((locale_text.is_(None), en_title), else_=locale_title)
            text = case((locale_text.is_(None), en_text), else_=locale_text)
        else:
            title, text = en_title, en_text

        if featured:
            window = Letter.featured_at.isnot(None)
            sort_key = func.min(Letter.featured_at)
        else:
            window = Letter.created_at >= datetime.now(UTC) - timedelta(days=days)
            sort_key = func.min(Letter.created_at)

        stmt = (
            select(
                Letter.slug,
                func.min(Letter.created_at).label("created_at"),
                title.label("title"),
                text.label("text"),
                func.string_agg(distinct(Letter.locale), literal_column("','")).label("locales"),
                func.count().label("total_signatures"),
                func.min(Letter.image).label("image"),
                func.min(Letter.featured_at).label("featured_at"),
            )
            .select_from(Letter)
            .outerjoin(Signature, Signature.letter_id == Letter.id)
            .where(window)
            .group_by(Letter.slug)
            .having(func.count() >= min_signatures)
            .order_by(sort_key.desc())
            .limit(limit)
        )

        result = await self.db.execute(stmt)
        return [
            LetterSummary(
                slug=row.slug,
                created_at=row.created_at,
                title=row.title,
                text=make_teaser(row.text),
                locales=row.locales,
                total_signatures=int(row.total_signatures),
                image=row.image,
                featured_at=row.featured_at,
            )
            for row in result.all()
        ]

    async def get_subscribers(self, letter: Letter) -> list[str]:
        """Verified emails that signed this exact locale row."""
        stmt = (
            select(Signature.email)
            .where(
                Signature.letter_id == letter.id,
                Signature.is_verified.is_(True),
                Signature.email.isnot(None),
            )
            .order_by(Signature.created_at)
        )
        result = await self.db.execute(stmt)
        return [email for email in result.scalars().all() if email]

    async def get_subscribers_by_locale(self, letter: Letter) -> SubscribersByLocale:
        """Verified emails for every locale of the letter, plus their total."""
        stmt = (
            select(Letter.locale, Signature.email)
            .select_from(Letter)
            .outerjoin(
                Signature,
                and_(
                    Signature.letter_id == Letter.id,
                    Signature.is_verified.is_(True),
                    Signature.email.isnot(None),
                ),
            )
            .where(Letter.slug == letter.slug)
            .order_by(Letter.locale, Signature.created_at)
        )
        result = await self.db.execute(stmt)

        by_locale: dict[str, list[str]] = {}
        total = 0
        for locale, email in result.all():
            emails = by_locale.setdefault(locale, [])
            if email:
                emails.append(email)
                total += 1
        return SubscribersByLocale(by_locale=by_locale, total=total)

    # === Access ===

    @staticmethod
    def can_manage(
        letter: Letter,
        user: Mapping[str, Any] | None,
        password: str | None,
    ) -> bool:
        """Owners manage a letter by identity, anyone else by its password."""
        if user and letter.user_id and user.get("sub") == letter.user_id:
            return True
        return verify_password(password or "", letter.password)
