"""Seed script for local development.

Creates letters that show up on the homepage listing:
- 1 bilingual letter (en + fr) with verified and pending signatures
- 1 featured letter
- 1 update posted on the bilingual letter

Usage:
    uv run python -m scripts.seed_letters
"""

import asyncio
from datetime import UTC, datetime, timedelta

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from openletter.core.config import settings
from openletter.core.database import async_session_maker
from openletter.core.security import hash_password
from openletter.models.letter import Letter
from openletter.models.signature import Signature

OWNER_ID = "seed-owner"
SEED_PASSWORD = "seed-password"

BILINGUAL_SLUG = "protect-the-river-seed0001"
FEATURED_SLUG = "fund-public-libraries-seed0002"
UPDATE_SLUG = "we-were-heard-seed0003"

SIGNERS = [
    ("Ada Lovelace", "Mathematician", "London"),
    ("Marie Curie", "Physicist", "Paris"),
    ("Paul Otlet", "Librarian", "Brussels"),
    ("Hedy Lamarr", "Inventor", "Vienna"),
    ("Simone Weil", "Philosopher", "Paris"),
    ("Alan Turing", "Mathematician", "Manchester"),
    ("Rosalind Franklin", "Chemist", "London"),
    ("Emmy Noether", "Mathematician", "Erlangen"),
    ("Niels Bohr", "Physicist", "Copenhagen"),
    ("Lise Meitner", "Physicist", "Berlin"),
    ("Grace Hopper", "Engineer", "New York"),
    ("Henri Lafontaine", "Lawyer", "Brussels"),
]


def _letter(**values: object) -> Letter:
    letter = Letter(**values)
    letter.refresh_token(settings.secret_key)
    return letter


async def seed(session: AsyncSession) -> None:
    await session.execute(
        text("DELETE FROM letters WHERE slug IN (:a, :b, :c)"),
        {"a": BILINGUAL_SLUG, "b": FEATURED_SLUG, "c": UPDATE_SLUG},
    )

    now = datetime.now(UTC)
    password = hash_password(SEED_PASSWORD, settings.password_hash_iterations)

    en = _letter(
        slug=BILINGUAL_SLUG,
        locale="en",
        title="Protect the river",
        text="<p>We, the undersigned, ask the city to stop dumping into the river.</p>",
        user_id=OWNER_ID,
        created_at=now - timedelta(days=3),
    )
    fr = _letter(
        slug=BILINGUAL_SLUG,
        locale="fr",
        title="Protégeons la rivière",
        text="<p>Nous, soussignés, demandons à la ville de cesser les rejets.</p>",
        user_id=OWNER_ID,
        created_at=now - timedelta(days=3),
    )
    featured = _letter(
        slug=FEATURED_SLUG,
        locale="en",
        title="Fund public libraries",
        text="<p>Libraries are the last free indoor public space.</p>",
        password=password,
        featured_at=now - timedelta(days=1),
        created_at=now - timedelta(days=60),
    )
    session.add_all([en, fr, featured])
    await session.flush()

    session.add(
        _letter(
            slug=UPDATE_SLUG,
            locale="en",
            title="We were heard",
            text="<p>The council will vote on the proposal next month.</p>",
            user_id=OWNER_ID,
            parent_letter_id=en.id,
        )
    )

    for i, (name, occupation, city) in enumerate(SIGNERS):
        target = fr if i % 3 == 0 else en
        session.add(
            Signature(
                letter_id=target.id,
                name=name,
                occupation=occupation,
                city=city,
                email=f"signer{i}@example.com" if i % 2 == 0 else None,
                share_email=i % 2 == 0,
                is_verified=i < len(SIGNERS) - 2,
                verified_at=now - timedelta(hours=i) if i < len(SIGNERS) - 2 else None,
                created_at=now - timedelta(days=2, hours=-i),
            )
        )
        session.add(
            Signature(
                letter_id=featured.id,
                name=name,
                occupation=occupation,
                city=city,
                is_verified=True,
                verified_at=now,
            )
        )

    await session.commit()


async def main() -> None:
    async with async_session_maker() as session:
        await seed(session)

    print("=" * 60)
    print("  Letter seed data created successfully!")
    print("=" * 60)
    print()
    print(f"  Bilingual letter:  {BILINGUAL_SLUG} (owner {OWNER_ID})")
    print(f"  Featured letter:   {FEATURED_SLUG} (password {SEED_PASSWORD!r})")
    print(f"  Update:            {UPDATE_SLUG}")
    print(f"  Signers:           {len(SIGNERS)} per letter")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
