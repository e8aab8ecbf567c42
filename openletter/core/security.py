"""Letter tokens, password hashing and signed confirmation links."""

import base64
import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

import jwt
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

PASSWORD_SCHEME = "pbkdf2_sha256"
CONFIRMATION_AUDIENCE = "signature-confirmation"


class InvalidConfirmationToken(Exception):
    """Raised when a confirmation link cannot be trusted."""


def derive_letter_token(slug: str, user_id: str | None, secret: str) -> str:
    """Derive the deterministic token of a letter.

    The token only depends on the slug, the owner and the secret, so every
    locale variant of a letter shares it.
    """
    data = f"{slug}-{user_id}-{secret}"
    return hashlib.sha256(data.encode()).hexdigest()


def _pbkdf2(password: str, salt: str, iterations: int) -> str:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt.encode(),
        iterations=iterations,
    )
    return base64.b64encode(kdf.derive(password.encode())).decode()


def hash_password(password: str, iterations: int = 200_000) -> str:
    """Hash a password as ``pbkdf2_sha256$<iterations>$<salt>$<hash>``."""
    salt = secrets.token_hex(16)
    return f"{PASSWORD_SCHEME}${iterations}${salt}${_pbkdf2(password, salt, iterations)}"


def is_password_hash(value: str) -> bool:
    return value.startswith(f"{PASSWORD_SCHEME}$") and value.count("$") == 3


def verify_password(password: str, hashed: str | None) -> bool:
    """Check a plaintext password against a stored hash."""
    if not password or not hashed or not is_password_hash(hashed):
        return False
    _, iterations, salt, expected = hashed.split("$")
    try:
        computed = _pbkdf2(password, salt, int(iterations))
    except ValueError:
        return False
    return hmac.compare_digest(expected, computed)


def create_confirmation_token(
    signature_id: UUID,
    letter_token: str,
    secret: str,
    ttl_days: int = 30,
) -> str:
    """Create the signed token embedded in a signature confirmation link."""
    now = datetime.now(UTC)
    payload = {
        "sid": str(signature_id),
        "lt": letter_token,
        "aud": CONFIRMATION_AUDIENCE,
        "iat": now,
        "exp": now + timedelta(days=ttl_days),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def decode_confirmation_token(token: str, secret: str) -> tuple[UUID, str]:
    """Return ``(signature_id, letter_token)`` from a confirmation token.

    Raises:
        InvalidConfirmationToken: If the token is malformed, tampered with or expired.
    """
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            secret,
            algorithms=["HS256"],
            audience=CONFIRMATION_AUDIENCE,
        )
        return UUID(payload["sid"]), str(payload["lt"])
    except jwt.ExpiredSignatureError as e:
        raise InvalidConfirmationToken("Confirmation link has expired") from e
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise InvalidConfirmationToken("Confirmation link is invalid") from e
