"""
Blogged Backend — Password Hashing and Session Tokens
======================================================

What:  Salted password hashing and signed, self-verifying session tokens.
How:
    Passwords:  PBKDF2-HMAC-SHA256 with a 32-byte random salt, stored as
                `pbkdf2_sha256$<iterations>$<salt hex>$<hash hex>` so the
                work factor can be raised without invalidating old hashes.
    Tokens:     HS256 JWTs (python-jose) carrying `sub` (user id), `email`
                and `exp`. Verification is a pure function: no session table,
                no server-side state, nothing to sweep.
Who:   AuthService (hash/verify/issue) and TokenAuthMiddleware (decode).
"""

import hashlib
import secrets
import uuid
from datetime import timedelta
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt

from blogged.config import settings
from blogged.database import utcnow
from blogged.exceptions import AuthError
from blogged.schemas.auth import TokenIdentity

HASH_SCHEME = "pbkdf2_sha256"


def hash_password(password: str, iterations: Optional[int] = None) -> str:
    """Hash a password with a fresh random salt."""
    rounds = iterations or settings.password_hash_iterations
    salt = secrets.token_bytes(32)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode(), salt, rounds)
    return f"{HASH_SCHEME}${rounds}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: str) -> bool:
    """
    Check a password against a stored hash in constant time.

    Malformed records verify as False rather than raising, so a corrupt row
    surfaces as a failed login instead of a 500.
    """
    try:
        scheme, rounds, salt_hex, hash_hex = stored.split("$")
        if scheme != HASH_SCHEME:
            return False
        digest = hashlib.pbkdf2_hmac(
            "sha256", password.encode(), bytes.fromhex(salt_hex), int(rounds)
        )
    except ValueError:
        return False
    return secrets.compare_digest(digest.hex(), hash_hex)


def create_access_token(user_id: uuid.UUID, email: str) -> str:
    """Issue a signed token that expires after ACCESS_TOKEN_EXPIRE_DAYS."""
    expire = utcnow() + timedelta(days=settings.access_token_expire_days)
    claims = {"sub": str(user_id), "email": email, "exp": expire}
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> TokenIdentity:
    """
    Verify a token's signature and expiry and return the identity it carries.

    Raises:
        AuthError: expired, tampered, or structurally invalid token
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as err:
        raise AuthError("Token has expired") from err
    except JWTError as err:
        raise AuthError("Invalid token") from err

    subject = payload.get("sub")
    email = payload.get("email")
    if not subject or email is None:
        raise AuthError("Invalid token")
    try:
        user_id = uuid.UUID(subject)
    except ValueError as err:
        raise AuthError("Invalid token") from err
    return TokenIdentity(user_id=user_id, email=email)
