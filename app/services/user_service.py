"""
TravelPlaces Backend — User Service (Register / Login)
========================================================

What:  Registration and credential checks against the credential store.
How:   bcrypt with a per-password random salt (cost settings.password_salt_rounds);
       hashing and verification run in the thread pool since bcrypt is
       CPU-bound by construction.
Who:   POST /register and POST /login, mounted only when AUTH_ENABLED is set.

This is a credential check, not a session system: a successful login returns
a message and nothing else (no token, no cookie).
"""

import logging
from typing import Optional

import bcrypt
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.exceptions import InvalidInputError, QueryFailedError
from app.models.user import User
from app.schemas.user import MessageResponse

logger = logging.getLogger(__name__)

BCRYPT_MAX_PASSWORD_BYTES = 72

REGISTERED_MESSAGE = "User registered successfully"
LOGIN_MESSAGE = "Login successful"
USER_EXISTS_MESSAGE = "User already exists"
INVALID_CREDENTIALS_MESSAGE = "Invalid credentials"


def _password_bytes(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_PASSWORD_BYTES:
        raise InvalidInputError(
            message=f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes",
            field="password",
        )
    return encoded


def hash_password(password: str, rounds: Optional[int] = None) -> str:
    """Salted bcrypt hash as text ($2b$<cost>$<salt><digest>)."""
    salt = bcrypt.gensalt(rounds=rounds or settings.password_salt_rounds)
    return bcrypt.hashpw(_password_bytes(password), salt).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), password_hash.encode("ascii"))
    except ValueError:
        # Malformed stored hash
        logger.warning("Stored password hash could not be parsed")
        return False


class UserService:

    async def _find(self, db: AsyncSession, username: str):
        try:
            result = await db.execute(select(User).where(User.username == username))
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            logger.error("Credential store lookup failed: %s", str(e))
            raise QueryFailedError(
                message="Could not reach the user store. Please try again.",
                reason=str(getattr(e, "orig", None) or e),
            )

    async def register(self, db: AsyncSession, username: str, password: str) -> MessageResponse:
        """
        Create a user.

        Raises:
            InvalidInputError: Username already taken, or password too long
            QueryFailedError:  Credential store failure
        """
        if await self._find(db, username) is not None:
            logger.info("Registration rejected, username exists: %s", username)
            raise InvalidInputError(message=USER_EXISTS_MESSAGE, field="username")

        password_hash = await run_in_threadpool(hash_password, password)
        db.add(User(username=username, password_hash=password_hash))
        try:
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to store user %s: %s", username, str(e))
            raise QueryFailedError(
                message="Could not register the user. Please try again.",
                reason=str(getattr(e, "orig", None) or e),
            )

        logger.info("User registered: %s", username)
        return MessageResponse(msg=REGISTERED_MESSAGE)

    async def login(self, db: AsyncSession, username: str, password: str) -> MessageResponse:
        """
        Check a username/password pair.

        Unknown user and wrong password produce the same error.

        Raises:
            InvalidInputError: Credentials do not match
        """
        user = await self._find(db, username)
        if user is None or not await run_in_threadpool(verify_password, password, user.password_hash):
            logger.info("Login failed for %s", username)
            raise InvalidInputError(message=INVALID_CREDENTIALS_MESSAGE)

        logger.info("Login succeeded for %s", username)
        return MessageResponse(msg=LOGIN_MESSAGE)


# ── Singleton Instance ────────────────────────────────────────────────────
user_service = UserService()
