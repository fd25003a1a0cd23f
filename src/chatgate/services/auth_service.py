"""Auth service — registration and login.

Learn: Service layer separates business logic from HTTP routing. The
service orchestrates store + hasher + token issuer; routes only turn
its results and exceptions into HTTP responses.

Login failures are deliberately uniform: an unknown email and a wrong
password both raise InvalidCredentialsError with the same message, and
both cost one bcrypt verify, so neither the body nor the timing says
whether the account exists.
"""

from typing import Optional

import structlog

from chatgate.auth.jwt import issue_token
from chatgate.auth.password import (
    dummy_hash_async,
    hash_password_async,
    verify_password_async,
)
from chatgate.errors import DuplicateEmailError, InvalidCredentialsError, ValidationError
from chatgate.services.user_store import UserRecord, UserStore

logger = structlog.get_logger()


def _require(*values: Optional[str]) -> None:
    """Every field must be a non-blank string."""
    for value in values:
        if value is None or not value.strip():
            raise ValidationError("Missing required fields")


class AuthService:
    """Business logic for account creation and sign-in."""

    def __init__(self, store: UserStore):
        self.store = store

    async def register(
        self, email: Optional[str], password: Optional[str], name: Optional[str]
    ) -> tuple[str, UserRecord]:
        """Create an account and return (token, user)."""
        _require(email, password, name)

        if await self.store.find_by_email(email):
            raise DuplicateEmailError()

        password_hash = await hash_password_async(password)
        # create() re-checks atomically; a concurrent register of the same
        # email surfaces here as DuplicateEmailError too.
        user = await self.store.create(email=email, name=name, password_hash=password_hash)

        logger.info("auth.registered", user_id=user.id)
        return issue_token(user), user

    async def login(
        self, email: Optional[str], password: Optional[str]
    ) -> tuple[str, UserRecord]:
        """Check credentials and return (token, user)."""
        _require(email, password)

        user = await self.store.find_by_email(email)
        if user is None:
            await verify_password_async(password, await dummy_hash_async())
            logger.info("auth.login_failed", reason="unknown_email")
            raise InvalidCredentialsError()

        if not await verify_password_async(password, user.password_hash):
            logger.info("auth.login_failed", reason="bad_password", user_id=user.id)
            raise InvalidCredentialsError()

        logger.info("auth.logged_in", user_id=user.id)
        return issue_token(user), user
