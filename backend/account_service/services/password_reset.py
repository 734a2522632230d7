"""
Password Reset Service

Two-step reset protocol:
  1. request(email)  -> signed single-use token, emailed to the user
  2. verify(token, new_password) -> password rotated, token consumed

Checks in verify run in a fixed order (record lookup, signature, expiry)
so that each failure stays distinguishable.
"""
import logging
from typing import Callable, Optional

import jwt  # PyJWT

from account_service.core.errors import (
    PasswordMismatch,
    SignatureInvalid,
    TokenExpired,
    TokenNotFound,
    UserNotFound,
)
from account_service.core.security import RESET_TOKEN_TTL_MS, decode_token, hash_password, now_ms, sign_token
from account_service.services.credential_store import CredentialStore
from account_service.services.notifications import (
    NotificationGateway,
    password_reset_email,
    password_reset_success_email,
)

logger = logging.getLogger(__name__)


class PasswordResetService:
    def __init__(
        self,
        store: CredentialStore,
        notifications: NotificationGateway,
        secret: str,
        clock: Callable[[], int] = now_ms,
        ttl_ms: int = RESET_TOKEN_TTL_MS,
    ):
        self.store = store
        self.notifications = notifications
        self.secret = secret
        self.clock = clock
        self.ttl_ms = ttl_ms

    async def request(self, email: str) -> str:
        """
        Issue a reset token for the account registered under `email` and mail the link.
        Previously issued tokens are left untouched.

        Raises:
            UserNotFound: No account with that email
        """
        user = await self.store.find_user_by_email(email)
        if user is None:
            raise UserNotFound()

        issued = self.clock()
        token = sign_token(str(user.id), self.secret, issued, self.ttl_ms)
        await self.store.save_reset_token(user.id, token, issued + self.ttl_ms)
        logger.info("[reset] token issued for user=%s", user.id)

        await self.notifications.send(password_reset_email(user.email, token))
        return token

    async def verify(self, token: str, new_password: str, confirm_password: Optional[str] = None) -> None:
        """
        Consume a reset token and rotate the user's password.

        When `confirm_password` is given it must equal `new_password`; it is
        compared after the token checks and a mismatch leaves the token usable.

        Raises (in check order):
            TokenNotFound: Unknown or already consumed token
            SignatureInvalid: Signature does not verify against the reset key
            TokenExpired: now > expires_at
            UserNotFound: Bound user no longer exists
            PasswordMismatch: confirm_password differs from new_password
        """
        record = await self.store.get_reset_token(token) if token else None
        if record is None:
            raise TokenNotFound("Invalid reset token")

        try:
            payload = decode_token(token, self.secret)
        except jwt.InvalidTokenError as exc:
            raise SignatureInvalid("Invalid reset token signature") from exc

        if self.clock() > record.expires_at:
            raise TokenExpired("Password reset token has expired")

        user = await self.store.get_user(payload.get("sub"))
        if user is None:
            raise UserNotFound()

        if confirm_password is not None and confirm_password != new_password:
            raise PasswordMismatch()

        if not await self.store.consume_reset_token(record, user, hash_password(new_password)):
            raise TokenNotFound("Invalid reset token")
        logger.info("[reset] password rotated for user=%s", user.id)

        await self.notifications.send(password_reset_success_email(user.email))
