"""
Session Token Service

Issues bearer session tokens at login and resolves them back to a user id.
Validity is computed at check time (now < expiry); the store record is the
authority, the signature only makes the value tamper-evident.
"""
import logging
from typing import Callable

from account_service.core.errors import TokenExpired, TokenNotFound
from account_service.core.security import SESSION_TOKEN_TTL_MS, now_ms, sign_token
from account_service.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)


class SessionTokenService:
    def __init__(
        self,
        store: CredentialStore,
        secret: str,
        clock: Callable[[], int] = now_ms,
        ttl_ms: int = SESSION_TOKEN_TTL_MS,
    ):
        self.store = store
        self.secret = secret
        self.clock = clock
        self.ttl_ms = ttl_ms

    async def issue(self, user_id) -> str:
        """
        Sign and persist a new session token for `user_id`.
        Earlier tokens of the same user stay valid.
        """
        issued = self.clock()
        token = sign_token(str(user_id), self.secret, issued, self.ttl_ms)
        await self.store.save_access_token(user_id, token, issued + self.ttl_ms)
        logger.info("[auth] session issued for user=%s", user_id)
        return token

    async def validate(self, token: str) -> str:
        """
        Resolve a session token to its user id.

        Raises:
            TokenNotFound: No such token in the store
            TokenExpired: expiry <= now (the record may still exist)
        """
        if not token:
            raise TokenNotFound()
        record = await self.store.get_access_token(token)
        if record is None:
            raise TokenNotFound()
        if record.expiry <= self.clock():
            raise TokenExpired()
        return str(record.user_id)

    async def prune_expired(self) -> int:
        """Physically delete expired session records. Returns how many were removed."""
        removed = await self.store.delete_expired_access_tokens(self.clock())
        if removed:
            logger.info("[auth] pruned %s expired session tokens", removed)
        return removed
