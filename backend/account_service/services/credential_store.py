"""
Credential Store

CRUD access to user, address and token records on top of Tortoise ORM.
Services receive an instance at construction and never touch the models
directly; multi-step mutations run inside one store transaction.
"""
import uuid
from typing import Iterable, List, Optional

from tortoise.transactions import in_transaction

from account_service.models import AccessToken, Address, PasswordResetToken, User


def _parse_uuid(value) -> Optional[uuid.UUID]:
    """Return the UUID for `value`, or None when it is not a valid id."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


class CredentialStore:
    """Persistence operations used by the account core."""

    # -------- users --------
    async def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        firstname: Optional[str] = None,
        lastname: Optional[str] = None,
    ) -> User:
        # Uniqueness is enforced by the database (tortoise IntegrityError)
        return await User.create(
            username=username,
            email=email,
            password_hash=password_hash,
            firstname=firstname,
            lastname=lastname,
            addresses=[],
        )

    async def get_user(self, user_id) -> Optional[User]:
        uid = _parse_uuid(user_id)
        if uid is None:
            return None
        return await User.get_or_none(id=uid)

    async def find_user_by_username(self, username: str) -> Optional[User]:
        return await User.get_or_none(username=username)

    async def find_user_by_email(self, email: str) -> Optional[User]:
        return await User.get_or_none(email=email)

    async def list_users(self, offset: int, limit: int) -> List[User]:
        """Users in insertion order."""
        return await User.all().order_by("created_at").offset(offset).limit(limit)

    async def delete_user(self, user: User) -> None:
        """
        Delete a user together with owned addresses and outstanding reset tokens.
        Session tokens are left to expire on their own.
        """
        async with in_transaction() as conn:
            await Address.filter(user_id=user.id).using_db(conn).delete()
            await PasswordResetToken.filter(user_id=user.id).using_db(conn).delete()
            await user.delete(using_db=conn)

    # -------- addresses --------
    async def add_address(self, user: User, **fields) -> Address:
        """Create an address and append its id to the owner's reference list."""
        async with in_transaction() as conn:
            address = await Address.create(user_id=user.id, using_db=conn, **fields)
            user.addresses = list(user.addresses or []) + [str(address.id)]
            await user.save(using_db=conn, update_fields=["addresses"])
        return address

    async def remove_addresses(self, user: User, address_ids: Iterable[str]) -> int:
        """
        Drop the given ids from the owner's reference list and delete the
        matching address rows owned by that user.

        Returns:
            Number of address rows deleted
        """
        wanted = {str(uid) for uid in (_parse_uuid(a) for a in address_ids) if uid is not None}
        async with in_transaction() as conn:
            user.addresses = [a for a in (user.addresses or []) if a not in wanted]
            await user.save(using_db=conn, update_fields=["addresses"])
            if not wanted:
                return 0
            return await Address.filter(
                id__in=[uuid.UUID(a) for a in wanted], user_id=user.id
            ).using_db(conn).delete()

    async def get_addresses(self, user: User) -> List[Address]:
        """Addresses referenced by the user, in reference-list order."""
        ids = [uid for uid in (_parse_uuid(a) for a in (user.addresses or [])) if uid is not None]
        if not ids:
            return []
        rows = await Address.filter(id__in=ids)
        by_id = {str(a.id): a for a in rows}
        return [by_id[str(i)] for i in ids if str(i) in by_id]

    # -------- session tokens --------
    async def save_access_token(self, user_id, token: str, expiry: int) -> AccessToken:
        return await AccessToken.create(user_id=user_id, access_token=token, expiry=expiry)

    async def get_access_token(self, token: str) -> Optional[AccessToken]:
        return await AccessToken.get_or_none(access_token=token)

    async def delete_expired_access_tokens(self, now: int) -> int:
        return await AccessToken.filter(expiry__lte=now).delete()

    # -------- password reset tokens --------
    async def save_reset_token(self, user_id, token: str, expires_at: int) -> PasswordResetToken:
        return await PasswordResetToken.create(user_id=user_id, token=token, expires_at=expires_at)

    async def get_reset_token(self, token: str) -> Optional[PasswordResetToken]:
        return await PasswordResetToken.get_or_none(token=token)

    async def consume_reset_token(self, record: PasswordResetToken, user: User, password_hash: str) -> bool:
        """
        Delete the reset token, then store the new password hash.

        Returns:
            False when the token row was already gone (consumed by a concurrent
            call); the password is left untouched in that case
        """
        async with in_transaction() as conn:
            deleted = await PasswordResetToken.filter(id=record.id).using_db(conn).delete()
            if not deleted:
                return False
            user.password_hash = password_hash
            await user.save(using_db=conn, update_fields=["password_hash"])
        return True
