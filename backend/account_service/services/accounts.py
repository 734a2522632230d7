"""
Account Service

Orchestrates the account use cases on top of the credential store, the
session and reset token services and the outbound collaborators.

Every public use case is wrapped by `use_case`. Infrastructure failures and
unexpected exceptions reach the caller as an InfrastructureError carrying the
generic message of the use case; other taxonomy errors pass through unchanged.
"""
import functools
import logging
from typing import Callable, Iterable, List, Optional

from tortoise.exceptions import IntegrityError

from account_service.config import settings
from account_service.core.errors import (
    AccountError,
    InfrastructureError,
    InvalidCredentials,
    PasswordMismatch,
    RegistrationFailed,
    TokenExpired,
    TokenNotFound,
    Unauthorized,
    UserNotFound,
    ValidationError,
)
from account_service.core.security import hash_password, now_ms, verify_password
from account_service.models import Address, User
from account_service.services.credential_store import CredentialStore
from account_service.services.image_storage import ImageStorage
from account_service.services.notifications import NotificationGateway, registration_email
from account_service.services.password_reset import PasswordResetService
from account_service.services.session_tokens import SessionTokenService

logger = logging.getLogger(__name__)

PAGE_SIZE = 10
IMAGE_FLAGS = ("online", "local")


def use_case(failure_message: str):
    """Map every non-taxonomy failure of the wrapped use case to InfrastructureError(failure_message)."""

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except InfrastructureError as exc:
                # Already logged with its traceback where it was raised
                logger.error("[%s] %s: %s", fn.__name__, failure_message, exc)
                raise InfrastructureError(failure_message) from exc
            except AccountError:
                raise
            except Exception as exc:
                logger.error("[%s] %s: %s", fn.__name__, failure_message, exc, exc_info=True)
                raise InfrastructureError(failure_message) from exc

        return wrapper

    return decorator


def address_to_dict(a: Address) -> dict:
    return {
        "id": str(a.id),
        "userId": str(a.user_id),
        "address": a.address,
        "city": a.city,
        "state": a.state,
        "pincode": a.pincode,
        "phone": a.phone,
    }


def user_to_dict(u: User, addresses: Optional[List[Address]] = None) -> dict:
    """
    Convert a User to its response document.
    The password hash is never part of it. `addresses` replaces the id list
    with nested address documents when given.
    """
    return {
        "id": str(u.id),
        "username": u.username,
        "email": u.email,
        "firstname": u.firstname,
        "lastname": u.lastname,
        "addresses": (
            [address_to_dict(a) for a in addresses] if addresses is not None else list(u.addresses or [])
        ),
        "createdAt": u.created_at.isoformat() if u.created_at else None,
    }


class AccountService:
    def __init__(
        self,
        store: CredentialStore,
        notifications: NotificationGateway,
        local_storage: Optional[ImageStorage] = None,
        remote_storage: Optional[ImageStorage] = None,
        session_secret: str = settings.session_secret,
        reset_secret: str = settings.reset_secret,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.notifications = notifications
        self.local_storage = local_storage
        self.remote_storage = remote_storage
        self.sessions = SessionTokenService(store, session_secret, clock=clock)
        self.resets = PasswordResetService(store, notifications, reset_secret, clock=clock)

    async def _authenticate(self, token: Optional[str]) -> User:
        try:
            user_id = await self.sessions.validate(token)
        except (TokenNotFound, TokenExpired) as exc:
            raise Unauthorized() from exc
        user = await self.store.get_user(user_id)
        if user is None:
            raise UserNotFound()
        return user

    # ========== registration / login ==========
    @use_case("Error while registering the user")
    async def register(
        self,
        username: str,
        password: str,
        confirm_password: str,
        email: str,
        firstname: Optional[str] = None,
        lastname: Optional[str] = None,
    ) -> str:
        if password != confirm_password:
            raise PasswordMismatch()
        try:
            user = await self.store.create_user(
                username=username,
                email=email,
                password_hash=hash_password(password),
                firstname=firstname,
                lastname=lastname,
            )
        except IntegrityError as exc:
            # Username/email uniqueness is the store's job; callers only learn that it failed
            logger.info("[auth] registration rejected by store: %s", exc)
            raise RegistrationFailed() from exc
        logger.info("[auth] registered user=%s", user.id)

        # A delivery failure here aborts the use case although the user is already stored
        await self.notifications.send(registration_email(email))
        return str(user.id)

    @use_case("Error while logging in the user")
    async def login(self, username: str, password: str) -> str:
        user = await self.store.find_user_by_username(username)
        if user is None:
            raise UserNotFound()
        if not verify_password(password, user.password_hash):
            raise InvalidCredentials()
        return await self.sessions.issue(user.id)

    # ========== users ==========
    @use_case("Error while fetching user data")
    async def get_user(self, token: Optional[str]) -> dict:
        user = await self._authenticate(token)
        return user_to_dict(user)

    @use_case("An error occurred while deleting user data")
    async def delete_user(self, token: Optional[str]) -> None:
        user = await self._authenticate(token)
        await self.store.delete_user(user)
        logger.info("[auth] deleted user=%s", user.id)

    @use_case("Error while fetching user data")
    async def get_user_by_id(self, user_id: str) -> dict:
        user = await self.store.get_user(user_id)
        if user is None:
            raise UserNotFound()
        return user_to_dict(user, addresses=await self.store.get_addresses(user))

    @use_case("Error while fetching user list")
    async def list_users(self, page: int) -> List[dict]:
        """1-indexed page of PAGE_SIZE users in insertion order."""
        if page <= 0:
            raise ValidationError("Invalid page number")
        rows = await self.store.list_users(offset=(page - 1) * PAGE_SIZE, limit=PAGE_SIZE)
        return [user_to_dict(u) for u in rows]

    # ========== addresses ==========
    @use_case("Error while adding user address")
    async def add_address(
        self,
        token: Optional[str],
        address: str,
        city: str,
        state: str,
        pincode: str,
        phone: str,
    ) -> dict:
        user = await self._authenticate(token)
        row = await self.store.add_address(
            user, address=address, city=city, state=state, pincode=pincode, phone=phone
        )
        return address_to_dict(row)

    @use_case("Error while deleting user addresses")
    async def remove_addresses(self, token: Optional[str], address_ids: Iterable[str]) -> int:
        user = await self._authenticate(token)
        if not isinstance(address_ids, (list, tuple, set)) or not address_ids:
            raise ValidationError("Invalid address ids")
        return await self.store.remove_addresses(user, address_ids)

    # ========== password reset ==========
    @use_case("Error generating password reset token")
    async def forgot_password(self, email: str) -> str:
        return await self.resets.request(email)

    @use_case("Error resetting password")
    async def reset_password(self, token: str, password: str, confirm_password: str) -> None:
        await self.resets.verify(token, password, confirm_password)

    # ========== profile image ==========
    @use_case("Error uploading profile image")
    async def upload_profile_image(
        self,
        flag: Optional[str],
        filename: Optional[str],
        content: Optional[bytes],
        content_type: Optional[str] = None,
    ) -> dict:
        if not flag:
            raise ValidationError("Flag is required")
        if flag not in IMAGE_FLAGS:
            raise ValidationError("Invalid flag")
        if content is None:
            raise ValidationError("File is required")

        if flag == "online":
            url = await self.remote_storage.save(filename, content, content_type)
            return {"imageUrl": url}
        path = await self.local_storage.save(filename, content, content_type)
        return {"imagePath": path}
