from typing import Callable

from fastapi import Depends, Header

from account_service.config import settings
from account_service.core.security import now_ms
from account_service.services.accounts import AccountService
from account_service.services.credential_store import CredentialStore
from account_service.services.image_storage import ImageStorage, get_local_storage, get_remote_storage
from account_service.services.notifications import NotificationGateway
from account_service.services.notifications import get_notification_gateway as _build_gateway

_gateway: NotificationGateway | None = None


def get_store() -> CredentialStore:
    return CredentialStore()


def get_notification_gateway() -> NotificationGateway:
    """Process-wide gateway built from settings on first use (override in tests)."""
    global _gateway
    if _gateway is None:
        _gateway = _build_gateway()
    return _gateway


def get_local_image_storage() -> ImageStorage:
    return get_local_storage()


def get_remote_image_storage() -> ImageStorage:
    return get_remote_storage()


def get_clock() -> Callable[[], int]:
    return now_ms


def get_account_service(
    store: CredentialStore = Depends(get_store),
    notifications: NotificationGateway = Depends(get_notification_gateway),
    local_storage: ImageStorage = Depends(get_local_image_storage),
    remote_storage: ImageStorage = Depends(get_remote_image_storage),
    clock: Callable[[], int] = Depends(get_clock),
) -> AccountService:
    """
    FastAPI dependency assembling the account core for one request.

    Collaborators are dependencies themselves, so tests swap them through
    `app.dependency_overrides`.
    """
    return AccountService(
        store,
        notifications,
        local_storage=local_storage,
        remote_storage=remote_storage,
        session_secret=settings.session_secret,
        reset_secret=settings.reset_secret,
        clock=clock,
    )


async def get_access_token(
    access_token: str | None = Header(default=None, convert_underscores=False),
    authorization: str | None = Header(default=None),
) -> str | None:
    """
    Extract the session token from the request headers.

    Looks at:
    1. `access_token` header - primary
    2. `Authorization: Bearer xxx` - fallback
    Returns None when neither is present; the account core answers with Unauthorized.
    """
    if access_token:
        return access_token.strip()
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None
