"""
Unit tests for services.password_reset.
Covers token issuance, the ordered checks of verify and single use.
"""
import asyncio

import pytest

from account_service.core.errors import (
    NotificationError,
    PasswordMismatch,
    SignatureInvalid,
    TokenExpired,
    TokenNotFound,
    UserNotFound,
)
from account_service.core.security import RESET_TOKEN_TTL_MS, hash_password, sign_token, verify_password
from account_service.models import PasswordResetToken, User
from account_service.services.password_reset import PasswordResetService

pytestmark = pytest.mark.asyncio

SECRET = "reset-unit-secret"


@pytest.fixture
def resets(db, store, gateway, clock):
    return PasswordResetService(store, gateway, SECRET, clock=clock)


@pytest.fixture
def make_user(store):
    async def _make(name: str = "bob", password: str = "old-pw"):
        return await store.create_user(
            username=name,
            email=f"{name}@example.com",
            password_hash=hash_password(password),
        )

    return _make


async def test_request_stores_token_and_mails_link(resets, make_user, gateway, clock):
    user = await make_user()
    token = await resets.request("bob@example.com")

    record = await PasswordResetToken.get(token=token)
    assert str(record.user_id) == str(user.id)
    assert record.expires_at == clock.now + RESET_TOKEN_TTL_MS

    assert len(gateway.sent) == 1
    mail = gateway.sent[0]
    assert mail.to == "bob@example.com"
    assert mail.subject == "Password Reset Request"
    assert f"/user/verify_reset_password/{token}" in mail.html


async def test_request_unknown_email(resets, gateway):
    with pytest.raises(UserNotFound):
        await resets.request("nobody@example.com")
    assert gateway.sent == []


async def test_verify_rotates_password_and_consumes_token(resets, make_user, gateway):
    await make_user()
    token = await resets.request("bob@example.com")

    await resets.verify(token, "new-pw")

    user = await User.get(username="bob")
    assert verify_password("new-pw", user.password_hash)
    assert not verify_password("old-pw", user.password_hash)
    assert await PasswordResetToken.filter(token=token).count() == 0
    assert gateway.sent[-1].subject == "Password Reset Successful"


async def test_token_is_single_use(resets, make_user):
    await make_user()
    token = await resets.request("bob@example.com")
    await resets.verify(token, "new-pw")

    with pytest.raises(TokenNotFound):
        await resets.verify(token, "another-pw")


async def test_concurrent_verify_consumes_token_once(resets, make_user, gateway):
    await make_user()
    token = await resets.request("bob@example.com")

    results = await asyncio.gather(
        resets.verify(token, "pw-A"),
        resets.verify(token, "pw-B"),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 1
    assert isinstance(failures[0], TokenNotFound)
    winner = "pw-A" if results[0] is None else "pw-B"
    user = await User.get(username="bob")
    assert verify_password(winner, user.password_hash)
    assert [m.subject for m in gateway.sent].count("Password Reset Successful") == 1


async def test_mismatch_is_checked_after_the_token(resets, make_user, clock):
    await make_user()

    # Unknown token: the token failure wins over the mismatch
    with pytest.raises(TokenNotFound):
        await resets.verify("not-a-token", "pw-A", "pw-B")

    token = await resets.request("bob@example.com")
    clock.advance(RESET_TOKEN_TTL_MS + 1)
    with pytest.raises(TokenExpired):
        await resets.verify(token, "pw-A", "pw-B")


async def test_mismatch_leaves_token_usable(resets, make_user):
    await make_user()
    token = await resets.request("bob@example.com")

    with pytest.raises(PasswordMismatch):
        await resets.verify(token, "pw-A", "pw-B")
    assert await PasswordResetToken.filter(token=token).count() == 1

    await resets.verify(token, "pw-A", "pw-A")
    user = await User.get(username="bob")
    assert verify_password("pw-A", user.password_hash)


async def test_expired_token(resets, make_user, clock):
    await make_user()
    token = await resets.request("bob@example.com")

    # now == expires_at is still accepted, one ms later is not
    clock.advance(RESET_TOKEN_TTL_MS + 1)
    with pytest.raises(TokenExpired):
        await resets.verify(token, "new-pw")

    user = await User.get(username="bob")
    assert verify_password("old-pw", user.password_hash)


async def test_token_valid_at_exact_expiry(resets, make_user, clock):
    await make_user()
    token = await resets.request("bob@example.com")
    clock.advance(RESET_TOKEN_TTL_MS)
    await resets.verify(token, "new-pw")


async def test_bad_signature_of_stored_token(resets, make_user, clock):
    user = await make_user()
    foreign = sign_token(str(user.id), "some-other-key", clock.now, RESET_TOKEN_TTL_MS)
    await PasswordResetToken.create(user_id=user.id, token=foreign, expires_at=clock.now + RESET_TOKEN_TTL_MS)

    with pytest.raises(SignatureInvalid) as err:
        await resets.verify(foreign, "new-pw")
    assert err.value.message == "Invalid reset token signature"


async def test_check_order(resets, make_user, clock):
    """Lookup before signature before expiry."""
    user = await make_user()
    foreign = sign_token(str(user.id), "some-other-key", clock.now, RESET_TOKEN_TTL_MS)

    # Not stored: not found wins over the bad signature
    with pytest.raises(TokenNotFound):
        await resets.verify(foreign, "new-pw")

    # Stored, bad signature and expired: signature wins over expiry
    await PasswordResetToken.create(user_id=user.id, token=foreign, expires_at=clock.now - 1)
    with pytest.raises(SignatureInvalid):
        await resets.verify(foreign, "new-pw")


async def test_user_gone(resets, make_user):
    user = await make_user()
    token = await resets.request("bob@example.com")
    await User.filter(id=user.id).delete()

    with pytest.raises(UserNotFound):
        await resets.verify(token, "new-pw")


async def test_older_tokens_stay_valid(resets, make_user):
    await make_user()
    first = await resets.request("bob@example.com")
    second = await resets.request("bob@example.com")
    assert first != second

    await resets.verify(first, "pw-one")
    await resets.verify(second, "pw-two")
    user = await User.get(username="bob")
    assert verify_password("pw-two", user.password_hash)


async def test_confirmation_mail_failure_after_commit(store, clock, make_user, db):
    """The password is already rotated when the confirmation mail fails."""

    class FailingAfterFirst:
        def __init__(self):
            self.calls = 0

        async def send(self, message):
            self.calls += 1
            if self.calls > 1:
                raise NotificationError()

    resets = PasswordResetService(store, FailingAfterFirst(), SECRET, clock=clock)
    await make_user()
    token = await resets.request("bob@example.com")

    with pytest.raises(NotificationError):
        await resets.verify(token, "new-pw")

    user = await User.get(username="bob")
    assert verify_password("new-pw", user.password_hash)
    assert await PasswordResetToken.filter(token=token).count() == 0
