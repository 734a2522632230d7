# account_service/api/v1/routers/users.py
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from account_service.api.v1.deps import get_access_token, get_account_service
from account_service.config import settings
from account_service.schemas.user import (
    AddressIn,
    DeleteAddressesIn,
    ForgotPasswordIn,
    ForgotPasswordOut,
    LoginIn,
    LoginOut,
    MessageOut,
    RegisterIn,
    ResetPasswordIn,
    UserDetailOut,
    UserOut,
)
from account_service.services.accounts import AccountService

router = APIRouter(prefix="/user", tags=["user"])

# Failures are AccountError subclasses, rendered as {"error": ...} by the handler in main.py


@router.post("/register", response_model=MessageOut)
async def register(body: RegisterIn, accounts: AccountService = Depends(get_account_service)):
    """
    Register a new user account.

    The password is hashed before storage and a welcome email is sent.
    Username and email must be unique; a duplicate is reported as a generic
    registration failure.

    Error responses (400):
        - Passwords do not match
        - Error occurred! Try Again (store rejected the user)
    """
    await accounts.register(
        username=body.username,
        password=body.password,
        confirm_password=body.confirmPassword,
        email=body.email,
        firstname=body.firstname,
        lastname=body.lastname,
    )
    return {"message": "User registered successfully"}


@router.post("/login", response_model=LoginOut)
async def login(body: LoginIn, accounts: AccountService = Depends(get_account_service)):
    """
    Authenticate and issue a session token valid for one hour.

    Error responses (400):
        - User not found
        - Invalid username or password
    """
    token = await accounts.login(body.username, body.password)
    return {"access_token": token}


@router.get("/get", response_model=UserOut)
async def get_user(
    token: Optional[str] = Depends(get_access_token),
    accounts: AccountService = Depends(get_account_service),
):
    """Return the user bound to the session token."""
    return await accounts.get_user(token)


@router.delete("/delete", response_model=MessageOut)
async def delete_user(
    token: Optional[str] = Depends(get_access_token),
    accounts: AccountService = Depends(get_account_service),
):
    """Delete the user bound to the session token, with their addresses."""
    await accounts.delete_user(token)
    return {"message": "User deleted"}


@router.get("/list/{page}", response_model=List[UserOut])
async def list_users(page: int, accounts: AccountService = Depends(get_account_service)):
    """
    Get one page of users (10 per page, 1-indexed, oldest first).

    Error responses (400):
        - Invalid page number (page <= 0 or not an integer)
    """
    return await accounts.list_users(page)


@router.post("/address", response_model=MessageOut)
async def add_address(
    body: AddressIn,
    token: Optional[str] = Depends(get_access_token),
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.add_address(
        token,
        address=body.address,
        city=body.city,
        state=body.state,
        pincode=body.pincode,
        phone=body.phone,
    )
    return {"message": "Address added successfully"}


@router.delete("/address", response_model=MessageOut)
async def delete_addresses(
    body: DeleteAddressesIn,
    token: Optional[str] = Depends(get_access_token),
    accounts: AccountService = Depends(get_account_service),
):
    await accounts.remove_addresses(token, body.addressIds)
    return {"message": "Addresses deleted successfully"}


@router.post("/forgot-password", response_model=ForgotPasswordOut, response_model_exclude_none=True)
async def forgot_password(body: ForgotPasswordIn, accounts: AccountService = Depends(get_account_service)):
    """
    Issue a 15-minute password reset token and email the reset link.

    The raw token is also returned unless RESET_TOKEN_IN_RESPONSE is disabled.
    """
    token = await accounts.forgot_password(body.email)
    out = {"message": "Password reset token sent successfully"}
    if settings.reset_token_in_response:
        out["token"] = token
    return out


@router.post("/verify_reset_password/{reset_token}", response_model=MessageOut)
async def verify_reset_password(
    reset_token: str,
    body: ResetPasswordIn,
    accounts: AccountService = Depends(get_account_service),
):
    """
    Consume a reset token and set the new password.

    Error responses (400):
        - Invalid reset token (unknown or already consumed)
        - Invalid reset token signature
        - Password reset token has expired
        - User not found
        - Passwords do not match (checked last, the token stays usable)
    """
    await accounts.reset_password(reset_token, body.password, body.confirmPassword)
    return {"message": "Password reset successful"}


@router.post("/profile-image")
async def upload_profile_image(
    flag: Optional[str] = Form(default=None),
    file: Optional[UploadFile] = File(default=None),
    accounts: AccountService = Depends(get_account_service),
):
    """
    Store a profile image.

    flag="online" -> {"imageUrl": ...} (remote storage)
    flag="local"  -> {"imagePath": ...} (local disk)
    """
    content = await file.read() if file is not None else None
    return await accounts.upload_profile_image(
        flag,
        filename=file.filename if file is not None else None,
        content=content,
        content_type=file.content_type if file is not None else None,
    )


# Declared last so the fixed paths above win
@router.get("/{user_id}", response_model=UserDetailOut)
async def get_user_by_id(user_id: str, accounts: AccountService = Depends(get_account_service)):
    """Return a user with nested address documents."""
    return await accounts.get_user_by_id(user_id)
