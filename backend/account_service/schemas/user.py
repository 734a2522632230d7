"""
Pydantic schemas for the user account endpoints.
Request bodies are validated here before reaching the account core.
"""
from typing import List, Optional
from pydantic import BaseModel, Field

# ========== Input models ==========
class RegisterIn(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)
    confirmPassword: str
    email: str = Field(min_length=3)
    firstname: Optional[str] = None
    lastname: Optional[str] = None


class LoginIn(BaseModel):
    username: str
    password: str


class AddressIn(BaseModel):
    address: str
    city: str
    state: str
    pincode: str
    phone: str


class DeleteAddressesIn(BaseModel):
    addressIds: List[str] = []  # Empty list is rejected by the service


class ForgotPasswordIn(BaseModel):
    email: str


class ResetPasswordIn(BaseModel):
    password: str = Field(min_length=1)
    confirmPassword: str


# ========== Output models ==========
class MessageOut(BaseModel):
    message: str


class LoginOut(BaseModel):
    access_token: str  # Send back in the `access_token` header


class ForgotPasswordOut(BaseModel):
    message: str
    token: Optional[str] = None  # Omitted when RESET_TOKEN_IN_RESPONSE is off


class AddressOut(BaseModel):
    id: str
    userId: str
    address: str
    city: str
    state: str
    pincode: str
    phone: str


class UserOut(BaseModel):
    """User document; never carries the password hash."""
    id: str
    username: str
    email: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    addresses: List[str] = []
    createdAt: Optional[str] = None


class UserDetailOut(UserOut):
    """User document with nested address documents."""
    addresses: List[AddressOut] = []
