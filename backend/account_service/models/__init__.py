# account_service/models/__init__.py
"""
Database models module initialization.
Exports all Tortoise ORM models for convenient imports.

Models exported:
- User: User account and credentials
- Address: Postal address owned by a user
- AccessToken: Session token issued at login
- PasswordResetToken: Single-use password reset token
"""
from .user import User
from .address import Address
from .token import AccessToken, PasswordResetToken
