# account_service/models/user.py
"""
Database model for users.
Represents a user account: credentials, profile fields and the list of
owned address references.
"""
import uuid
from tortoise import fields, models

class User(models.Model):
    """
    User database model.

    Relationships:
    - Owns Addresses, referenced by id from the `addresses` list
      (membership is mutated through this record)

    Security:
    - Password is stored as a hash (never store plain text passwords)
    - Username and email must be unique across all users
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)  # Primary key: unique user identifier
    username = fields.CharField(max_length=256, unique=True, index=True)  # Login name
    email = fields.CharField(max_length=256, unique=True, index=True)  # Used for password reset lookups
    password_hash = fields.CharField(max_length=255)  # Argon2 hash, never plain text
    firstname = fields.CharField(max_length=128, null=True)
    lastname = fields.CharField(max_length=128, null=True)
    addresses = fields.JSONField(default=list)  # Owned address ids, as strings
    created_at = fields.DatetimeField(auto_now_add=True)  # Also defines listing order

    class Meta:
        """Tortoise ORM metadata configuration."""
        table = "users"
