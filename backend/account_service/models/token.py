# account_service/models/token.py
"""
Database models for issued tokens.

Expiry timestamps are epoch milliseconds so that validity checks are
plain integer comparisons against the service clock.
"""
import uuid
from tortoise import fields, models

class AccessToken(models.Model):
    """
    Session token issued at login.
    A user may hold several at once; a record is never mutated.
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user_id = fields.UUIDField(index=True)
    access_token = fields.CharField(max_length=512, unique=True, index=True)
    expiry = fields.BigIntField()  # Epoch ms; valid while now < expiry

    class Meta:
        table = "access_tokens"


class PasswordResetToken(models.Model):
    """
    Single-use password reset token.
    Deleted when consumed; older unconsumed tokens stay until they expire.
    """
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user_id = fields.UUIDField(index=True)
    token = fields.CharField(max_length=512, unique=True, index=True)
    expires_at = fields.BigIntField()  # Epoch ms; expired once now > expires_at

    class Meta:
        table = "password_reset_tokens"
