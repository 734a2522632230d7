# account_service/models/address.py
import uuid
from tortoise import fields, models

class Address(models.Model):
    """Postal address owned by exactly one user."""
    id = fields.UUIDField(pk=True, default=uuid.uuid4)
    user_id = fields.UUIDField(index=True)  # Owner; the user's `addresses` list references this row
    address = fields.CharField(max_length=512)
    city = fields.CharField(max_length=128)
    state = fields.CharField(max_length=128)
    pincode = fields.CharField(max_length=16)
    phone = fields.CharField(max_length=32)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "addresses"
