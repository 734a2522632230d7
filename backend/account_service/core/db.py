# account_service/core/db.py
"""
Tortoise ORM wiring.
TORTOISE_ORM is shared by the app and by Aerich (see [tool.aerich] in pyproject.toml).
"""
from tortoise import Tortoise

from account_service.config import settings

MODEL_MODULES = [
    "account_service.models.user",
    "account_service.models.address",
    "account_service.models.token",
    "aerich.models",  # migration bookkeeping
]

TORTOISE_ORM = {
    "connections": {"default": settings.database_url},
    "apps": {
        "models": {"models": MODEL_MODULES, "default_connection": "default"},
    },
}


async def init_db():
    """Open the connection and register the models. Tables come from Aerich migrations."""
    await Tortoise.init(config=TORTOISE_ORM)


async def close_db():
    await Tortoise.close_connections()
