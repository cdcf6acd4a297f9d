"""ASGI entry point configured from ``LIVETRAIN_*`` environment variables.

    uvicorn livetrain.marketplace.asgi:app
    livetrain check livetrain.marketplace.asgi:app
"""

from livetrain.config import AppConfig
from livetrain.marketplace.app import create_app

app = create_app(AppConfig.from_env())
