import os
from decimal import Decimal
from pydantic import BaseModel


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


class Settings(BaseModel):
    # Path of the SQLite file; ":memory:" keeps everything in one connection
    DB_PATH: str = os.getenv("SHOP_DB_PATH", "shopping.db")
    DB_ECHO: bool = _flag("SHOP_DB_ECHO", "false")

    TAX_RATE: Decimal = Decimal(os.getenv("SHOP_TAX_RATE", "0.10"))
    SEED_ON_STARTUP: bool = _flag("SHOP_SEED_ON_STARTUP", "true")

settings = Settings()
