from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product_id: str
    name: str
    price: float = Field(ge=0)
    stock: int = Field(ge=0)
    # stock minus what the cart currently holds
    available: int = Field(ge=0)


class CartLine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: Optional[int] = None
    product_id: str
    qty: int = Field(gt=0)
    name: Optional[str] = None
    price: Optional[float] = None
    stock: Optional[int] = None


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_id: int
    created_at: Optional[datetime]
    total: float


class OrderLine(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: str
    name: str
    qty: int
    price: Optional[float]


class Totals(BaseModel):
    subtotal: Decimal
    tax: Decimal
    total: Decimal
