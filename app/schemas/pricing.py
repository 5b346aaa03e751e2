# app/schemas/pricing.py
from typing import Optional

from pydantic import BaseModel, Field


class DiscountDetails(BaseModel):
    offer_id: int
    name: str
    discount_type: str
    value: float
    amount: float
    priority: int


class PriceBreakdown(BaseModel):
    """Расчёт цены одной единицы конфигурации."""
    metal: float = 0.0
    diamond: float = 0.0
    making: float = 0.0
    subtotal: float = 0.0
    discount: float = 0.0
    total: float = 0.0
    tax: float = 0.0
    discount_details: Optional[DiscountDetails] = None


class PriceQuoteRequest(BaseModel):
    variant_id: Optional[int] = None
    quantity: int = Field(1, ge=1)


class PriceQuoteResponse(BaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int
    currency: str
    unit_price: float
    line_total: float
    price_breakdown: PriceBreakdown
