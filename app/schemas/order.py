# app/schemas/order.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class QuotationSubmit(BaseModel):
    comment: Optional[str] = Field(None, max_length=2000)


class Quotation(BaseModel):
    id: int
    quotation_group_id: str
    product_id: int
    product_variant_id: Optional[int] = None
    quantity: int
    status: str
    notes: Optional[str] = None
    # В модели колонка называется metadata, а атрибут - meta
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="meta")

    class Config:
        from_attributes = True


class QuotationSubmissionResponse(BaseModel):
    message: str
    quotation_group_id: str
    quotations: List[Quotation]


# Схема для одной позиции в заказе
class OrderItem(BaseModel):
    id: int
    product_id: Optional[int] = None
    product_variant_id: Optional[int] = None
    sku: Optional[str] = None
    name: str
    quantity: int
    unit_price: float
    total_price: float
    configuration: Optional[Dict[str, Any]] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="meta")

    class Config:
        from_attributes = True


class Order(BaseModel):
    id: int
    reference: str
    status: str
    currency: str
    subtotal_amount: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    price_breakdown: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    items: List[OrderItem] = []

    class Config:
        from_attributes = True


class OrderCreateResponse(BaseModel):
    message: str
    order: Order
