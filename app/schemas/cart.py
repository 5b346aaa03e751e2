# app/schemas/cart.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from app.schemas.pricing import PriceBreakdown


# Схема для добавления товара в корзину
class CartItemCreate(BaseModel):
    product_id: int
    variant_id: Optional[int] = None
    quantity: int = Field(1, gt=0) # Количество должно быть больше 0
    configuration: Optional[Dict[str, Any]] = None


class CartItemUpdate(BaseModel):
    """Меняется либо количество, либо заметка, либо и то и другое."""
    quantity: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = None


class CartGroupUpdate(BaseModel):
    """Правка количества в объединённой строке: line_ids берутся из группы."""
    line_ids: List[int] = Field(..., min_length=1)
    quantity: int = Field(..., gt=0)


class CartCollapseRequest(BaseModel):
    line_ids: List[int] = Field(..., min_length=1)
    # По умолчанию - сумма количеств всех строк
    quantity: Optional[int] = Field(None, gt=0)


# Одна физическая строка корзины с рассчитанной ценой
class CartLine(BaseModel):
    id: int
    product_id: int
    product_name: str
    product_sku: Optional[str] = None
    variant_id: Optional[int] = None
    variant_label: Optional[str] = None
    quantity: int
    configuration: Optional[Dict[str, Any]] = None
    notes: Optional[str] = None
    unit_total: float
    line_total: float
    line_subtotal: float
    line_discount: float
    inventory_quantity: Optional[int] = None
    price_breakdown: PriceBreakdown


# Объединённая строка для показа: несколько физических дублей как одна
class CartGroup(BaseModel):
    product_id: int
    product_name: str
    variant_id: Optional[int] = None
    variant_label: Optional[str] = None
    configuration: Optional[Dict[str, Any]] = None
    quantity: int
    unit_total: float
    line_total: float
    line_subtotal: float
    line_discount: float
    inventory_quantity: Optional[int] = None
    line_ids: List[int]


class CartSummary(BaseModel):
    items: List[CartLine]
    groups: List[CartGroup]
    currency: str
    subtotal: float
    tax: float
    discount: float
    shipping: float
    total: float


class CartMutationResponse(BaseModel):
    message: str
    cart: CartSummary


# --- Избранное ---

class WishlistItemCreate(BaseModel):
    product_id: int
    variant_id: Optional[int] = None
    configuration: Optional[Dict[str, Any]] = None


class WishlistMoveRequest(BaseModel):
    quantity: int = Field(1, gt=0)


class WishlistItemResponse(BaseModel):
    id: int
    product_id: int
    product_name: str
    variant_id: Optional[int] = None
    variant_label: Optional[str] = None
    configuration: Optional[Dict[str, Any]] = None
    price_total: float


class WishlistResponse(BaseModel):
    items: List[WishlistItemResponse]


class WishlistMutationResponse(BaseModel):
    message: str
    wishlist: WishlistResponse
