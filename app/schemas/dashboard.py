# app/schemas/dashboard.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from app.schemas.order import Order
from app.schemas.product import ProductCard


# Короткая запись котировки для ленты на главной
class DashboardQuotation(BaseModel):
    id: int
    quotation_group_id: str
    product_id: int
    product_name: Optional[str] = None
    quantity: int
    status: str
    created_at: Optional[datetime] = None


class DashboardResponse(BaseModel):
    open_orders: int
    active_offers: int
    quotation_requests: int
    recent_orders: List[Order]
    recent_quotations: List[DashboardQuotation]
    recent_products: List[ProductCard]
