# app/services/dashboard.py

from datetime import datetime, timezone

from sqlalchemy.orm import Session

from app.core.config import settings
from app.crud import order as crud_order
from app.crud import pricing as crud_pricing
from app.models.order import Quotation
from app.models.user import Customer
from app.schemas.dashboard import DashboardQuotation, DashboardResponse
from app.schemas.order import Order
from app.services.catalog import recent_product_cards
from app.services.pricing import CustomerContext

RECENT_ORDERS_LIMIT = 5
RECENT_QUOTATIONS_LIMIT = 5


def _quotation_entry(quotation: Quotation) -> DashboardQuotation:
    return DashboardQuotation(
        id=quotation.id,
        quotation_group_id=quotation.quotation_group_id,
        product_id=quotation.product_id,
        product_name=quotation.product.name if quotation.product else None,
        quantity=quotation.quantity,
        status=quotation.status,
        created_at=quotation.created_at,
    )


def get_dashboard(db: Session, customer: Customer) -> DashboardResponse:
    """Сводка для главной страницы клиента. Новинки считаются по тем же ценам, что и каталог."""
    now = datetime.now(timezone.utc)
    return DashboardResponse(
        open_orders=crud_order.count_open_orders(db, customer.id),
        active_offers=crud_pricing.count_active_offers(db, now),
        quotation_requests=crud_order.count_quotations(db, customer.id),
        recent_orders=[Order.model_validate(o) for o in crud_order.get_recent_orders(db, customer.id, RECENT_ORDERS_LIMIT)],
        recent_quotations=[
            _quotation_entry(q) for q in crud_order.get_recent_quotations(db, customer.id, RECENT_QUOTATIONS_LIMIT)
        ],
        recent_products=recent_product_cards(
            db, CustomerContext.from_customer(customer), settings.DASHBOARD_RECENT_PRODUCTS
        ),
    )
