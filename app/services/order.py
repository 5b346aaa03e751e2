# app/services/order.py

import logging
import secrets
import string
from typing import List

from sqlalchemy.orm import Session

from app.core import locales
from app.core.config import settings
from app.crud import cart as crud_cart
from app.crud import order as crud_order
from app.models.order import Order, OrderItem
from app.models.user import Customer
from app.schemas.cart import CartLine
from app.schemas.order import Order as OrderSchema
from app.schemas.order import OrderCreateResponse
from app.services import cart as cart_service
from app.services.cost_model import load_cost_model
from app.services.pricing import CustomerContext
from app.services.quotation import load_submittable_items

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "ORD-"
REFERENCE_ALPHABET = string.ascii_uppercase + string.digits
INITIAL_ORDER_STATUS = "pending_payment"


def generate_reference(db: Session) -> str:
    """ORD- и 10 случайных символов в верхнем регистре, уникально среди заказов."""
    while True:
        reference = REFERENCE_PREFIX + "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(10))
        if not crud_order.reference_exists(db, reference):
            return reference


def _order_item(line: CartLine) -> OrderItem:
    # Цена замораживается: последующие изменения курсов на заказ не влияют
    return OrderItem(
        product_id=line.product_id,
        product_variant_id=line.variant_id,
        sku=line.product_sku,
        name=f"{line.product_name}{locales.variant_suffix(line.variant_label)}",
        quantity=line.quantity,
        unit_price=line.unit_total,
        total_price=line.line_total,
        configuration=line.configuration,
        meta={"price_breakdown": line.price_breakdown.model_dump()},
    )


def create_order_from_cart(db: Session, customer: Customer) -> OrderCreateResponse:
    cart = cart_service.get_cart(db, customer)
    items = load_submittable_items(db, cart.id)
    lines: List[CartLine] = cart_service.price_lines(
        db, items, CustomerContext.from_customer(customer), load_cost_model(db)
    )

    subtotal = round(sum(line.line_subtotal for line in lines), 2)
    discount = round(sum(line.line_discount for line in lines), 2)
    goods_total = round(sum(line.line_total for line in lines), 2)
    tax = round(goods_total * settings.TAX_RATE_PERCENT / 100, 2)

    try:
        with db.begin_nested():
            order = crud_order.create_order(
                db,
                Order(
                    customer_id=customer.id,
                    reference=generate_reference(db),
                    status=INITIAL_ORDER_STATUS,
                    currency=cart.currency,
                    subtotal_amount=subtotal,
                    tax_amount=tax,
                    discount_amount=discount,
                    total_amount=round(goods_total + tax, 2),
                    price_breakdown={
                        "subtotal": subtotal,
                        "discount": discount,
                        "tax": tax,
                        "shipping": 0.0,
                        "total": round(goods_total + tax, 2),
                    },
                ),
                [_order_item(line) for line in lines],
            )
            crud_cart.clear_cart(db, cart.id)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Order creation failed for customer {customer.id}. Nothing was saved.", exc_info=True)
        raise

    db.refresh(order)
    logger.info(f"Order {order.reference} created for customer {customer.id} with {len(lines)} item(s).")
    return OrderCreateResponse(
        message=locales.SUCCESS_ORDER_CREATED,
        order=OrderSchema.model_validate(order),
    )
