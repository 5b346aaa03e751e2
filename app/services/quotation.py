# app/services/quotation.py

import logging
import uuid
from typing import Dict, List

from sqlalchemy.orm import Session

from app.core import locales
from app.core.exceptions import InventoryExceededError, ValidationError
from app.crud import cart as crud_cart
from app.crud import catalog as crud_catalog
from app.crud import order as crud_order
from app.models.cart import CartItem
from app.models.user import Customer
from app.schemas.cart import CartLine
from app.schemas.order import Quotation as QuotationSchema
from app.schemas.order import QuotationSubmissionResponse
from app.services import cart as cart_service
from app.services.cost_model import load_cost_model
from app.services.pricing import CustomerContext

logger = logging.getLogger(__name__)


def collect_inventory_violations(db: Session, items: List[CartItem]) -> List[str]:
    """
    Суммирует количество по каждой вариации во всей корзине и сверяет с остатком.
    Вариации блокируются до конца транзакции. Возвращает все нарушения сразу.
    """
    requested: Dict[int, int] = {}
    product_names: Dict[int, str] = {}
    for item in items:
        if item.product_variant_id is None:
            continue
        requested[item.product_variant_id] = requested.get(item.product_variant_id, 0) + item.quantity
        product_names.setdefault(item.product_variant_id, item.product.name)

    variants = {v.id: v for v in crud_catalog.get_variants_for_update(db, list(requested))}

    messages = []
    for variant_id, total in requested.items():
        variant = variants.get(variant_id)
        if variant is None or variant.inventory_quantity is None:
            continue
        available = variant.inventory_quantity
        suffix = locales.variant_suffix(variant.label)
        if available <= 0:
            messages.append(locales.ERROR_LINE_OUT_OF_STOCK.format(
                product=product_names[variant_id], variant=suffix
            ))
        elif total > available:
            messages.append(locales.ERROR_LINE_OVER_REQUESTED.format(
                product=product_names[variant_id], variant=suffix, total=total,
                available=available, item_word=locales.item_word(available),
            ))
    return messages


def load_submittable_items(db: Session, cart_id: int) -> List[CartItem]:
    """Строки корзины, прошедшие проверку остатков. Иначе исключение и откат."""
    items = crud_cart.get_cart_items(db, cart_id)
    if not items:
        raise ValidationError(locales.ERROR_CART_EMPTY)

    violations = collect_inventory_violations(db, items)
    if violations:
        db.rollback()
        logger.warning(f"Cart {cart_id} rejected with {len(violations)} inventory violation(s).")
        raise InventoryExceededError(locales.ERROR_QUOTATION_INVENTORY, violations)
    return items


def _snapshot(line: CartLine) -> dict:
    return {
        "cart_item_id": line.id,
        "variant_id": line.variant_id,
        "variant_label": line.variant_label,
        "quantity": line.quantity,
        "configuration": line.configuration,
        "unit_total": line.unit_total,
        "line_total": line.line_total,
        "price_breakdown": line.price_breakdown.model_dump(),
    }


def _join_notes(lines: List[CartLine], comment: str | None) -> str | None:
    parts = [line.notes for line in lines if line.notes]
    if comment:
        parts.append(comment)
    return "\n\n".join(parts) or None


def submit_as_quotations(db: Session, customer: Customer, comment: str | None = None) -> QuotationSubmissionResponse:
    """
    Превращает корзину в котировки: одна котировка на товар, количество
    суммируется по всем строкам товара. Всё или ничего.
    """
    cart = cart_service.get_cart(db, customer)
    items = load_submittable_items(db, cart.id)
    lines = cart_service.price_lines(db, items, CustomerContext.from_customer(customer), load_cost_model(db))

    lines_by_product: Dict[int, List[CartLine]] = {}
    for line in lines:
        lines_by_product.setdefault(line.product_id, []).append(line)

    quotation_group_id = str(uuid.uuid4())
    quotations = []
    try:
        with db.begin_nested():
            for product_id, product_lines in lines_by_product.items():
                variant_ids = {line.variant_id for line in product_lines}
                quotations.append(crud_order.create_quotation(
                    db,
                    customer_id=customer.id,
                    quotation_group_id=quotation_group_id,
                    product_id=product_id,
                    quantity=sum(line.quantity for line in product_lines),
                    # Вариация фиксируется, только если она у всех строк одна
                    variant_id=variant_ids.pop() if len(variant_ids) == 1 else None,
                    notes=_join_notes(product_lines, comment),
                    meta={
                        "currency": cart.currency,
                        "lines": [_snapshot(line) for line in product_lines],
                    },
                ))
            crud_cart.clear_cart(db, cart.id)
        db.commit()
    except Exception:
        db.rollback()
        logger.error(f"Quotation submission failed for customer {customer.id}. Nothing was saved.", exc_info=True)
        raise

    logger.info(
        f"Customer {customer.id} submitted {len(quotations)} quotation(s) in group {quotation_group_id}."
    )
    return QuotationSubmissionResponse(
        message=locales.SUCCESS_QUOTATIONS_SUBMITTED,
        quotation_group_id=quotation_group_id,
        quotations=[QuotationSchema.model_validate(q) for q in quotations],
    )
