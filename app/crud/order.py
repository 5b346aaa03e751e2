# app/crud/order.py

from typing import List

from sqlalchemy.orm import Session, selectinload

from app.models.order import OPEN_ORDER_STATUSES, Order, OrderItem, Quotation


def create_quotation(
    db: Session,
    customer_id: int,
    quotation_group_id: str,
    product_id: int,
    quantity: int,
    variant_id: int | None = None,
    notes: str | None = None,
    meta: dict | None = None,
) -> Quotation:
    """
    Создает объект котировки и добавляет его в сессию.
    Требует внешнего вызова db.commit().
    """
    quotation = Quotation(
        customer_id=customer_id,
        quotation_group_id=quotation_group_id,
        product_id=product_id,
        product_variant_id=variant_id,
        quantity=quantity,
        status="pending",
        notes=notes,
        meta=meta,
    )
    db.add(quotation)
    return quotation


def get_quotations_by_group(db: Session, quotation_group_id: str) -> List[Quotation]:
    return db.query(Quotation).filter(
        Quotation.quotation_group_id == quotation_group_id
    ).order_by(Quotation.id).all()


def create_order(db: Session, order: Order, items: List[OrderItem]) -> Order:
    """Добавляет заказ вместе с позициями в сессию. Требует внешнего вызова db.commit()."""
    order.items = items
    db.add(order)
    return order


def reference_exists(db: Session, reference: str) -> bool:
    return db.query(Order.id).filter(Order.reference == reference).first() is not None


def count_open_orders(db: Session, customer_id: int) -> int:
    return db.query(Order).filter(
        Order.customer_id == customer_id,
        Order.status.in_(OPEN_ORDER_STATUSES),
    ).count()


def get_recent_orders(db: Session, customer_id: int, limit: int = 5) -> List[Order]:
    return db.query(Order).options(selectinload(Order.items)).filter(
        Order.customer_id == customer_id
    ).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit).all()


def count_quotations(db: Session, customer_id: int) -> int:
    return db.query(Quotation).filter(Quotation.customer_id == customer_id).count()


def get_recent_quotations(db: Session, customer_id: int, limit: int = 5) -> List[Quotation]:
    return db.query(Quotation).options(selectinload(Quotation.product)).filter(
        Quotation.customer_id == customer_id
    ).order_by(Quotation.created_at.desc(), Quotation.id.desc()).limit(limit).all()
