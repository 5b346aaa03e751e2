# app/services/cart.py

import json
import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core import locales
from app.core.config import settings
from app.core.exceptions import ConflictError, InventoryExceededError, NotFoundError, ValidationError
from app.crud import cart as crud_cart
from app.crud import catalog as crud_catalog
from app.models.cart import Cart, CartItem
from app.models.catalog import ProductVariant
from app.models.user import Customer
from app.schemas.cart import CartGroup, CartLine, CartSummary
from app.services.cost_model import CostModel, load_cost_model
from app.services.pricing import CustomerContext, calculate_price

logger = logging.getLogger(__name__)


def configuration_key(configuration: Optional[dict]) -> str:
    """Каноничная запись конфигурации: порядок ключей не влияет на объединение строк."""
    return json.dumps(configuration or {}, sort_keys=True, default=str)


def commit_cart(db: Session):
    """Коммит с проверкой версий строк корзины."""
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning("Cart item was modified concurrently. Rejecting the write.")
        raise ConflictError(locales.ERROR_CART_ITEM_CHANGED)


def ensure_quantity_allowed(variant: Optional[ProductVariant], current_quantity: int, new_quantity: int):
    """
    Уменьшение разрешено всегда, даже если количество всё ещё больше остатка.
    Увеличение не может выйти за отслеживаемый остаток.
    """
    if new_quantity < 1:
        raise ValidationError(locales.ERROR_QUANTITY_TOO_LOW)
    if variant is None or variant.inventory_quantity is None:
        return
    if new_quantity <= current_quantity:
        return

    available = variant.inventory_quantity
    if available <= 0:
        logger.warning(f"Rejected quantity increase for out-of-stock variant {variant.id}.")
        raise InventoryExceededError(locales.ERROR_VARIANT_OUT_OF_STOCK)
    if new_quantity > available:
        logger.warning(f"Rejected quantity {new_quantity} for variant {variant.id}: only {available} available.")
        raise InventoryExceededError(
            locales.ERROR_NOT_ENOUGH_STOCK.format(available=available, item_word=locales.item_word(available))
        )


def get_cart(db: Session, customer: Customer) -> Cart:
    return crud_cart.get_or_create_cart(db, customer.id, settings.CURRENCY)


def _get_own_item(db: Session, cart: Cart, item_id: int) -> CartItem:
    item = crud_cart.get_cart_item(db, cart.id, item_id)
    if item is None:
        raise NotFoundError(locales.ERROR_CART_ITEM_NOT_FOUND)
    return item


# --- Расчёт и объединение ---

def price_lines(db: Session, items: List[CartItem], customer: CustomerContext, cost_model: CostModel) -> List[CartLine]:
    """Цена каждой физической строки. Свежий расчёт сохраняется в самой строке."""
    # Прогреваем identity map товарами со всеми связями, нужными для расчёта
    crud_catalog.get_products_by_ids(db, list({item.product_id for item in items}))

    lines = []
    for item in items:
        breakdown = calculate_price(
            item.product, customer, cost_model,
            variant_id=item.product_variant_id, quantity=item.quantity,
        )
        stored = breakdown.model_dump()
        if item.price_breakdown != stored:
            item.price_breakdown = stored

        unit_total = max(0.0, breakdown.total)
        configuration = item.configuration or {}
        lines.append(CartLine(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product.name,
            product_sku=item.variant.sku if item.variant and item.variant.sku else item.product.sku,
            variant_id=item.product_variant_id,
            variant_label=item.variant.label if item.variant else None,
            quantity=item.quantity,
            configuration=item.configuration,
            notes=configuration.get("notes"),
            unit_total=unit_total,
            line_total=round(unit_total * item.quantity, 2),
            line_subtotal=round(breakdown.subtotal * item.quantity, 2),
            line_discount=round(breakdown.discount * item.quantity, 2),
            inventory_quantity=item.variant.inventory_quantity if item.variant else None,
            price_breakdown=breakdown,
        ))
    return lines


def reconcile(lines: List[CartLine]) -> List[CartGroup]:
    """
    Объединение дублей для показа. Строки группируются по товару, внутри
    товара - по (вариация, конфигурация). Ничего не меняет в БД.
    """
    by_product: Dict[int, Dict[Tuple[Optional[int], str], CartGroup]] = {}
    for line in lines:
        sub_groups = by_product.setdefault(line.product_id, {})
        key = (line.variant_id, configuration_key(line.configuration))
        group = sub_groups.get(key)
        if group is None:
            sub_groups[key] = CartGroup(
                product_id=line.product_id,
                product_name=line.product_name,
                variant_id=line.variant_id,
                variant_label=line.variant_label,
                configuration=line.configuration,
                quantity=line.quantity,
                unit_total=line.unit_total,
                line_total=line.line_total,
                line_subtotal=line.line_subtotal,
                line_discount=line.line_discount,
                inventory_quantity=line.inventory_quantity,
                line_ids=[line.id],
            )
            continue
        group.quantity += line.quantity
        group.line_total = round(group.line_total + line.line_total, 2)
        group.line_subtotal = round(group.line_subtotal + line.line_subtotal, 2)
        group.line_discount = round(group.line_discount + line.line_discount, 2)
        group.line_ids.append(line.id)

    groups = []
    for sub_groups in by_product.values():
        for group in sub_groups.values():
            group.unit_total = round(group.line_total / group.quantity, 2)
            groups.append(group)
    return groups


def summarize(db: Session, customer: Customer) -> CartSummary:
    cart = get_cart(db, customer)
    items = crud_cart.get_cart_items(db, cart.id)
    context = CustomerContext.from_customer(customer)
    lines = price_lines(db, items, context, load_cost_model(db))
    commit_cart(db)

    subtotal = round(sum(line.line_subtotal for line in lines), 2)
    discount = round(sum(line.line_discount for line in lines), 2)
    goods_total = round(sum(line.line_total for line in lines), 2)
    tax = round(goods_total * settings.TAX_RATE_PERCENT / 100, 2)
    shipping = 0.0

    return CartSummary(
        items=lines,
        groups=reconcile(lines),
        currency=cart.currency,
        subtotal=subtotal,
        tax=tax,
        discount=discount,
        shipping=shipping,
        total=round(goods_total + tax + shipping, 2),
    )


# --- Изменение корзины ---

def add_line(
    db: Session,
    customer: Customer,
    product_id: int,
    variant_id: int | None = None,
    quantity: int = 1,
    configuration: dict | None = None,
) -> CartItem:
    """Каждое добавление создаёт новую физическую строку, даже если такая уже есть."""
    if quantity < 1:
        raise ValidationError(locales.ERROR_QUANTITY_TOO_LOW)

    product = crud_catalog.get_product(db, product_id)
    if product is None or not product.is_active:
        raise NotFoundError(locales.ERROR_PRODUCT_NOT_FOUND)

    variant = None
    if variant_id is not None:
        variant = next((v for v in product.variants if v.id == variant_id), None)
        if variant is None:
            raise NotFoundError(locales.ERROR_VARIANT_NOT_AVAILABLE)
    ensure_quantity_allowed(variant, 0, quantity)

    cart = get_cart(db, customer)
    item = crud_cart.create_cart_item(db, cart.id, product.id, quantity, variant_id, configuration)
    commit_cart(db)
    db.refresh(item)
    logger.info(f"Customer {customer.id} added product {product.id} (variant {variant_id}) x{quantity} to cart.")
    return item


def update_quantity(db: Session, customer: Customer, item_id: int, quantity: int) -> CartItem:
    cart = get_cart(db, customer)
    item = _get_own_item(db, cart, item_id)
    ensure_quantity_allowed(item.variant, item.quantity, quantity)
    item.quantity = quantity
    commit_cart(db)
    logger.info(f"Customer {customer.id} set cart item {item_id} quantity to {quantity}.")
    return item


def update_notes(db: Session, customer: Customer, item_id: int, notes: str | None) -> CartItem:
    """Заметка хранится внутри конфигурации строки."""
    cart = get_cart(db, customer)
    item = _get_own_item(db, cart, item_id)
    configuration = dict(item.configuration or {})
    if notes:
        configuration["notes"] = notes
    else:
        configuration.pop("notes", None)
    item.configuration = configuration or None
    commit_cart(db)
    return item


def remove_line(db: Session, customer: Customer, item_id: int):
    cart = get_cart(db, customer)
    item = _get_own_item(db, cart, item_id)
    db.delete(item)
    commit_cart(db)
    logger.info(f"Customer {customer.id} removed cart item {item_id}.")


def _load_group(db: Session, cart: Cart, line_ids: List[int]) -> List[CartItem]:
    """Строки группы в переданном порядке. Все должны принадлежать корзине и совпадать по ключу."""
    unique_ids = list(dict.fromkeys(line_ids))
    found = {item.id: item for item in crud_cart.get_cart_items_by_ids(db, cart.id, unique_ids)}
    if len(found) != len(unique_ids):
        raise NotFoundError(locales.ERROR_CART_ITEM_NOT_FOUND)

    items = [found[item_id] for item_id in unique_ids]
    keys = {(i.product_id, i.product_variant_id, configuration_key(i.configuration)) for i in items}
    if len(keys) > 1:
        raise ValidationError(locales.ERROR_CART_LINES_NOT_IDENTICAL)
    return items


def _converge(db: Session, items: List[CartItem], quantity: int) -> CartItem:
    """Первая строка получает итоговое количество, остальные удаляются."""
    first, rest = items[0], items[1:]
    first.quantity = quantity
    for duplicate in rest:
        db.delete(duplicate)
    return first


def collapse_duplicates(db: Session, customer: Customer, line_ids: List[int], quantity: int | None = None) -> CartItem:
    cart = get_cart(db, customer)
    items = _load_group(db, cart, line_ids)
    if quantity is None:
        quantity = sum(item.quantity for item in items)
    if quantity < 1:
        raise ValidationError(locales.ERROR_QUANTITY_TOO_LOW)

    line = _converge(db, items, quantity)
    commit_cart(db)
    logger.info(f"Collapsed cart lines {line_ids} of customer {customer.id} into line {line.id} (qty {quantity}).")
    return line


def update_group_quantity(db: Session, customer: Customer, line_ids: List[int], quantity: int) -> CartItem:
    """
    Правка количества объединённой строки: проверка остатка идёт от суммы
    группы, после чего дубли сводятся в одну физическую строку.
    """
    cart = get_cart(db, customer)
    items = _load_group(db, cart, line_ids)
    current = sum(item.quantity for item in items)
    ensure_quantity_allowed(items[0].variant, current, quantity)

    line = _converge(db, items, quantity)
    commit_cart(db)
    logger.info(f"Customer {customer.id} set merged cart line {line.id} quantity to {quantity}.")
    return line
