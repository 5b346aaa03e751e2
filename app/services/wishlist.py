# app/services/wishlist.py

import logging

from sqlalchemy.orm import Session

from app.core import locales
from app.core.exceptions import NotFoundError, ValidationError
from app.crud import cart as crud_cart
from app.crud import catalog as crud_catalog
from app.models.cart import CartItem
from app.models.user import Customer
from app.schemas.cart import WishlistItemResponse, WishlistResponse
from app.services import cart as cart_service
from app.services.cost_model import load_cost_model
from app.services.pricing import CustomerContext, calculate_price

logger = logging.getLogger(__name__)


def get_wishlist(db: Session, customer: Customer) -> WishlistResponse:
    wishlist = crud_cart.get_or_create_wishlist(db, customer.id)
    items = crud_cart.get_wishlist_items(db, wishlist.id)
    db.commit()

    crud_catalog.get_products_by_ids(db, list({item.product_id for item in items}))
    context = CustomerContext.from_customer(customer)
    cost_model = load_cost_model(db)

    response_items = []
    for item in items:
        breakdown = calculate_price(item.product, context, cost_model, variant_id=item.product_variant_id)
        response_items.append(WishlistItemResponse(
            id=item.id,
            product_id=item.product_id,
            product_name=item.product.name,
            variant_id=item.product_variant_id,
            variant_label=item.variant.label if item.variant else None,
            configuration=item.configuration,
            price_total=max(0.0, breakdown.total),
        ))
    return WishlistResponse(items=response_items)


def add_item(
    db: Session,
    customer: Customer,
    product_id: int,
    variant_id: int | None = None,
    configuration: dict | None = None,
):
    product = crud_catalog.get_product(db, product_id)
    if product is None or not product.is_active:
        raise NotFoundError(locales.ERROR_PRODUCT_NOT_FOUND)
    if variant_id is not None and not any(v.id == variant_id for v in product.variants):
        raise NotFoundError(locales.ERROR_VARIANT_NOT_AVAILABLE)

    wishlist = crud_cart.get_or_create_wishlist(db, customer.id)
    item = crud_cart.add_wishlist_item(db, wishlist.id, product.id, variant_id, configuration)
    db.commit()
    db.refresh(item)
    logger.info(f"Customer {customer.id} saved product {product_id} (variant {variant_id}) to wishlist.")
    return item


def remove_item(db: Session, customer: Customer, item_id: int):
    wishlist = crud_cart.get_or_create_wishlist(db, customer.id)
    item = crud_cart.get_wishlist_item(db, wishlist.id, item_id)
    if item is None:
        raise NotFoundError(locales.ERROR_WISHLIST_ITEM_NOT_FOUND)
    db.delete(item)
    db.commit()


def move_to_cart(db: Session, customer: Customer, item_id: int, quantity: int = 1) -> CartItem:
    """
    Перенос в корзину. Совпадение ищется только по (товар, вариация),
    конфигурация не учитывается. Строка избранного удаляется в любом случае.
    """
    if quantity < 1:
        raise ValidationError(locales.ERROR_QUANTITY_TOO_LOW)

    wishlist = crud_cart.get_or_create_wishlist(db, customer.id)
    item = crud_cart.get_wishlist_item(db, wishlist.id, item_id)
    if item is None:
        raise NotFoundError(locales.ERROR_WISHLIST_ITEM_NOT_FOUND)

    product = crud_catalog.get_product(db, item.product_id)
    if product is None or not product.is_active:
        raise NotFoundError(locales.ERROR_PRODUCT_NO_LONGER_AVAILABLE)

    cart = cart_service.get_cart(db, customer)
    cart_item = crud_cart.find_cart_item(db, cart.id, item.product_id, item.product_variant_id)
    if cart_item is not None:
        cart_service.ensure_quantity_allowed(cart_item.variant, cart_item.quantity, cart_item.quantity + quantity)
        cart_item.quantity += quantity
    else:
        variant = next((v for v in product.variants if v.id == item.product_variant_id), None)
        cart_service.ensure_quantity_allowed(variant, 0, quantity)
        cart_item = crud_cart.create_cart_item(
            db, cart.id, item.product_id, quantity, item.product_variant_id, item.configuration
        )

    db.delete(item)
    cart_service.commit_cart(db)
    db.refresh(cart_item)
    logger.info(f"Customer {customer.id} moved wishlist item {item_id} to cart line {cart_item.id}.")
    return cart_item
