# app/crud/cart.py
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.cart import Cart, CartItem, Wishlist, WishlistItem

# Функции ниже не коммитят: транзакцией управляет сервисный слой.

# --- CRUD для Корзины ---

def get_cart(db: Session, customer_id: int) -> Optional[Cart]:
    return db.query(Cart).filter(Cart.customer_id == customer_id).first()


def get_or_create_cart(db: Session, customer_id: int, currency: str) -> Cart:
    """Корзина создаётся лениво при первом обращении."""
    cart = get_cart(db, customer_id)
    if cart is None:
        cart = Cart(customer_id=customer_id, currency=currency)
        db.add(cart)
        db.flush()
    return cart


def get_cart_items(db: Session, cart_id: int) -> List[CartItem]:
    """Все физические строки корзины в порядке добавления."""
    return db.query(CartItem).filter(CartItem.cart_id == cart_id).order_by(CartItem.id).all()


def get_cart_item(db: Session, cart_id: int, item_id: int) -> Optional[CartItem]:
    """Строка ищется только внутри своей корзины: чужие строки не видны."""
    return db.query(CartItem).filter(CartItem.id == item_id, CartItem.cart_id == cart_id).first()


def get_cart_items_by_ids(db: Session, cart_id: int, item_ids: List[int]) -> List[CartItem]:
    if not item_ids:
        return []
    return db.query(CartItem).filter(
        CartItem.cart_id == cart_id, CartItem.id.in_(item_ids)
    ).order_by(CartItem.id).all()


def create_cart_item(
    db: Session,
    cart_id: int,
    product_id: int,
    quantity: int,
    variant_id: int | None = None,
    configuration: dict | None = None,
) -> CartItem:
    item = CartItem(
        cart_id=cart_id,
        product_id=product_id,
        product_variant_id=variant_id,
        quantity=quantity,
        configuration=configuration,
    )
    db.add(item)
    return item


def find_cart_item(db: Session, cart_id: int, product_id: int, variant_id: int | None) -> Optional[CartItem]:
    """Первая строка с тем же товаром и вариацией, конфигурация не учитывается."""
    query = db.query(CartItem).filter(CartItem.cart_id == cart_id, CartItem.product_id == product_id)
    if variant_id is None:
        query = query.filter(CartItem.product_variant_id.is_(None))
    else:
        query = query.filter(CartItem.product_variant_id == variant_id)
    return query.order_by(CartItem.id).first()


def clear_cart(db: Session, cart_id: int):
    """Удаляет все строки корзины."""
    db.query(CartItem).filter(CartItem.cart_id == cart_id).delete(synchronize_session="fetch")


# --- CRUD для Избранного ---

def get_or_create_wishlist(db: Session, customer_id: int) -> Wishlist:
    wishlist = db.query(Wishlist).filter(Wishlist.customer_id == customer_id).first()
    if wishlist is None:
        wishlist = Wishlist(customer_id=customer_id)
        db.add(wishlist)
        db.flush()
    return wishlist


def get_wishlist_items(db: Session, wishlist_id: int) -> List[WishlistItem]:
    return db.query(WishlistItem).filter(WishlistItem.wishlist_id == wishlist_id).order_by(WishlistItem.id).all()


def get_wishlist_item(db: Session, wishlist_id: int, item_id: int) -> Optional[WishlistItem]:
    return db.query(WishlistItem).filter(
        WishlistItem.id == item_id, WishlistItem.wishlist_id == wishlist_id
    ).first()


def add_wishlist_item(
    db: Session,
    wishlist_id: int,
    product_id: int,
    variant_id: int | None = None,
    configuration: dict | None = None,
) -> WishlistItem:
    """Повторное добавление той же пары (товар, вариация) возвращает существующую запись."""
    query = db.query(WishlistItem).filter(
        WishlistItem.wishlist_id == wishlist_id, WishlistItem.product_id == product_id
    )
    if variant_id is None:
        query = query.filter(WishlistItem.product_variant_id.is_(None))
    else:
        query = query.filter(WishlistItem.product_variant_id == variant_id)
    existing_item = query.first()
    if existing_item:
        return existing_item

    item = WishlistItem(
        wishlist_id=wishlist_id,
        product_id=product_id,
        product_variant_id=variant_id,
        configuration=configuration,
    )
    db.add(item)
    return item
