# app/routers/cart.py

from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core import locales
from app.dependencies import get_current_customer, get_db
from app.models.user import Customer
from app.schemas.cart import (
    CartCollapseRequest, CartGroupUpdate, CartItemCreate, CartItemUpdate, CartMutationResponse,
    CartSummary, WishlistItemCreate, WishlistMoveRequest, WishlistMutationResponse, WishlistResponse
)
from app.services import cart as cart_service
from app.services import wishlist as wishlist_service

router = APIRouter()


# --- Эндпоинты для Корзины ---

@router.get("/cart", response_model=CartSummary)
async def get_cart(
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    """Корзина: физические строки и объединённые группы с актуальными ценами."""
    return cart_service.summarize(db, current_customer)


@router.post("/cart/items", response_model=CartMutationResponse, status_code=status.HTTP_201_CREATED)
async def add_cart_item(
    item_data: CartItemCreate,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    item = cart_service.add_line(
        db, current_customer, item_data.product_id, item_data.variant_id,
        item_data.quantity, item_data.configuration,
    )
    variant_label = item.variant.label if item.variant else None
    message = locales.SUCCESS_ADDED_TO_CART.format(
        product=item.product.name, variant=locales.variant_suffix(variant_label)
    )
    return CartMutationResponse(message=message, cart=cart_service.summarize(db, current_customer))


@router.patch("/cart/items/{item_id}", response_model=CartMutationResponse)
async def update_cart_item(
    item_id: int,
    item_data: CartItemUpdate,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    """Изменение количества и/или заметки одной физической строки."""
    if item_data.quantity is not None:
        cart_service.update_quantity(db, current_customer, item_id, item_data.quantity)
    if "notes" in item_data.model_fields_set:
        cart_service.update_notes(db, current_customer, item_id, item_data.notes)
    return CartMutationResponse(
        message=locales.SUCCESS_CART_UPDATED, cart=cart_service.summarize(db, current_customer)
    )


@router.patch("/cart/groups", response_model=CartMutationResponse)
async def update_cart_group(
    group_data: CartGroupUpdate,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    """Изменение количества объединённой строки; дубли сводятся в одну."""
    cart_service.update_group_quantity(db, current_customer, group_data.line_ids, group_data.quantity)
    return CartMutationResponse(
        message=locales.SUCCESS_CART_UPDATED, cart=cart_service.summarize(db, current_customer)
    )


@router.delete("/cart/items/{item_id}", response_model=CartMutationResponse)
async def delete_cart_item(
    item_id: int,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    cart_service.remove_line(db, current_customer, item_id)
    return CartMutationResponse(
        message=locales.SUCCESS_ITEM_REMOVED_FROM_CART, cart=cart_service.summarize(db, current_customer)
    )


@router.post("/cart/collapse", response_model=CartMutationResponse)
async def collapse_cart_lines(
    collapse_data: CartCollapseRequest,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    cart_service.collapse_duplicates(db, current_customer, collapse_data.line_ids, collapse_data.quantity)
    return CartMutationResponse(
        message=locales.SUCCESS_CART_UPDATED, cart=cart_service.summarize(db, current_customer)
    )


# --- Эндпоинты для Избранного ---

@router.get("/wishlist", response_model=WishlistResponse)
async def get_wishlist(
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    return wishlist_service.get_wishlist(db, current_customer)


@router.post("/wishlist/items", response_model=WishlistMutationResponse, status_code=status.HTTP_201_CREATED)
async def add_wishlist_item(
    item_data: WishlistItemCreate,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    wishlist_service.add_item(
        db, current_customer, item_data.product_id, item_data.variant_id, item_data.configuration
    )
    return WishlistMutationResponse(
        message=locales.SUCCESS_ADDED_TO_WISHLIST, wishlist=wishlist_service.get_wishlist(db, current_customer)
    )


@router.delete("/wishlist/items/{item_id}", response_model=WishlistMutationResponse)
async def delete_wishlist_item(
    item_id: int,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    wishlist_service.remove_item(db, current_customer, item_id)
    return WishlistMutationResponse(
        message=locales.SUCCESS_REMOVED_FROM_WISHLIST, wishlist=wishlist_service.get_wishlist(db, current_customer)
    )


@router.post("/wishlist/items/{item_id}/move-to-cart", response_model=CartMutationResponse)
async def move_wishlist_item_to_cart(
    item_id: int,
    move_data: Optional[WishlistMoveRequest] = None,
    current_customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    """Перенос в корзину: существующая строка с тем же товаром и вариацией увеличивается."""
    quantity = move_data.quantity if move_data else 1
    wishlist_service.move_to_cart(db, current_customer, item_id, quantity)
    return CartMutationResponse(
        message=locales.SUCCESS_MOVED_TO_CART, cart=cart_service.summarize(db, current_customer)
    )
