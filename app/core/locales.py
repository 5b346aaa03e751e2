# app/core/locales.py

# Сообщения об ошибках
ERROR_PRODUCT_NOT_FOUND = "Product not found."
ERROR_VARIANT_NOT_AVAILABLE = "Selected variant is no longer available."
ERROR_CART_ITEM_NOT_FOUND = "Cart item not found."
ERROR_WISHLIST_ITEM_NOT_FOUND = "Wishlist item not found."
ERROR_PRODUCT_NO_LONGER_AVAILABLE = "Product is no longer available."
ERROR_CART_EMPTY = "Your cart is empty."
ERROR_QUANTITY_TOO_LOW = "Quantity must be at least 1."
ERROR_CART_ITEM_CHANGED = "This cart item was changed by another request. Please reload your cart."
ERROR_QUOTATION_INVENTORY = "Some items in your cart cannot be quoted."
ERROR_CART_LINES_NOT_IDENTICAL = "Only identical cart lines can be merged."
ERROR_INVALID_FILTERS = "Invalid catalog filter values."

# Остатки: формат сообщений разбирается витриной, менять только вместе с ней
ERROR_VARIANT_OUT_OF_STOCK = "This product variant is currently out of stock."
ERROR_NOT_ENOUGH_STOCK = "Only {available} {item_word} available. Maximum {available} {item_word} allowed."
ERROR_LINE_OUT_OF_STOCK = "{product}{variant} is currently out of stock."
ERROR_LINE_OVER_REQUESTED = "Total quantity requested for {product}{variant} is {total}, but only {available} {item_word} available."

# Сообщения об успехе
SUCCESS_ADDED_TO_CART = "{product}{variant} added to your quotation list."
SUCCESS_CART_UPDATED = "Updated quotation entry."
SUCCESS_ITEM_REMOVED_FROM_CART = "Removed from your purchase list."
SUCCESS_ADDED_TO_WISHLIST = "Saved to your wishlist."
SUCCESS_REMOVED_FROM_WISHLIST = "Removed from your wishlist."
SUCCESS_MOVED_TO_CART = "Moved to your quotation list."
SUCCESS_QUOTATIONS_SUBMITTED = "Quotation requests submitted successfully."
SUCCESS_ORDER_CREATED = "Order created. Awaiting payment."


def item_word(count: int) -> str:
    """'item' для одной штуки, 'items' во всех остальных случаях."""
    return "item" if count == 1 else "items"


def variant_suffix(label: str | None) -> str:
    """Суффикс ' (<метка вариации>)' или пустая строка, если метки нет."""
    return f" ({label})" if label else ""
