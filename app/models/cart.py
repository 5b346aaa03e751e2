# app/models/cart.py
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, func
from sqlalchemy.orm import relationship
from sqlalchemy.schema import UniqueConstraint

from app.db.session import Base
from app.models.user import Customer  # noqa: F401  (registers "Customer" for relationship())


class Cart(Base):
    __tablename__ = "carts"
    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    currency = Column(String(3), nullable=False, default="INR")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    customer = relationship("Customer")
    items = relationship("CartItem", back_populates="cart", cascade="all, delete-orphan", order_by="CartItem.id")

    # Одна активная корзина на клиента
    __table_args__ = (UniqueConstraint('customer_id', name='_customer_cart_uc'),)


class CartItem(Base):
    __tablename__ = "cart_items"
    id = Column(Integer, primary_key=True, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)

    # NULL для товаров без вариаций
    product_variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True)

    quantity = Column(Integer, nullable=False, default=1)
    # Свободные данные строки; из значимых ключей только notes
    configuration = Column(JSON, nullable=True)
    # Последний рассчитанный расчёт цены, перезаписывается при каждом показе корзины
    price_breakdown = Column(JSON, nullable=True)

    # Счётчик версий для оптимистической блокировки
    version = Column(Integer, nullable=False, default=1, server_default='1')

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")
    variant = relationship("ProductVariant")

    # Дубликаты (товар, вариация, конфигурация) допустимы: они схлопываются при показе
    __mapper_args__ = {"version_id_col": version}


class Wishlist(Base):
    __tablename__ = "wishlists"
    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)

    customer = relationship("Customer")
    items = relationship("WishlistItem", back_populates="wishlist", cascade="all, delete-orphan", order_by="WishlistItem.id")

    __table_args__ = (UniqueConstraint('customer_id', name='_customer_wishlist_uc'),)


class WishlistItem(Base):
    __tablename__ = "wishlist_items"
    id = Column(Integer, primary_key=True, index=True)
    wishlist_id = Column(Integer, ForeignKey("wishlists.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True)
    configuration = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    wishlist = relationship("Wishlist", back_populates="items")
    product = relationship("Product")
    variant = relationship("ProductVariant")

    __table_args__ = (UniqueConstraint('wishlist_id', 'product_id', 'product_variant_id', name='_wishlist_product_variant_uc'),)
