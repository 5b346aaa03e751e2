# app/models/order.py
from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import relationship

from app.db.session import Base

# Статусы, при которых заказ считается незавершённым
OPEN_ORDER_STATUSES = ("pending", "pending_payment", "approved", "in_production", "quality_check", "ready_to_dispatch")


class Order(Base):
    __tablename__ = "orders"
    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    reference = Column(String, unique=True, nullable=False, index=True) # ORD-XXXXXXXXXX
    status = Column(String, nullable=False, default="pending_payment")
    currency = Column(String(3), nullable=False, default="INR")

    subtotal_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2, asdecimal=False), nullable=False, default=0)
    price_breakdown = Column(JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    customer = relationship("Customer")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.id")


class OrderItem(Base):
    __tablename__ = "order_items"
    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True)
    sku = Column(String, nullable=True)
    name = Column(String, nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    total_price = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    configuration = Column(JSON, nullable=True)
    meta = Column("metadata", JSON, nullable=True)

    order = relationship("Order", back_populates="items")


class Quotation(Base):
    __tablename__ = "quotations"
    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False, index=True)
    # Общий для всех котировок, отправленных одним запросом
    quotation_group_id = Column(String(36), nullable=False, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    # Заполняется, только если все строки товара ссылались на одну вариацию
    product_variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default="pending")
    notes = Column(Text, nullable=True)
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    customer = relationship("Customer")
    product = relationship("Product")
