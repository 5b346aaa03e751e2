# app/models/pricing.py
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, func

from app.db.session import Base


class PriceRate(Base):
    """Курс металла за грамм. Действует последний по effective_at."""
    __tablename__ = "price_rates"
    id = Column(Integer, primary_key=True, index=True)
    # Название металла в нижнем регистре: 'gold', 'silver'
    metal = Column(String, nullable=False, index=True)
    purity = Column(String, nullable=False) # '18K', '925'
    # NULL - курс действует для любого цвета металла
    tone = Column(String, nullable=True)
    price_per_gram = Column(Numeric(12, 2, asdecimal=False), nullable=False)
    effective_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Offer(Base):
    """Автоматическая скидка на стоимость работы (making charge)."""
    __tablename__ = "offers"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)

    # 'fixed' | 'percentage'
    discount_type = Column(String, nullable=False, default="percentage")
    value = Column(Numeric(12, 2, asdecimal=False), nullable=False)

    # Условия применения. NULL / пустой список - без ограничения.
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="CASCADE"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=True)
    customer_group_id = Column(Integer, nullable=True)
    customer_types = Column(JSON, nullable=True)
    min_cart_total = Column(Numeric(12, 2, asdecimal=False), nullable=True)

    is_auto = Column(Boolean, default=True, nullable=False, server_default='true')
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')
    starts_at = Column(DateTime(timezone=True), nullable=True)
    ends_at = Column(DateTime(timezone=True), nullable=True)
