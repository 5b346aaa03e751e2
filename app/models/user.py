# app/models/user.py

from sqlalchemy import Column, DateTime, Integer, String, func

from app.db.session import Base

class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)

    # 'retailer', 'wholesaler', 'sales'. Служебные роли сюда не попадают.
    type = Column(String, default="retailer", nullable=False, server_default='retailer')
    customer_group_id = Column(Integer, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
