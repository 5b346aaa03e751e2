# app/models/catalog.py
from sqlalchemy import (
    JSON, Boolean, Column, DateTime, ForeignKey, Integer, Numeric, String, Table, Text, func
)
from sqlalchemy.orm import relationship

from app.db.session import Base

# --- Справочники ---

class Brand(Base):
    __tablename__ = "brands"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True)
    display_order = Column(Integer, default=0, nullable=False, server_default='0')
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')


class Category(Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    display_order = Column(Integer, default=0, nullable=False, server_default='0')
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')


catalog_products = Table(
    "catalog_products",
    Base.metadata,
    Column("catalog_id", Integer, ForeignKey("catalogs.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
)


class Catalog(Base):
    __tablename__ = "catalogs"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    display_order = Column(Integer, default=0, nullable=False, server_default='0')
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    products = relationship("Product", secondary=catalog_products, back_populates="catalogs")


class Metal(Base):
    __tablename__ = "metals"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False) # "Gold", "Silver", "Platinum"
    display_order = Column(Integer, default=0, nullable=False, server_default='0')
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')


class MetalPurity(Base):
    __tablename__ = "metal_purities"
    id = Column(Integer, primary_key=True, index=True)
    metal_id = Column(Integer, ForeignKey("metals.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False) # "18K", "22K", "925"
    display_order = Column(Integer, default=0, nullable=False, server_default='0')
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')

    metal = relationship("Metal")


class MetalTone(Base):
    __tablename__ = "metal_tones"
    id = Column(Integer, primary_key=True, index=True)
    metal_id = Column(Integer, ForeignKey("metals.id", ondelete="CASCADE"), nullable=False)
    name = Column(String, nullable=False) # "Yellow", "Rose", "White"
    display_order = Column(Integer, default=0, nullable=False, server_default='0')
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')

    metal = relationship("Metal")


class DiamondShape(Base):
    __tablename__ = "diamond_shapes"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    display_order = Column(Integer, default=0, nullable=False, server_default='0')


class DiamondColor(Base):
    __tablename__ = "diamond_colors"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    display_order = Column(Integer, default=0, nullable=False, server_default='0')


class DiamondClarity(Base):
    __tablename__ = "diamond_clarities"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    display_order = Column(Integer, default=0, nullable=False, server_default='0')


class Diamond(Base):
    __tablename__ = "diamonds"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    diamond_shape_id = Column(Integer, ForeignKey("diamond_shapes.id"), nullable=True)
    diamond_color_id = Column(Integer, ForeignKey("diamond_colors.id"), nullable=True)
    diamond_clarity_id = Column(Integer, ForeignKey("diamond_clarities.id"), nullable=True)
    # Цена за один камень
    price = Column(Numeric(12, 2, asdecimal=False), nullable=True)

    shape = relationship("DiamondShape")
    color = relationship("DiamondColor")
    clarity = relationship("DiamondClarity")


class Size(Base):
    __tablename__ = "sizes"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    code = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')


# --- Товары ---

class Product(Base):
    __tablename__ = "products"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    sku = Column(String, nullable=True, index=True)
    description = Column(Text, nullable=True)

    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="SET NULL"), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)

    uses_metal = Column(Boolean, default=True, nullable=False, server_default='true')
    uses_diamond = Column(Boolean, default=False, nullable=False, server_default='false')
    is_active = Column(Boolean, default=True, nullable=False, server_default='true')

    # Плоская цена "готового" изделия. NULL для конфигурируемых товаров.
    base_price = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    making_charge_amount = Column(Numeric(12, 2, asdecimal=False), nullable=True)
    making_charge_percentage = Column(Numeric(5, 2, asdecimal=False), nullable=True)

    # Свободные данные: purity, making_charge_types и т.п.
    meta = Column("metadata", JSON, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    brand = relationship("Brand")
    category = relationship("Category")
    catalogs = relationship("Catalog", secondary=catalog_products, back_populates="products")
    # Дефолтная вариация всегда первая, дальше по порядку создания
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="(ProductVariant.is_default.desc(), ProductVariant.id)",
    )
    media = relationship(
        "ProductMedia",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductMedia.display_order",
    )


class ProductMedia(Base):
    __tablename__ = "product_media"
    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String, nullable=False)
    display_order = Column(Integer, default=0, nullable=False, server_default='0')
    meta = Column("metadata", JSON, nullable=True)

    product = relationship("Product", back_populates="media")


class ProductVariant(Base):
    __tablename__ = "product_variants"
    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    label = Column(String, nullable=True)
    sku = Column(String, nullable=True)

    # NULL - остаток не отслеживается
    inventory_quantity = Column(Integer, nullable=True)
    is_default = Column(Boolean, default=False, nullable=False, server_default='false')
    size_id = Column(Integer, ForeignKey("sizes.id", ondelete="SET NULL"), nullable=True)
    meta = Column("metadata", JSON, nullable=True)

    product = relationship("Product", back_populates="variants")
    size = relationship("Size")
    metals = relationship("VariantMetal", back_populates="variant", cascade="all, delete-orphan", order_by="VariantMetal.id")
    diamonds = relationship("VariantDiamond", back_populates="variant", cascade="all, delete-orphan", order_by="VariantDiamond.id")


class VariantMetal(Base):
    __tablename__ = "product_variant_metals"
    id = Column(Integer, primary_key=True, index=True)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False, index=True)
    metal_id = Column(Integer, ForeignKey("metals.id"), nullable=True)
    metal_purity_id = Column(Integer, ForeignKey("metal_purities.id"), nullable=True)
    metal_tone_id = Column(Integer, ForeignKey("metal_tones.id"), nullable=True)
    metal_weight = Column(Numeric(10, 3, asdecimal=False), nullable=True) # граммы

    variant = relationship("ProductVariant", back_populates="metals")
    metal = relationship("Metal")
    purity = relationship("MetalPurity")
    tone = relationship("MetalTone")

    @property
    def is_complete(self) -> bool:
        """Связь участвует в цене и подписи только если заданы металл, проба и цвет."""
        return self.metal is not None and self.purity is not None and self.tone is not None


class VariantDiamond(Base):
    __tablename__ = "product_variant_diamonds"
    id = Column(Integer, primary_key=True, index=True)
    product_variant_id = Column(Integer, ForeignKey("product_variants.id", ondelete="CASCADE"), nullable=False, index=True)
    diamond_id = Column(Integer, ForeignKey("diamonds.id"), nullable=True)
    diamonds_count = Column(Integer, nullable=True)

    variant = relationship("ProductVariant", back_populates="diamonds")
    diamond = relationship("Diamond")
