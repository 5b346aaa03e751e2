# app/crud/catalog.py

from typing import List, Optional

from sqlalchemy.orm import Session, selectinload
from sqlalchemy.sql.elements import ColumnElement

from app.models.catalog import (
    Brand, Catalog, Category, Diamond, DiamondClarity, DiamondColor, DiamondShape,
    Metal, MetalPurity, MetalTone, Product, ProductVariant, VariantDiamond, VariantMetal
)

# Всё, что нужно для расчёта цены и подписей конфигураций, одним заходом
PRICING_LOAD_OPTIONS = (
    selectinload(Product.brand),
    selectinload(Product.category),
    selectinload(Product.media),
    selectinload(Product.variants).selectinload(ProductVariant.size),
    selectinload(Product.variants).selectinload(ProductVariant.metals).selectinload(VariantMetal.metal),
    selectinload(Product.variants).selectinload(ProductVariant.metals).selectinload(VariantMetal.purity),
    selectinload(Product.variants).selectinload(ProductVariant.metals).selectinload(VariantMetal.tone),
    selectinload(Product.variants).selectinload(ProductVariant.diamonds)
        .selectinload(VariantDiamond.diamond).selectinload(Diamond.shape),
    selectinload(Product.variants).selectinload(ProductVariant.diamonds)
        .selectinload(VariantDiamond.diamond).selectinload(Diamond.color),
    selectinload(Product.variants).selectinload(ProductVariant.diamonds)
        .selectinload(VariantDiamond.diamond).selectinload(Diamond.clarity),
)


def get_product(db: Session, product_id: int) -> Optional[Product]:
    return db.query(Product).options(*PRICING_LOAD_OPTIONS).filter(Product.id == product_id).first()


def get_variants_for_update(db: Session, variant_ids: List[int]) -> List[ProductVariant]:
    """Блокирует строки вариаций до конца транзакции (на SQLite игнорируется)."""
    if not variant_ids:
        return []
    return db.query(ProductVariant).filter(
        ProductVariant.id.in_(variant_ids)
    ).order_by(ProductVariant.id).with_for_update().all()


def find_products(db: Session, where: List[ColumnElement], sort: str) -> List[Product]:
    """
    Выборка товаров по готовому набору условий. Ценовые фильтры и сортировки
    здесь не применяются: цена считается уже после выборки.
    """
    query = db.query(Product).options(*PRICING_LOAD_OPTIONS).filter(*where)
    if sort == "name_asc":
        query = query.order_by(Product.name.asc(), Product.id.asc())
    else:
        query = query.order_by(Product.created_at.desc(), Product.id.desc())
    return query.all()


def get_recent_products(db: Session, limit: int) -> List[Product]:
    return db.query(Product).options(*PRICING_LOAD_OPTIONS).filter(
        Product.is_active.is_(True)
    ).order_by(Product.created_at.desc(), Product.id.desc()).limit(limit).all()


# --- Справочники для фасетов ---

def get_active_categories(db: Session) -> List[Category]:
    return db.query(Category).filter(Category.is_active.is_(True)).order_by(Category.display_order, Category.name).all()


def get_active_metals(db: Session) -> List[Metal]:
    return db.query(Metal).filter(Metal.is_active.is_(True)).order_by(Metal.display_order, Metal.name).all()


def get_active_purities(db: Session) -> List[MetalPurity]:
    return db.query(MetalPurity).filter(
        MetalPurity.is_active.is_(True)
    ).order_by(MetalPurity.display_order, MetalPurity.name).all()


def get_active_tones(db: Session) -> List[MetalTone]:
    return db.query(MetalTone).filter(
        MetalTone.is_active.is_(True)
    ).order_by(MetalTone.display_order, MetalTone.name).all()


def get_diamond_shapes(db: Session) -> List[DiamondShape]:
    return db.query(DiamondShape).order_by(DiamondShape.display_order, DiamondShape.name).all()


def get_diamond_colors(db: Session) -> List[DiamondColor]:
    return db.query(DiamondColor).order_by(DiamondColor.display_order, DiamondColor.name).all()


def get_diamond_clarities(db: Session) -> List[DiamondClarity]:
    return db.query(DiamondClarity).order_by(DiamondClarity.display_order, DiamondClarity.name).all()


def get_active_brands(db: Session) -> List[Brand]:
    return db.query(Brand).filter(Brand.is_active.is_(True)).order_by(Brand.display_order, Brand.name).all()


def get_active_catalogs(db: Session) -> List[Catalog]:
    return db.query(Catalog).filter(Catalog.is_active.is_(True)).order_by(Catalog.display_order, Catalog.name).all()



def get_products_by_ids(db: Session, product_ids: List[int]) -> List[Product]:
    if not product_ids:
        return []
    return db.query(Product).options(*PRICING_LOAD_OPTIONS).filter(Product.id.in_(product_ids)).all()
