# app/services/catalog_filters.py
"""
Поиск по каталогу в две фазы.

1. Условия для БД: каждый фасет отдаёт одно условие (внутри - OR по своим
   значениям), условия фасетов объединяются через AND.
2. Цена считается только после выборки, поэтому ценовой диапазон,
   сортировка по цене и пагинация делаются в памяти.
"""

import math
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import and_, func, or_
from sqlalchemy.sql.elements import ColumnElement

from app.models.catalog import Brand, Catalog, Category, Diamond, Product, ProductVariant, VariantDiamond, VariantMetal
from app.schemas.product import CatalogFilters

FacetBuilder = Callable[[CatalogFilters], Optional[ColumnElement]]

DIAMOND_GROUPS = {
    "shape": Diamond.diamond_shape_id,
    "color": Diamond.diamond_color_id,
    "clarity": Diamond.diamond_clarity_id,
}


def split_ids_and_names(values: Sequence) -> Tuple[List[int], List[str]]:
    """Числовые значения считаются ID, остальные - названиями (без учёта регистра)."""
    ids, names = [], []
    for value in values:
        text = str(value).strip()
        if not text:
            continue
        if text.isdigit():
            ids.append(int(text))
        else:
            names.append(text.lower())
    return ids, names


def _id_or_name(values: Sequence, by_id: Callable, by_name: Callable) -> Optional[ColumnElement]:
    ids, names = split_ids_and_names(values)
    conditions = []
    if ids:
        conditions.append(by_id(ids))
    if names:
        conditions.append(by_name(names))
    return or_(*conditions) if conditions else None


# --- Фасеты ---

def brand_condition(filters: CatalogFilters) -> Optional[ColumnElement]:
    return _id_or_name(
        filters.brand,
        lambda ids: Product.brand_id.in_(ids),
        lambda names: Product.brand.has(func.lower(Brand.name).in_(names)),
    )


def metal_family_condition(filters: CatalogFilters) -> Optional[ColumnElement]:
    """
    Металл, проба и цвет проверяются на одной и той же строке связи,
    а не просто на одной вариации.
    """
    link_conditions = []
    if filters.metal:
        link_conditions.append(VariantMetal.metal_id.in_(filters.metal))
    if filters.metal_purity:
        link_conditions.append(VariantMetal.metal_purity_id.in_(filters.metal_purity))
    if filters.metal_tone:
        link_conditions.append(VariantMetal.metal_tone_id.in_(filters.metal_tone))
    if not link_conditions:
        return None
    return Product.variants.any(ProductVariant.metals.any(and_(*link_conditions)))


def diamond_condition(filters: CatalogFilters) -> Optional[ColumnElement]:
    """Токены вида 'shape:3'. Товару достаточно совпасть с любым из них."""
    branches = []
    for token in filters.diamond:
        group, _, raw_id = str(token).partition(":")
        column = DIAMOND_GROUPS.get(group.strip().lower())
        raw_id = raw_id.strip()
        if column is None or not raw_id.isdigit():
            continue
        branches.append(
            Product.variants.any(ProductVariant.diamonds.any(VariantDiamond.diamond.has(column == int(raw_id))))
        )
    return or_(*branches) if branches else None


def category_condition(filters: CatalogFilters) -> Optional[ColumnElement]:
    return _id_or_name(
        filters.category,
        lambda ids: Product.category_id.in_(ids),
        lambda names: Product.category.has(func.lower(Category.name).in_(names)),
    )


def catalog_condition(filters: CatalogFilters) -> Optional[ColumnElement]:
    return _id_or_name(
        filters.catalog,
        lambda ids: Product.catalogs.any(Catalog.id.in_(ids)),
        lambda names: Product.catalogs.any(func.lower(Catalog.name).in_(names)),
    )


def ready_made_condition(filters: CatalogFilters) -> Optional[ColumnElement]:
    if not filters.ready_made:
        return None
    return Product.base_price > 0


def search_condition(filters: CatalogFilters) -> Optional[ColumnElement]:
    if not filters.search:
        return None
    # % и _ из ввода ищутся буквально
    escaped = filters.search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    pattern = f"%{escaped}%"
    return or_(Product.name.ilike(pattern, escape="\\"), Product.sku.ilike(pattern, escape="\\"))


FACET_BUILDERS: List[Tuple[str, FacetBuilder]] = [
    ("brand", brand_condition),
    ("metal_family", metal_family_condition),
    ("diamond", diamond_condition),
    ("category", category_condition),
    ("catalog", catalog_condition),
    ("ready_made", ready_made_condition),
    ("search", search_condition),
]


def build_conditions(filters: CatalogFilters) -> List[ColumnElement]:
    """Список условий для WHERE; объединяются через AND."""
    conditions: List[ColumnElement] = [Product.is_active.is_(True)]
    for _name, builder in FACET_BUILDERS:
        condition = builder(filters)
        if condition is not None:
            conditions.append(condition)
    return conditions


# --- Фаза в памяти ---

T = TypeVar('T')


def apply_price_range(items: List[T], price_min: float | None, price_max: float | None,
                      price_of: Callable[[T], float]) -> List[T]:
    """Обе границы включительно."""
    result = items
    if price_min is not None:
        result = [item for item in result if price_of(item) >= price_min]
    if price_max is not None:
        result = [item for item in result if price_of(item) <= price_max]
    return result


def apply_price_sort(items: List[T], sort: str, price_of: Callable[[T], float]) -> List[T]:
    """
    Устойчивая сортировка по цене. Для остальных вариантов порядок
    уже задан запросом к БД и не меняется.
    """
    if sort == "price_asc":
        return sorted(items, key=price_of)
    if sort == "price_desc":
        return sorted(items, key=price_of, reverse=True)
    return list(items)


def paginate(items: List[T], page: int, per_page: int) -> Tuple[List[T], int, int]:
    """Возвращает (срез страницы, всего элементов, номер последней страницы)."""
    total = len(items)
    last_page = math.ceil(total / per_page) if total > 0 else 1
    start = (page - 1) * per_page
    return items[start:start + per_page], total, last_page
