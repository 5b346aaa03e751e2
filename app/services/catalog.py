# app/services/catalog.py

import json
import logging
from typing import List

from redis.asyncio import Redis
from sqlalchemy.orm import Session

from app.core import locales
from app.core.config import settings
from app.core.exceptions import NotFoundError
from app.crud import catalog as crud_catalog
from app.models.catalog import Product
from app.schemas.pricing import PriceQuoteResponse
from app.schemas.product import (
    CatalogFacets, CatalogFilters, CatalogSearchResponse, FacetOption, MetalFacetOption,
    PaginatedResponse, ProductCard, ProductDetail
)
from app.services import catalog_filters
from app.services.configuration import effective_configuration, enumerate_configurations
from app.services.cost_model import CostModel, load_cost_model
from app.services.pricing import CustomerContext, calculate_price

logger = logging.getLogger(__name__)

FACETS_CACHE_KEY = "catalog:facets:v1"


def _card_price(card: ProductCard) -> float:
    return card.price_total


def product_card(product: Product, customer: CustomerContext, cost_model: CostModel) -> ProductCard:
    """
    Карточка товара с эффективной ценой: конфигурация дефолтной (или первой)
    вариации, а без вариаций - только стоимость работы.
    """
    configuration = effective_configuration(product, customer, cost_model)
    if configuration is not None:
        breakdown = configuration.price_breakdown
        default_variant_id = configuration.variant_id
    else:
        breakdown = calculate_price(product, customer, cost_model)
        default_variant_id = None

    return ProductCard(
        id=product.id,
        name=product.name,
        sku=product.sku,
        brand=product.brand.name if product.brand else None,
        category=product.category.name if product.category else None,
        image_url=product.media[0].url if product.media else None,
        is_ready_made=bool(product.base_price and product.base_price > 0),
        default_variant_id=default_variant_id,
        price_total=max(0.0, breakdown.total),
        price_breakdown=breakdown,
    )


async def get_facets(db: Session, redis: Redis) -> CatalogFacets:
    """
    Полные справочники для панели фильтров. Не зависят от текущей выборки,
    поэтому их можно кэшировать. Цены в кэш не попадают никогда.
    """
    cached = await redis.get(FACETS_CACHE_KEY)
    if cached:
        logger.info("Serving catalog facets from cache.")
        return CatalogFacets.model_validate(json.loads(cached))

    facets = CatalogFacets(
        categories=[FacetOption.model_validate(c) for c in crud_catalog.get_active_categories(db)],
        metals=[FacetOption.model_validate(m) for m in crud_catalog.get_active_metals(db)],
        purities=[MetalFacetOption.model_validate(p) for p in crud_catalog.get_active_purities(db)],
        tones=[MetalFacetOption.model_validate(t) for t in crud_catalog.get_active_tones(db)],
        diamond_shapes=[FacetOption.model_validate(s) for s in crud_catalog.get_diamond_shapes(db)],
        diamond_colors=[FacetOption.model_validate(c) for c in crud_catalog.get_diamond_colors(db)],
        diamond_clarities=[FacetOption.model_validate(c) for c in crud_catalog.get_diamond_clarities(db)],
        brands=[FacetOption.model_validate(b) for b in crud_catalog.get_active_brands(db)],
        catalogs=[FacetOption.model_validate(c) for c in crud_catalog.get_active_catalogs(db)],
    )
    await redis.set(FACETS_CACHE_KEY, facets.model_dump_json(), ex=settings.FACETS_CACHE_TTL_SECONDS)
    return facets


def search_products(
    db: Session,
    filters: CatalogFilters,
    customer: CustomerContext,
    cost_model: CostModel,
    per_page: int,
) -> PaginatedResponse[ProductCard]:
    """Выборка из БД -> расчёт цены -> диапазон, сортировка и срез в памяти."""
    candidates = crud_catalog.find_products(db, catalog_filters.build_conditions(filters), filters.sort)
    cards = [product_card(product, customer, cost_model) for product in candidates]

    cards = catalog_filters.apply_price_range(cards, filters.price_min, filters.price_max, _card_price)
    cards = catalog_filters.apply_price_sort(cards, filters.sort, _card_price)
    page_items, total, last_page = catalog_filters.paginate(cards, filters.page, per_page)

    return PaginatedResponse[ProductCard](
        data=page_items,
        current_page=filters.page,
        per_page=per_page,
        total=total,
        last_page=last_page,
    )


async def search(db: Session, redis: Redis, filters: CatalogFilters, customer: CustomerContext) -> CatalogSearchResponse:
    cost_model = load_cost_model(db)
    products = search_products(db, filters, customer, cost_model, settings.CATALOG_PER_PAGE)
    logger.info(
        f"Catalog search (sort={filters.sort}, page={filters.page}) matched {products.total} products "
        f"for customer {customer.customer_id or 'guest'}."
    )
    facets = await get_facets(db, redis)
    return CatalogSearchResponse(filters=filters, products=products, facets=facets)


def get_product_detail(db: Session, product_id: int, customer: CustomerContext) -> ProductDetail:
    product = crud_catalog.get_product(db, product_id)
    if product is None or not product.is_active:
        raise NotFoundError(locales.ERROR_PRODUCT_NOT_FOUND)

    cost_model = load_cost_model(db)
    return ProductDetail(
        id=product.id,
        name=product.name,
        sku=product.sku,
        description=product.description,
        brand=product.brand.name if product.brand else None,
        category=product.category.name if product.category else None,
        uses_metal=product.uses_metal,
        uses_diamond=product.uses_diamond,
        base_price=product.base_price,
        media=[m.url for m in product.media],
        metadata=product.meta,
        configurations=enumerate_configurations(product, customer, cost_model),
    )


def quote_price(
    db: Session,
    product_id: int,
    customer: CustomerContext,
    variant_id: int | None = None,
    quantity: int = 1,
) -> PriceQuoteResponse:
    """Цена конкретной конфигурации для выбранного количества."""
    product = crud_catalog.get_product(db, product_id)
    if product is None or not product.is_active:
        raise NotFoundError(locales.ERROR_PRODUCT_NOT_FOUND)

    breakdown = calculate_price(product, customer, load_cost_model(db), variant_id=variant_id, quantity=quantity)
    unit_price = max(0.0, breakdown.total)
    return PriceQuoteResponse(
        product_id=product.id,
        variant_id=variant_id,
        quantity=quantity,
        currency=settings.CURRENCY,
        unit_price=unit_price,
        line_total=round(unit_price * quantity, 2),
        price_breakdown=breakdown,
    )


def recent_product_cards(db: Session, customer: CustomerContext, limit: int) -> List[ProductCard]:
    cost_model = load_cost_model(db)
    return [product_card(p, customer, cost_model) for p in crud_catalog.get_recent_products(db, limit)]
