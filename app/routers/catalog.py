# app/routers/catalog.py

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError as PydanticValidationError
from redis.asyncio import Redis
from sqlalchemy.orm import Session

from app.core import locales
from app.core.exceptions import ValidationError
from app.core.redis import get_redis_client
from app.dependencies import get_customer_context, get_db
from app.schemas.pricing import PriceQuoteRequest, PriceQuoteResponse
from app.schemas.product import CatalogFilters, CatalogSearchResponse, ProductDetail
from app.services import catalog as catalog_service
from app.services.pricing import CustomerContext

router = APIRouter()


def get_catalog_filters(
    brand: List[str] = Query([]),
    metal: List[str] = Query([]),
    metal_purity: List[str] = Query([]),
    metal_tone: List[str] = Query([]),
    diamond: List[str] = Query([]),
    category: List[str] = Query([]),
    catalog: List[str] = Query([]),
    ready_made: bool = False,
    search: Optional[str] = None,
    price_min: Optional[float] = Query(None, ge=0),
    price_max: Optional[float] = Query(None, ge=0),
    sort: str = "newest",
    page: int = Query(1, ge=1),
) -> CatalogFilters:
    """Собирает фильтры из query-параметров (повторяющихся или через запятую)."""
    try:
        return CatalogFilters(
            brand=brand, metal=metal, metal_purity=metal_purity, metal_tone=metal_tone,
            diamond=diamond, category=category, catalog=catalog, ready_made=ready_made,
            search=search, price_min=price_min, price_max=price_max, sort=sort, page=page,
        )
    except PydanticValidationError as e:
        raise ValidationError(locales.ERROR_INVALID_FILTERS, errors=[err["msg"] for err in e.errors()])


@router.get("/catalog", response_model=CatalogSearchResponse)
async def search_catalog(
    filters: CatalogFilters = Depends(get_catalog_filters),
    customer: CustomerContext = Depends(get_customer_context),
    db: Session = Depends(get_db),
    redis: Redis = Depends(get_redis_client)
):
    """Поиск по каталогу с фасетами. Цена считается для текущего клиента."""
    return await catalog_service.search(db, redis, filters, customer)


@router.get("/catalog/{product_id}", response_model=ProductDetail)
async def get_product(
    product_id: int,
    customer: CustomerContext = Depends(get_customer_context),
    db: Session = Depends(get_db)
):
    return catalog_service.get_product_detail(db, product_id, customer)


@router.post("/catalog/{product_id}/price", response_model=PriceQuoteResponse)
async def quote_price(
    product_id: int,
    quote: PriceQuoteRequest,
    customer: CustomerContext = Depends(get_customer_context),
    db: Session = Depends(get_db)
):
    """Цена выбранной конфигурации с учётом количества и скидок."""
    return catalog_service.quote_price(db, product_id, customer, quote.variant_id, quote.quantity)
