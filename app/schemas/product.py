# app/schemas/product.py
from typing import Any, Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

from app.schemas.pricing import PriceBreakdown

SORT_OPTIONS = ("newest", "name_asc", "price_asc", "price_desc")


class ConfigurationMetal(BaseModel):
    metal_id: int
    metal: str
    purity_id: int
    purity: str
    tone_id: int
    tone: str
    weight: Optional[float] = None
    label: str


class ConfigurationDiamond(BaseModel):
    diamond_id: int
    name: Optional[str] = None
    shape: Optional[str] = None
    color: Optional[str] = None
    clarity: Optional[str] = None
    count: int = 1
    label: str


class ConfigurationOption(BaseModel):
    """Одна покупаемая комбинация: вариация + её металлы и камни."""
    variant_id: int
    label: str
    metal_label: str = ""
    diamond_label: str = ""
    metals: List[ConfigurationMetal] = []
    diamonds: List[ConfigurationDiamond] = []
    size: Optional[str] = None
    price_total: float
    price_breakdown: PriceBreakdown
    sku: Optional[str] = None
    inventory_quantity: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


# --- Каталог ---

class CatalogFilters(BaseModel):
    """
    Параметры поиска по каталогу. Списки приходят как повторяющиеся
    query-параметры или через запятую.
    """
    brand: List[str] = []
    metal: List[int] = []
    metal_purity: List[int] = []
    metal_tone: List[int] = []
    diamond: List[str] = []
    category: List[str] = []
    catalog: List[str] = []
    ready_made: bool = False
    search: Optional[str] = None
    price_min: Optional[float] = Field(None, ge=0)
    price_max: Optional[float] = Field(None, ge=0)
    sort: str = "newest"
    page: int = Field(1, ge=1)

    @field_validator('brand', 'diamond', 'category', 'catalog', 'metal', 'metal_purity', 'metal_tone', mode='before')
    @classmethod
    def split_comma_separated(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        values = []
        for item in v:
            if isinstance(item, str):
                values.extend(part.strip() for part in item.split(",") if part.strip())
            else:
                values.append(item)
        return values

    @field_validator('sort', mode='before')
    @classmethod
    def validate_sort(cls, v):
        # Неизвестная сортировка = сортировка по умолчанию
        if v not in SORT_OPTIONS:
            return "newest"
        return v

    @field_validator('search', mode='before')
    @classmethod
    def blank_search_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v


class ProductCard(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None
    is_ready_made: bool = False
    default_variant_id: Optional[int] = None
    price_total: float
    price_breakdown: PriceBreakdown


DataType = TypeVar('DataType')

class PaginatedResponse(BaseModel, Generic[DataType]):
    """
    Универсальная Pydantic-схема для пагинированных ответов.
    """
    data: List[DataType]
    current_page: int
    per_page: int
    total: int
    last_page: int


class FacetOption(BaseModel):
    id: int
    name: str

    class Config:
        from_attributes = True


class MetalFacetOption(FacetOption):
    metal_id: int


class CatalogFacets(BaseModel):
    categories: List[FacetOption] = []
    metals: List[FacetOption] = []
    purities: List[MetalFacetOption] = []
    tones: List[MetalFacetOption] = []
    diamond_shapes: List[FacetOption] = []
    diamond_colors: List[FacetOption] = []
    diamond_clarities: List[FacetOption] = []
    brands: List[FacetOption] = []
    catalogs: List[FacetOption] = []


class CatalogSearchResponse(BaseModel):
    filters: CatalogFilters
    products: PaginatedResponse[ProductCard]
    facets: CatalogFacets


class ProductDetail(BaseModel):
    id: int
    name: str
    sku: Optional[str] = None
    description: Optional[str] = None
    brand: Optional[str] = None
    category: Optional[str] = None
    uses_metal: bool
    uses_diamond: bool
    base_price: Optional[float] = None
    media: List[str] = []
    metadata: Optional[Dict[str, Any]] = None
    configurations: List[ConfigurationOption]
