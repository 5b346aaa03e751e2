# app/services/pricing.py

import logging
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from app.core import locales
from app.core.exceptions import NotFoundError
from app.models.catalog import Product, ProductVariant
from app.models.pricing import Offer
from app.schemas.pricing import DiscountDetails, PriceBreakdown
from app.services.cost_model import CostModel

logger = logging.getLogger(__name__)

MAKING_CHARGE_FIXED = "fixed"
MAKING_CHARGE_PERCENTAGE = "percentage"

# Приоритет предложений при равной сумме скидки: чем уже аудитория, тем выше
PRIORITY_CUSTOMER_TYPES = 280
PRIORITY_CUSTOMER_GROUP = 260
PRIORITY_PRODUCT_SCOPE = 220
PRIORITY_GLOBAL = 200


class CustomerType(str, Enum):
    GUEST = "guest"
    RETAILER = "retailer"
    WHOLESALER = "wholesaler"
    SALES = "sales"


class CustomerContext:
    """Кто смотрит на цену. Передаётся в расчёт явно, а не вычисляется внутри."""

    def __init__(
        self,
        customer_id: int | None = None,
        customer_type: CustomerType = CustomerType.GUEST,
        customer_group_id: int | None = None,
    ):
        self.customer_id = customer_id
        self.customer_type = customer_type
        self.customer_group_id = customer_group_id

    @classmethod
    def guest(cls) -> "CustomerContext":
        return cls()

    @classmethod
    def from_customer(cls, customer) -> "CustomerContext":
        if customer is None:
            return cls.guest()
        try:
            customer_type = CustomerType(customer.type)
        except ValueError:
            logger.warning(f"Customer {customer.id} has unknown type '{customer.type}'. Pricing as retailer.")
            customer_type = CustomerType.RETAILER
        return cls(
            customer_id=customer.id,
            customer_type=customer_type,
            customer_group_id=customer.customer_group_id,
        )

    @property
    def is_guest(self) -> bool:
        return self.customer_type == CustomerType.GUEST


# --- Компоненты цены ---

def metal_cost(variant: ProductVariant, cost_model: CostModel) -> float:
    """Сумма вес × курс по всем полным связям с металлом."""
    total = 0.0
    for link in variant.metals:
        if not link.is_complete:
            continue
        weight = float(link.metal_weight or 0)
        rate = cost_model.metal_rate(link.metal.name, link.purity.name, link.tone.name)
        total += weight * rate
    return round(total, 2)


def diamond_cost(variant: ProductVariant, cost_model: CostModel) -> float:
    total = 0.0
    for link in variant.diamonds:
        if link.diamond is None:
            continue
        count = link.diamonds_count or 1
        total += cost_model.diamond_rate(link.diamond) * count
    return round(total, 2)


def making_charge_types(product: Product) -> List[str]:
    """
    Какие части стоимости работы применяются. Подсказка в metadata
    имеет приоритет, иначе решают заданные положительные значения.
    """
    hinted = (product.meta or {}).get("making_charge_types")
    if hinted:
        return [str(t).lower() for t in hinted if str(t).lower() in (MAKING_CHARGE_FIXED, MAKING_CHARGE_PERCENTAGE)]

    types = []
    if product.making_charge_amount and product.making_charge_amount > 0:
        types.append(MAKING_CHARGE_FIXED)
    if product.making_charge_percentage and product.making_charge_percentage > 0:
        types.append(MAKING_CHARGE_PERCENTAGE)
    return types


def making_charge(product: Product, material_cost: float) -> float:
    types = making_charge_types(product)
    charge = 0.0
    if MAKING_CHARGE_FIXED in types:
        charge += float(product.making_charge_amount or 0)
    if MAKING_CHARGE_PERCENTAGE in types:
        charge += material_cost * float(product.making_charge_percentage or 0) / 100
    return round(charge, 2)


# --- Скидки ---

def _offer_priority(offer: Offer) -> int:
    if offer.customer_types:
        return PRIORITY_CUSTOMER_TYPES
    if offer.customer_group_id is not None:
        return PRIORITY_CUSTOMER_GROUP
    if offer.brand_id is not None or offer.category_id is not None:
        return PRIORITY_PRODUCT_SCOPE
    return PRIORITY_GLOBAL


def _offer_customer_types(offer: Offer) -> set:
    """Типы клиентов из предложения, без учёта регистра."""
    return {str(t).strip().lower() for t in (offer.customer_types or []) if isinstance(t, str)}


def _offer_applies(offer: Offer, product: Product, customer: CustomerContext, line_subtotal: float) -> bool:
    if offer.brand_id is not None and offer.brand_id != product.brand_id:
        return False
    if offer.category_id is not None and offer.category_id != product.category_id:
        return False
    if customer.is_guest and (offer.customer_group_id is not None or offer.customer_types):
        return False
    if offer.customer_group_id is not None and offer.customer_group_id != customer.customer_group_id:
        return False
    if offer.customer_types and customer.customer_type.value not in _offer_customer_types(offer):
        return False
    if offer.min_cart_total is not None and line_subtotal < float(offer.min_cart_total):
        return False
    return True


def _offer_amount(offer: Offer, making: float) -> float:
    value = float(offer.value or 0)
    if offer.discount_type == MAKING_CHARGE_PERCENTAGE:
        amount = making * value / 100
    else:
        amount = value
    # Скидка только на работу: не больше making charge и не меньше нуля
    return round(min(making, max(0.0, amount)), 2)


def best_discount(
    offers: Iterable[Offer],
    product: Product,
    customer: CustomerContext,
    making: float,
    line_subtotal: float,
) -> Tuple[float, Optional[DiscountDetails]]:
    best: Optional[Tuple[float, int, Offer]] = None
    for offer in offers:
        if not _offer_applies(offer, product, customer, line_subtotal):
            continue
        candidate = (_offer_amount(offer, making), _offer_priority(offer), offer)
        if best is None or candidate[:2] > best[:2]:
            best = candidate

    if best is None or best[0] <= 0:
        return 0.0, None

    amount, priority, offer = best
    return amount, DiscountDetails(
        offer_id=offer.id,
        name=offer.name,
        discount_type=offer.discount_type,
        value=float(offer.value),
        amount=amount,
        priority=priority,
    )


# --- Расчёт ---

def find_variant(product: Product, variant_id: int) -> Optional[ProductVariant]:
    return next((v for v in product.variants if v.id == variant_id), None)


def calculate_price(
    product: Optional[Product],
    customer: CustomerContext,
    cost_model: CostModel,
    variant_id: int | None = None,
    quantity: int = 1,
) -> PriceBreakdown:
    """
    Расчёт цены одной единицы конфигурации.

    Без variant_id считается только стоимость работы. `total` может оказаться
    отрицательным только при некорректных данных; вызывающий код обязан
    обрезать его через max(0, total).
    """
    if product is None:
        raise NotFoundError(locales.ERROR_PRODUCT_NOT_FOUND)

    metal = 0.0
    diamond = 0.0
    if variant_id is not None:
        variant = find_variant(product, variant_id)
        if variant is None:
            raise NotFoundError(locales.ERROR_VARIANT_NOT_AVAILABLE)
        metal = metal_cost(variant, cost_model)
        diamond = diamond_cost(variant, cost_model)

    making = making_charge(product, metal + diamond)
    subtotal = round(metal + diamond + making, 2)

    discount, details = best_discount(
        cost_model.offers, product, customer, making, subtotal * max(quantity, 1)
    )

    return PriceBreakdown(
        metal=metal,
        diamond=diamond,
        making=making,
        subtotal=subtotal,
        discount=discount,
        total=round(subtotal - discount, 2),
        tax=0.0,
        discount_details=details,
    )
