# app/services/configuration.py

import logging
from typing import List, Optional

from app.models.catalog import Product, ProductVariant, VariantDiamond, VariantMetal
from app.schemas.product import ConfigurationDiamond, ConfigurationMetal, ConfigurationOption
from app.services.cost_model import CostModel
from app.services.pricing import CustomerContext, calculate_price

logger = logging.getLogger(__name__)

LABEL_SEPARATOR = " + "
COMBINED_SEPARATOR = " | "
DEFAULT_CONFIGURATION_LABEL = "Default Configuration"


def metal_label(link: VariantMetal) -> str:
    """'18K Yellow Gold 5.00g'. Без веса суффикс не добавляется."""
    label = f"{link.purity.name} {link.tone.name} {link.metal.name}"
    if link.metal_weight is not None:
        label += f" {float(link.metal_weight):.2f}g"
    return label


def diamond_label(link: VariantDiamond) -> str:
    diamond = link.diamond
    name = diamond.name
    if not name:
        parts = [ref.name for ref in (diamond.shape, diamond.color, diamond.clarity) if ref is not None]
        name = " ".join(parts)
    count = link.diamonds_count or 1
    if count > 1:
        name += f" ({count})"
    return name


def _metal_entries(variant: ProductVariant) -> List[ConfigurationMetal]:
    return [
        ConfigurationMetal(
            metal_id=link.metal.id,
            metal=link.metal.name,
            purity_id=link.purity.id,
            purity=link.purity.name,
            tone_id=link.tone.id,
            tone=link.tone.name,
            weight=float(link.metal_weight) if link.metal_weight is not None else None,
            label=metal_label(link),
        )
        for link in variant.metals if link.is_complete
    ]


def _diamond_entries(variant: ProductVariant) -> List[ConfigurationDiamond]:
    entries = []
    for link in variant.diamonds:
        if link.diamond is None:
            continue
        diamond = link.diamond
        entries.append(ConfigurationDiamond(
            diamond_id=diamond.id,
            name=diamond.name,
            shape=diamond.shape.name if diamond.shape else None,
            color=diamond.color.name if diamond.color else None,
            clarity=diamond.clarity.name if diamond.clarity else None,
            count=link.diamonds_count or 1,
            label=diamond_label(link),
        ))
    return entries


def build_configuration(
    product: Product,
    variant: ProductVariant,
    customer: CustomerContext,
    cost_model: CostModel,
) -> Optional[ConfigurationOption]:
    """
    Конфигурация для одной вариации или None, если у вариации есть связи
    с металлами/камнями, но ни одна из них не полная.
    """
    metals = _metal_entries(variant)
    diamonds = _diamond_entries(variant)
    has_links = bool(variant.metals) or bool(variant.diamonds)
    if has_links and not metals and not diamonds:
        return None

    metal_text = LABEL_SEPARATOR.join(m.label for m in metals)
    diamond_text = LABEL_SEPARATOR.join(d.label for d in diamonds)
    if metal_text and diamond_text:
        label = f"{metal_text}{COMBINED_SEPARATOR}{diamond_text}"
    else:
        label = metal_text or diamond_text or variant.label or f"Configuration {variant.id}"

    breakdown = calculate_price(product, customer, cost_model, variant_id=variant.id)
    return ConfigurationOption(
        variant_id=variant.id,
        label=label,
        metal_label=metal_text,
        diamond_label=diamond_text,
        metals=metals,
        diamonds=diamonds,
        size=variant.size.name if variant.size else None,
        price_total=max(0.0, breakdown.total),
        price_breakdown=breakdown,
        sku=variant.sku,
        inventory_quantity=variant.inventory_quantity,
        metadata=variant.meta,
    )


def fallback_configuration(
    product: Product,
    variant: ProductVariant,
    customer: CustomerContext,
    cost_model: CostModel,
) -> ConfigurationOption:
    """Единственная конфигурация для товара, у которого ни одна вариация не дала своей."""
    breakdown = calculate_price(product, customer, cost_model)
    return ConfigurationOption(
        variant_id=variant.id,
        label=variant.label or DEFAULT_CONFIGURATION_LABEL,
        price_total=max(0.0, breakdown.total),
        price_breakdown=breakdown,
        sku=variant.sku,
        inventory_quantity=variant.inventory_quantity,
        metadata=variant.meta,
    )


def enumerate_configurations(
    product: Product,
    customer: CustomerContext,
    cost_model: CostModel,
) -> List[ConfigurationOption]:
    """
    Все конфигурации товара в порядке вариаций (дефолтная первая).
    Для товара хотя бы с одной вариацией список никогда не пуст.
    """
    configurations = []
    for variant in product.variants:
        configuration = build_configuration(product, variant, customer, cost_model)
        if configuration is None:
            logger.debug(f"Variant {variant.id} of product {product.id} has no complete metal/diamond links. Skipped.")
            continue
        configurations.append(configuration)

    if not configurations and product.variants:
        configurations.append(fallback_configuration(product, product.variants[0], customer, cost_model))
    return configurations


def effective_configuration(
    product: Product,
    customer: CustomerContext,
    cost_model: CostModel,
) -> Optional[ConfigurationOption]:
    """Конфигурация, по которой товар показывается в каталоге: дефолтная или первая."""
    if not product.variants:
        return None
    variant = product.variants[0]
    return (
        build_configuration(product, variant, customer, cost_model)
        or fallback_configuration(product, variant, customer, cost_model)
    )
