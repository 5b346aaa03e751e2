# tests/test_pricing.py

import logging

import pytest

from app.core.exceptions import NotFoundError
from app.models.catalog import Diamond, Metal, MetalPurity, MetalTone, Product, ProductVariant, VariantDiamond, VariantMetal
from app.models.pricing import Offer
from app.services.cost_model import CostModel
from app.services.pricing import CustomerContext, CustomerType, calculate_price

RETAILER = CustomerContext(customer_id=1, customer_type=CustomerType.RETAILER, customer_group_id=7)
GUEST = CustomerContext.guest()


def gold_link(purity="18K", tone="Yellow", weight=5.0):
    return VariantMetal(
        metal=Metal(name="Gold"), purity=MetalPurity(name=purity), tone=MetalTone(name=tone), metal_weight=weight
    )


def rates(extra=None):
    metal_rates = {("gold", "18k", None): 60.0, ("gold", "22k", None): 70.0}
    metal_rates.update(extra or {})
    return metal_rates


def product_with_variant(metals=(), diamonds=(), **fields) -> Product:
    product = Product(id=1, name="Solitaire Ring", **fields)
    variant = ProductVariant(id=10, label="18K Yellow", is_default=True)
    variant.metals.extend(metals)
    variant.diamonds.extend(diamonds)
    product.variants.append(variant)
    return product


def test_end_to_end_metal_and_fixed_making_charge():
    product = product_with_variant([gold_link(weight=5.0)], making_charge_amount=500)

    breakdown = calculate_price(product, GUEST, CostModel(rates()), variant_id=10)

    assert breakdown.metal == 300.0
    assert breakdown.diamond == 0.0
    assert breakdown.making == 500.0
    assert breakdown.subtotal == 800.0
    assert breakdown.discount == 0.0
    assert breakdown.total == 800.0
    assert breakdown.discount_details is None


@pytest.mark.parametrize("amount, percentage, expected", [
    (500, None, 500.0),
    (None, 12, 0.0), # процент от нулевой стоимости материалов
    (250, 10, 250.0),
    (None, None, 0.0),
])
def test_product_without_variants_gets_making_charge_only(amount, percentage, expected):
    product = Product(id=2, name="Chain", making_charge_amount=amount, making_charge_percentage=percentage)

    breakdown = calculate_price(product, RETAILER, CostModel(rates()))

    assert breakdown.metal == 0.0
    assert breakdown.diamond == 0.0
    assert breakdown.making == expected
    assert breakdown.total == expected


def test_fixed_and_percentage_making_charges_add_up():
    diamond = Diamond(id=5, name="Round", price=1000)
    product = product_with_variant(
        [gold_link(weight=2.0)],
        [VariantDiamond(diamond=diamond, diamonds_count=2)],
        making_charge_amount=100,
        making_charge_percentage=10,
    )

    breakdown = calculate_price(product, GUEST, CostModel(rates()), variant_id=10)

    # металл 120, камни 2000, работа 100 + 10% от 2120
    assert breakdown.metal == 120.0
    assert breakdown.diamond == 2000.0
    assert breakdown.making == 312.0
    assert breakdown.subtotal == 2432.0


def test_making_charge_type_hint_overrides_inference():
    product = product_with_variant(
        [gold_link(weight=1.0)],
        making_charge_amount=100,
        making_charge_percentage=50,
        meta={"making_charge_types": ["percentage"]},
    )

    breakdown = calculate_price(product, GUEST, CostModel(rates()), variant_id=10)

    assert breakdown.making == 30.0


def test_metal_component_is_order_independent():
    links = [gold_link(weight=1.234), gold_link(purity="22K", weight=2.5), gold_link(weight=0.333)]
    forward = product_with_variant(links)
    backward = product_with_variant([gold_link(weight=0.333), gold_link(purity="22K", weight=2.5), gold_link(weight=1.234)])
    cost_model = CostModel(rates())

    first = calculate_price(forward, GUEST, cost_model, variant_id=10)
    second = calculate_price(backward, GUEST, cost_model, variant_id=10)

    assert first.metal == second.metal == round(1.234 * 60 + 2.5 * 70 + 0.333 * 60, 2)


def test_partial_metal_links_are_ignored():
    partial = VariantMetal(metal=Metal(name="Gold"), purity=MetalPurity(name="18K"), tone=None, metal_weight=10)
    product = product_with_variant([partial, gold_link(weight=1.0)])

    breakdown = calculate_price(product, GUEST, CostModel(rates()), variant_id=10)

    assert breakdown.metal == 60.0


def test_diamond_count_defaults_to_one():
    product = product_with_variant(diamonds=[VariantDiamond(diamond=Diamond(id=3, price=450.5), diamonds_count=None)])

    breakdown = calculate_price(product, GUEST, CostModel(rates()), variant_id=10)

    assert breakdown.diamond == 450.5


def test_tone_specific_rate_is_preferred():
    product = product_with_variant([gold_link(tone="Rose", weight=1.0)])
    cost_model = CostModel(rates({("gold", "18k", "rose"): 65.0}))

    breakdown = calculate_price(product, GUEST, cost_model, variant_id=10)

    assert breakdown.metal == 65.0


def test_missing_rate_prices_as_zero_and_warns(caplog):
    product = product_with_variant([gold_link(purity="14K", weight=3.0)], making_charge_amount=10)

    with caplog.at_level(logging.WARNING):
        breakdown = calculate_price(product, GUEST, CostModel(rates()), variant_id=10)

    assert breakdown.metal == 0.0
    assert breakdown.total == 10.0
    assert "No metal rate" in caplog.text


def test_missing_product_or_foreign_variant_raises_not_found():
    product = product_with_variant([gold_link()])

    with pytest.raises(NotFoundError):
        calculate_price(None, GUEST, CostModel())
    with pytest.raises(NotFoundError):
        calculate_price(product, GUEST, CostModel(), variant_id=999)


# --- Скидки ---

def offer(id, **fields) -> Offer:
    fields.setdefault("name", f"Offer {id}")
    fields.setdefault("discount_type", "percentage")
    return Offer(id=id, **fields)


def test_percentage_offer_applies_to_making_charge_only():
    product = product_with_variant([gold_link(weight=5.0)], making_charge_amount=500)
    cost_model = CostModel(rates(), [offer(1, value=10)])

    breakdown = calculate_price(product, RETAILER, cost_model, variant_id=10)

    assert breakdown.discount == 50.0
    assert breakdown.total == 750.0
    assert breakdown.discount_details.offer_id == 1


def test_fixed_offer_is_capped_at_making_charge():
    product = product_with_variant([gold_link(weight=5.0)], making_charge_amount=500)
    cost_model = CostModel(rates(), [offer(1, discount_type="fixed", value=5000)])

    breakdown = calculate_price(product, RETAILER, cost_model, variant_id=10)

    assert breakdown.discount == 500.0
    assert breakdown.total == 300.0


def test_best_offer_wins_and_ties_go_to_narrower_audience():
    product = product_with_variant([gold_link(weight=5.0)], making_charge_amount=500)
    cost_model = CostModel(rates(), [
        offer(1, value=10),
        offer(2, value=10, customer_group_id=7),
        offer(3, value=5, customer_types=["retailer"]),
    ])

    breakdown = calculate_price(product, RETAILER, cost_model, variant_id=10)

    assert breakdown.discount == 50.0
    assert breakdown.discount_details.offer_id == 2


def test_guest_does_not_get_customer_scoped_offers():
    product = product_with_variant([gold_link(weight=5.0)], making_charge_amount=500)
    cost_model = CostModel(rates(), [offer(1, value=20, customer_types=["retailer", "guest"])])

    assert calculate_price(product, GUEST, cost_model, variant_id=10).discount == 0.0
    assert calculate_price(product, RETAILER, cost_model, variant_id=10).discount == 100.0


def test_offer_scoped_to_other_brand_is_ignored():
    product = product_with_variant([gold_link(weight=5.0)], making_charge_amount=500, brand_id=1)
    cost_model = CostModel(rates(), [offer(1, value=10, brand_id=2)])

    assert calculate_price(product, RETAILER, cost_model, variant_id=10).discount == 0.0


def test_min_cart_total_is_checked_against_line_subtotal():
    product = product_with_variant([gold_link(weight=5.0)], making_charge_amount=500)
    cost_model = CostModel(rates(), [offer(1, value=10, min_cart_total=2000)])

    assert calculate_price(product, RETAILER, cost_model, variant_id=10, quantity=2).discount == 0.0
    assert calculate_price(product, RETAILER, cost_model, variant_id=10, quantity=3).discount == 50.0


def test_customer_types_match_ignores_case():
    product = product_with_variant([gold_link(weight=5.0)], making_charge_amount=500)
    cost_model = CostModel(rates(), [offer(1, discount_type="fixed", value=100, customer_types=["Retailer"])])

    breakdown = calculate_price(product, RETAILER, cost_model, variant_id=10)

    assert breakdown.discount == 100.0
    assert breakdown.discount_details.offer_id == 1
