# tests/test_configuration.py

from app.crud import catalog as crud_catalog
from app.services.configuration import enumerate_configurations
from app.services.cost_model import load_cost_model
from app.services.pricing import CustomerContext

GUEST = CustomerContext.guest()


def test_labels_and_prices_per_variant(db_session, make_product, make_diamond, add_rate):
    add_rate("gold", "18K", 60)
    add_rate("gold", "22K", 70)
    diamond = make_diamond(price=1000)
    created = make_product("Halo Ring", making_charge_amount=500, variants=[
        {"label": "Classic", "metals": [("gold", "18k", "yellow", 5)]},
        {"label": "Premium", "is_default": True,
         "metals": [("gold", "22k", "rose", 4.5)], "diamonds": [(diamond, 3)]},
    ])

    product = crud_catalog.get_product(db_session, created.id)
    configurations = enumerate_configurations(product, GUEST, load_cost_model(db_session))

    # дефолтная вариация идёт первой
    premium, classic = configurations
    assert premium.label == "22K Rose Gold 4.50g | Round F VS1 (3)"
    assert premium.metal_label == "22K Rose Gold 4.50g"
    assert premium.diamond_label == "Round F VS1 (3)"
    assert premium.price_breakdown.metal == 315.0
    assert premium.price_breakdown.diamond == 3000.0
    assert premium.price_total == 3815.0

    assert classic.label == "18K Yellow Gold 5.00g"
    assert classic.diamond_label == ""
    assert classic.price_total == 800.0


def test_multiple_links_are_joined_and_single_stone_has_no_count(db_session, make_product, make_diamond, add_rate):
    add_rate("gold", "18K", 60)
    stone = make_diamond(price=200, name="Emerald Cut")
    created = make_product("Two Tone Band", variants=[
        {"metals": [("gold", "18k", "yellow", 2), ("gold", "18k", "rose", None)], "diamonds": [(stone, 1)]},
    ])

    product = crud_catalog.get_product(db_session, created.id)
    [configuration] = enumerate_configurations(product, GUEST, load_cost_model(db_session))

    assert configuration.metal_label == "18K Yellow Gold 2.00g + 18K Rose Gold"
    assert configuration.diamond_label == "Emerald Cut"
    assert len(configuration.metals) == 2
    assert configuration.metals[1].weight is None


def test_variant_without_links_falls_back_to_its_own_label(db_session, make_product):
    created = make_product("Plain Bangle", making_charge_amount=150, variants=[
        {"label": "Size 2.4"}, {},
    ])

    product = crud_catalog.get_product(db_session, created.id)
    configurations = enumerate_configurations(product, GUEST, load_cost_model(db_session))

    assert [c.label for c in configurations] == ["Size 2.4", f"Configuration {product.variants[1].id}"]
    assert all(c.price_total == 150.0 for c in configurations)


def test_variants_with_only_partial_links_are_skipped(db_session, make_product, add_rate):
    add_rate("gold", "18K", 60)
    created = make_product("Mixed Pendant", variants=[
        {"label": "Broken", "metals": [("gold", "18k", None, 3)]},
        {"label": "Good", "metals": [("gold", "18k", "yellow", 1)]},
    ])

    product = crud_catalog.get_product(db_session, created.id)
    configurations = enumerate_configurations(product, GUEST, load_cost_model(db_session))

    assert [c.label for c in configurations] == ["18K Yellow Gold 1.00g"]


def test_fallback_configuration_is_never_empty(db_session, make_product, add_rate):
    add_rate("gold", "18K", 60)
    created = make_product("Unfinished Earring", making_charge_amount=75, variants=[
        {"label": "Draft A", "sku": "UE-A", "metals": [("gold", None, "yellow", 3)]},
        {"label": "Draft B", "metals": [(None, "18k", "yellow", 3)]},
    ])

    product = crud_catalog.get_product(db_session, created.id)
    configurations = enumerate_configurations(product, GUEST, load_cost_model(db_session))

    assert len(configurations) == 1
    fallback = configurations[0]
    assert fallback.variant_id == product.variants[0].id
    assert fallback.label == "Draft A"
    assert fallback.metal_label == ""
    assert fallback.diamond_label == ""
    assert fallback.sku == "UE-A"
    assert fallback.price_breakdown.metal == 0.0
    assert fallback.price_total == 75.0


def test_product_without_variants_has_no_configurations(db_session, make_product):
    created = make_product("Gift Card", making_charge_amount=10)

    product = crud_catalog.get_product(db_session, created.id)

    assert enumerate_configurations(product, GUEST, load_cost_model(db_session)) == []
