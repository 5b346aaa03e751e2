# tests/test_cart.py

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.exceptions import ConflictError, InventoryExceededError, NotFoundError, ValidationError
from app.crud import cart as crud_cart
from app.db.session import Base
from app.models.cart import Cart, CartItem
from app.models.catalog import Product
from app.models.user import Customer
from app.schemas.cart import CartLine
from app.schemas.pricing import PriceBreakdown
from app.services import cart as cart_service


def line(id, quantity, line_total, product_id=1, variant_id=10, configuration=None) -> CartLine:
    unit = round(line_total / quantity, 2)
    return CartLine(
        id=id, product_id=product_id, product_name="Ring", variant_id=variant_id, quantity=quantity,
        configuration=configuration, unit_total=unit, line_total=line_total, line_subtotal=line_total,
        line_discount=0.0, price_breakdown=PriceBreakdown(total=unit, subtotal=unit),
    )


@pytest.fixture
def ring(make_product, add_rate):
    add_rate("gold", "18K", 60)
    return make_product("Cart Ring", making_charge_amount=500, variants=[
        {"label": "18K Yellow", "inventory": 4, "metals": [("gold", "18k", "yellow", 5)]},
        {"label": "Untracked", "metals": [("gold", "18k", "rose", 5)]},
        {"label": "Sold Out", "inventory": 0, "metals": [("gold", "18k", "yellow", 2)]},
    ])


def cart_lines(db, customer):
    cart = crud_cart.get_cart(db, customer.id)
    return crud_cart.get_cart_items(db, cart.id)


# --- Объединение (чистая функция) ---

def test_reconcile_merges_identical_lines():
    groups = cart_service.reconcile([
        line(1, 2, 1600.0),
        line(2, 3, 2400.0),
        line(3, 1, 800.0, configuration={"notes": "engrave"}),
    ])

    merged, engraved = groups
    assert merged.quantity == 5
    assert merged.line_total == 4000.0
    assert merged.unit_total == 800.0
    assert merged.line_ids == [1, 2]
    assert engraved.line_ids == [3]


def test_reconcile_unit_total_is_rounded_average():
    [group] = cart_service.reconcile([line(1, 1, 10.0), line(2, 2, 20.01)])

    assert group.quantity == 3
    assert group.unit_total == round(30.01 / 3, 2)


def test_configuration_key_ignores_key_order():
    first = line(1, 1, 5.0, configuration={"a": 1, "notes": "x"})
    second = line(2, 1, 5.0, configuration={"notes": "x", "a": 1})

    assert len(cart_service.reconcile([first, second])) == 1


def test_reconcile_groups_by_product_first():
    groups = cart_service.reconcile([
        line(1, 1, 5.0, product_id=1), line(2, 1, 7.0, product_id=2), line(3, 1, 5.0, product_id=1),
    ])

    assert [(g.product_id, g.line_ids) for g in groups] == [(1, [1, 3]), (2, [2])]


# --- Изменение корзины ---

def test_add_line_always_creates_a_new_row(db_session, customer, ring):
    variant_id = ring.variants[0].id

    cart_service.add_line(db_session, customer, ring.id, variant_id, 1)
    cart_service.add_line(db_session, customer, ring.id, variant_id, 1)

    assert len(cart_lines(db_session, customer)) == 2


def test_add_line_validates_product_and_variant(db_session, customer, ring, make_product):
    other = make_product("Other", variants=[{"label": "X"}])

    with pytest.raises(NotFoundError):
        cart_service.add_line(db_session, customer, 9999)
    with pytest.raises(NotFoundError):
        cart_service.add_line(db_session, customer, ring.id, other.variants[0].id)
    with pytest.raises(ValidationError):
        cart_service.add_line(db_session, customer, ring.id, quantity=0)


def test_duplicate_lines_display_merged_then_converge_on_edit(db_session, customer, ring):
    variant_id = ring.variants[0].id
    cart = cart_service.get_cart(db_session, customer)
    crud_cart.create_cart_item(db_session, cart.id, ring.id, 2, variant_id)
    crud_cart.create_cart_item(db_session, cart.id, ring.id, 3, variant_id)
    db_session.commit()

    summary = cart_service.summarize(db_session, customer)
    assert len(summary.items) == 2
    [group] = summary.groups
    assert group.quantity == 5
    assert group.unit_total == 800.0
    assert group.line_total == 4000.0

    first_id, second_id = group.line_ids
    cart_service.update_group_quantity(db_session, customer, group.line_ids, 1)

    remaining = cart_lines(db_session, customer)
    assert [(item.id, item.quantity) for item in remaining] == [(first_id, 1)]
    assert db_session.get(CartItem, second_id) is None


def test_increase_beyond_inventory_is_rejected(db_session, customer, ring):
    item = cart_service.add_line(db_session, customer, ring.id, ring.variants[0].id, 3)

    with pytest.raises(InventoryExceededError) as exc_info:
        cart_service.update_quantity(db_session, customer, item.id, 5)

    assert exc_info.value.messages == ["Only 4 items available. Maximum 4 items allowed."]
    db_session.refresh(item)
    assert item.quantity == 3


def test_decrease_is_allowed_even_above_inventory(db_session, customer, ring):
    cart = cart_service.get_cart(db_session, customer)
    item = crud_cart.create_cart_item(db_session, cart.id, ring.id, 9, ring.variants[0].id)
    db_session.commit()

    cart_service.update_quantity(db_session, customer, item.id, 6)

    db_session.refresh(item)
    assert item.quantity == 6


def test_zero_inventory_rejects_any_increase(db_session, customer, ring):
    sold_out = ring.variants[2]
    cart = cart_service.get_cart(db_session, customer)
    item = crud_cart.create_cart_item(db_session, cart.id, ring.id, 2, sold_out.id)
    db_session.commit()

    with pytest.raises(InventoryExceededError):
        cart_service.update_quantity(db_session, customer, item.id, 3)
    cart_service.update_quantity(db_session, customer, item.id, 1)


def test_untracked_inventory_has_no_limit(db_session, customer, ring):
    item = cart_service.add_line(db_session, customer, ring.id, ring.variants[1].id, 1)

    cart_service.update_quantity(db_session, customer, item.id, 500)

    assert item.quantity == 500


def test_group_edit_checks_inventory_against_group_sum(db_session, customer, ring):
    variant_id = ring.variants[0].id
    cart = cart_service.get_cart(db_session, customer)
    first = crud_cart.create_cart_item(db_session, cart.id, ring.id, 2, variant_id)
    second = crud_cart.create_cart_item(db_session, cart.id, ring.id, 2, variant_id)
    db_session.commit()

    with pytest.raises(InventoryExceededError):
        cart_service.update_group_quantity(db_session, customer, [first.id, second.id], 5)
    assert len(cart_lines(db_session, customer)) == 2

    # 4 -> 4: не увеличение, строки просто сводятся
    cart_service.update_group_quantity(db_session, customer, [first.id, second.id], 4)
    assert [(i.id, i.quantity) for i in cart_lines(db_session, customer)] == [(first.id, 4)]


def test_collapse_rejects_lines_that_differ(db_session, customer, ring):
    cart = cart_service.get_cart(db_session, customer)
    first = crud_cart.create_cart_item(db_session, cart.id, ring.id, 1, ring.variants[0].id)
    second = crud_cart.create_cart_item(db_session, cart.id, ring.id, 1, ring.variants[1].id)
    db_session.commit()

    with pytest.raises(ValidationError):
        cart_service.collapse_duplicates(db_session, customer, [first.id, second.id])


def test_collapse_defaults_to_summed_quantity(db_session, customer, ring):
    cart = cart_service.get_cart(db_session, customer)
    first = crud_cart.create_cart_item(db_session, cart.id, ring.id, 2, None)
    second = crud_cart.create_cart_item(db_session, cart.id, ring.id, 3, None)
    db_session.commit()

    line = cart_service.collapse_duplicates(db_session, customer, [first.id, second.id])

    assert line.id == first.id
    assert line.quantity == 5
    assert len(cart_lines(db_session, customer)) == 1


def test_notes_live_in_configuration(db_session, customer, ring):
    item = cart_service.add_line(db_session, customer, ring.id, ring.variants[0].id, 1, {"size": "7"})

    cart_service.update_notes(db_session, customer, item.id, "Please polish")
    assert item.configuration == {"size": "7", "notes": "Please polish"}

    cart_service.update_notes(db_session, customer, item.id, None)
    assert item.configuration == {"size": "7"}


def test_foreign_lines_are_not_found(db_session, customer, other_customer, ring):
    item = cart_service.add_line(db_session, other_customer, ring.id, ring.variants[0].id, 1)

    with pytest.raises(NotFoundError):
        cart_service.remove_line(db_session, customer, item.id)
    with pytest.raises(NotFoundError):
        cart_service.update_quantity(db_session, customer, item.id, 2)
    with pytest.raises(NotFoundError):
        cart_service.update_group_quantity(db_session, customer, [item.id], 1)


def test_summary_totals(db_session, customer, ring, mocker):
    mocker.patch("app.services.cart.settings.TAX_RATE_PERCENT", 3.0)
    cart_service.add_line(db_session, customer, ring.id, ring.variants[0].id, 2)
    cart_service.add_line(db_session, customer, ring.id, None, 1)

    summary = cart_service.summarize(db_session, customer)

    assert [i.line_total for i in summary.items] == [1600.0, 500.0]
    assert summary.currency == "INR"
    assert summary.subtotal == 2100.0
    assert summary.discount == 0.0
    assert summary.shipping == 0.0
    assert summary.tax == 63.0
    assert summary.total == 2163.0
    assert summary.items[0].inventory_quantity == 4
    stored = cart_lines(db_session, customer)[0].price_breakdown
    assert stored["total"] == 800.0


# --- Параллельная запись ---

@pytest.fixture
def file_sessions(tmp_path):
    """Две независимые сессии на общей файловой SQLite: у каждой своё соединение."""
    engine = create_engine(f"sqlite:///{tmp_path / 'cart.db'}")
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    first, second = SessionLocal(), SessionLocal()
    try:
        yield first, second
    finally:
        first.close()
        second.close()
        engine.dispose()


def test_concurrent_line_write_raises_conflict(file_sessions):
    first, second = file_sessions
    customer = Customer(email="race@example.com")
    product = Product(name="Race Ring")
    first.add_all([customer, product])
    first.flush()
    cart = Cart(customer_id=customer.id, currency="INR")
    first.add(cart)
    first.flush()
    item = CartItem(cart_id=cart.id, product_id=product.id, quantity=1)
    first.add(item)
    first.commit()

    stale = second.get(CartItem, item.id)
    item.quantity = 2
    cart_service.commit_cart(first)

    stale.quantity = 5
    with pytest.raises(ConflictError):
        cart_service.commit_cart(second)

    assert first.get(CartItem, item.id).quantity == 2
    assert first.get(CartItem, item.id).version == 2
