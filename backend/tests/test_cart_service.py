"""
Tests for the Redis cart service
"""

from decimal import Decimal

import pytest

from app.core.exceptions import ItemNotFoundError, InvalidOperationError, StoreError
from app.services.cart_service import to_money
from factories import make_product

SESSION = "session-abc"


def assert_totals_consistent(cart):
    """Derived totals must always agree with the items."""
    subtotal = sum((to_money(i.subtotal) for i in cart.items.values()), Decimal("0.00"))
    tax = to_money(subtotal * Decimal("0.10"))
    shipping = Decimal("5.99") if Decimal("0") < subtotal < Decimal("50") else Decimal("0.00")

    assert to_money(cart.subtotal) == subtotal
    assert to_money(cart.tax) == tax
    assert to_money(cart.shipping) == shipping
    assert to_money(cart.total) == subtotal + tax + shipping
    assert cart.item_count == sum(i.quantity for i in cart.items.values())


class TestGetCart:

    async def test_unknown_session_returns_empty_cart(self, cart_service):
        """Never-seen session IDs read as an empty cart."""
        cart = await cart_service.get_cart("never-seen")

        assert cart.items == {}
        assert cart.item_count == 0
        assert cart.subtotal == cart.tax == cart.shipping == cart.total == 0

    async def test_read_does_not_write(self, cart_service, fake_redis):
        """Reading an absent cart leaves Redis untouched."""
        await cart_service.get_cart("never-seen")

        assert fake_redis.write_count == 0
        assert fake_redis.keys_snapshot == []

    async def test_expired_cart_reads_as_empty(self, cart_service, fake_redis):
        await cart_service.add_item(SESSION, "SKU-A", 2, make_product(sku="SKU-A"))
        fake_redis.expire_all()

        cart = await cart_service.get_cart(SESSION)

        assert cart.items == {}
        assert cart.total == 0

    async def test_round_trip_through_redis(self, cart_service):
        added = await cart_service.add_item(SESSION, "SKU-A", 2, make_product(sku="SKU-A", price=12.5))

        cart = await cart_service.get_cart(SESSION)

        assert cart.items["SKU-A"].quantity == 2
        assert cart.items["SKU-A"].price == 12.5
        assert cart.total == added.total

    async def test_session_ids_with_glob_characters_are_isolated(self, cart_service):
        await cart_service.add_item("a*", "SKU-A", 1, make_product(sku="SKU-A"))
        await cart_service.add_item("ab", "SKU-B", 1, make_product(sku="SKU-B"))

        cart = await cart_service.get_cart("a*")

        assert list(cart.items) == ["SKU-A"]

    @pytest.mark.parametrize("session_id", ["a:item:b", "a:b", ""])
    async def test_session_ids_with_key_separator_are_rejected(self, cart_service, fake_redis, session_id):
        """A session id cannot reach into another session's item keys."""
        await cart_service.add_item("a", "SKU-A", 1, make_product(sku="SKU-A"))

        with pytest.raises(InvalidOperationError) as exc_info:
            await cart_service.add_item(session_id, "SKU-B", 1, make_product(sku="SKU-B"))
        with pytest.raises(InvalidOperationError):
            await cart_service.clear(session_id)

        assert exc_info.value.code == "invalid_session_id"
        assert sorted(fake_redis.keys_snapshot) == ["cart:a", "cart:a:item:SKU-A"]
        assert list((await cart_service.get_cart("a")).items) == ["SKU-A"]

    async def test_outage_raises_store_error(self, cart_service, fake_redis):
        fake_redis.fail = True

        with pytest.raises(StoreError):
            await cart_service.get_cart(SESSION)


class TestAddItem:

    async def test_add_same_sku_twice_accumulates(self, cart_service):
        """A×2 then A×3 at 10.00 gives 5 units and a 55.00 total."""
        product = make_product(sku="SKU-A", price=10.0)
        await cart_service.add_item(SESSION, "SKU-A", 2, product)
        cart = await cart_service.add_item(SESSION, "SKU-A", 3, product)

        item = cart.items["SKU-A"]
        assert item.quantity == 5
        assert item.subtotal == 50.0
        assert cart.subtotal == 50.0
        assert cart.shipping == 0
        assert cart.tax == 5.0
        assert cart.total == 55.0

    async def test_existing_item_keeps_snapshot_price(self, cart_service):
        """Price changes after the first add are not applied to the cart line."""
        await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A", price=10.0))
        cart = await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A", price=99.0))

        assert cart.items["SKU-A"].price == 10.0
        assert cart.items["SKU-A"].subtotal == 20.0

    async def test_shipping_charged_below_threshold(self, cart_service):
        cart = await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A", price=49.99))

        assert cart.shipping == 5.99
        assert cart.tax == 5.0
        assert cart.total == 60.98

    async def test_shipping_free_at_exactly_threshold(self, cart_service):
        cart = await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A", price=50.0))

        assert cart.shipping == 0
        assert cart.total == 55.0

    async def test_tax_rounds_half_up(self, cart_service):
        cart = await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A", price=0.05))

        assert cart.tax == 0.01

    async def test_quantity_below_one_is_rejected(self, cart_service, sample_product):
        with pytest.raises(InvalidOperationError):
            await cart_service.add_item(SESSION, sample_product.sku, 0, sample_product)

    async def test_mutation_sets_ttl_on_every_key(self, cart_service, fake_redis):
        await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A"))
        await cart_service.add_item(SESSION, "SKU-B", 1, make_product(sku="SKU-B"))

        for key in fake_redis.keys_snapshot:
            assert 0 < await fake_redis.ttl(key) <= 3600

    async def test_mutation_is_a_single_transaction(self, cart_service, fake_redis):
        await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A"))

        assert fake_redis.pipelines_executed == 1


class TestUpdateAndRemove:

    async def test_update_quantity_recomputes_totals(self, cart_service):
        await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A", price=10.0))

        cart = await cart_service.update_item_quantity(SESSION, "SKU-A", 4)

        assert cart.items["SKU-A"].subtotal == 40.0
        assert cart.shipping == 5.99
        assert_totals_consistent(cart)

    async def test_update_to_zero_removes_item(self, cart_service, fake_redis):
        await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A"))

        cart = await cart_service.update_item_quantity(SESSION, "SKU-A", 0)

        assert "SKU-A" not in cart.items
        assert "cart:session-abc:item:SKU-A" not in fake_redis.keys_snapshot
        assert cart.total == 0

    async def test_update_unknown_sku_raises(self, cart_service):
        with pytest.raises(ItemNotFoundError) as exc_info:
            await cart_service.update_item_quantity(SESSION, "SKU-X", 2)

        assert exc_info.value.sku == "SKU-X"
        assert exc_info.value.status_code == 404

    async def test_update_negative_quantity_is_rejected(self, cart_service):
        await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A"))

        with pytest.raises(InvalidOperationError):
            await cart_service.update_item_quantity(SESSION, "SKU-A", -1)

    async def test_remove_twice_is_a_no_op(self, cart_service):
        await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A"))
        await cart_service.add_item(SESSION, "SKU-B", 2, make_product(sku="SKU-B"))

        first = await cart_service.remove_item(SESSION, "SKU-A")
        second = await cart_service.remove_item(SESSION, "SKU-A")

        assert list(second.items) == ["SKU-B"]
        assert second.total == first.total

    async def test_clear_deletes_every_session_key(self, cart_service, fake_redis):
        await cart_service.add_item(SESSION, "SKU-A", 1, make_product(sku="SKU-A"))
        await cart_service.add_item(SESSION, "SKU-B", 1, make_product(sku="SKU-B"))
        await cart_service.add_item("other", "SKU-A", 1, make_product(sku="SKU-A"))

        await cart_service.clear(SESSION)

        assert all(not key.startswith("cart:session-abc") for key in fake_redis.keys_snapshot)
        assert (await cart_service.get_cart("other")).item_count == 1

    async def test_clear_is_idempotent(self, cart_service):
        await cart_service.clear("never-seen")
        await cart_service.clear("never-seen")


async def test_totals_stay_consistent_across_mutations(cart_service):
    """Every add/update/remove leaves the totals consistent with the items."""
    steps = [
        ("add", "SKU-A", 2, 10.0),
        ("add", "SKU-B", 1, 19.99),
        ("update", "SKU-A", 1, None),
        ("add", "SKU-C", 3, 4.35),
        ("remove", "SKU-B", None, None),
        ("update", "SKU-C", 0, None),
        ("remove", "SKU-B", None, None),
    ]
    for action, sku, quantity, price in steps:
        if action == "add":
            cart = await cart_service.add_item(SESSION, sku, quantity, make_product(sku=sku, price=price))
        elif action == "update":
            cart = await cart_service.update_item_quantity(SESSION, sku, quantity)
        else:
            cart = await cart_service.remove_item(SESSION, sku)
        assert_totals_consistent(cart)
        assert_totals_consistent(await cart_service.get_cart(SESSION))
