from decimal import Decimal

from storefront.events import EventType
from storefront.schemas.cart import CartProduct
from storefront.schemas.catalog import ProductSummary
from storefront.services.cart import CartStore
from storefront.services.local_store import KeyValueStore


def _product(product_id: str, price: str, name: str | None = None) -> CartProduct:
    return CartProduct(product_id=product_id, name=name or product_id.upper(), unit_price=Decimal(price))


def test_add_same_product_twice_merges_into_one_line(local_store) -> None:
    cart = CartStore(local_store)
    cart.add_item(_product("a", "100"))
    cart.add_item(_product("a", "100"))

    assert len(cart.items) == 1
    assert cart.items[0].quantity == 2


def test_add_item_floors_quantity_at_one(local_store) -> None:
    cart = CartStore(local_store)
    cart.add_item(_product("a", "100"), quantity=0)
    cart.add_item(_product("b", "10"), quantity=-3)

    assert [item.quantity for item in cart.items] == [1, 1]


def test_insertion_order_is_display_order(local_store) -> None:
    cart = CartStore(local_store)
    cart.add_item(_product("b", "50"))
    cart.add_item(_product("a", "100"))
    cart.add_item(_product("b", "50"))

    assert [item.product_id for item in cart.items] == ["b", "a"]


def test_totals_follow_every_mutation(local_store) -> None:
    cart = CartStore(local_store)
    cart.add_item(_product("a", "100"), quantity=2)
    cart.add_item(_product("b", "49.50"))
    cart.add_item(_product("c", "0"), quantity=4)
    cart.update_quantity("b", 3)
    cart.remove_item("c")
    cart.remove_item("missing")

    expected = sum((item.unit_price * item.quantity for item in cart.items), Decimal("0"))
    assert cart.total_price() == expected == Decimal("348.50")
    assert cart.total_items() == 5


def test_update_quantity_to_zero_or_negative_removes_line(local_store) -> None:
    cart = CartStore(local_store)
    cart.add_item(_product("a", "100"))
    cart.add_item(_product("b", "50"))

    cart.update_quantity("a", 0)
    cart.update_quantity("b", -5)

    assert cart.items == []
    assert cart.total_price() == Decimal("0")


def test_update_quantity_for_absent_product_is_noop(local_store) -> None:
    cart = CartStore(local_store)
    cart.add_item(_product("a", "100"))
    cart.update_quantity("zzz", 4)

    assert [(item.product_id, item.quantity) for item in cart.items] == [("a", 1)]


def test_cart_survives_reload(local_store) -> None:
    cart = CartStore(local_store)
    cart.add_item(_product("A", "100"), quantity=2)
    cart.add_item(_product("B", "50"))

    reloaded = CartStore(local_store)
    reloaded.hydrate()

    assert {item.product_id: item.quantity for item in reloaded.items} == {"A": 2, "B": 1}
    assert reloaded.total_items() == 3
    assert reloaded.total_price() == Decimal("250")


def test_clear_empties_persisted_cart(local_store) -> None:
    cart = CartStore(local_store)
    cart.add_item(_product("a", "100"))
    cart.clear()

    reloaded = CartStore(local_store)
    reloaded.hydrate()
    assert reloaded.is_empty()


def test_add_item_accepts_product_summary_snapshot(local_store) -> None:
    product = ProductSummary.model_validate(
        {
            "id": 7,
            "name": "Brass Ganesh Idol",
            "price": "1299.00",
            "image_urls": ["https://cdn.example.com/ganesh.jpg", ""],
        }
    )
    cart = CartStore(local_store)
    line = cart.add_item(product)

    assert line.product_id == "7"
    assert line.slug == "brass-ganesh-idol"
    assert line.image_url == "https://cdn.example.com/ganesh.jpg"
    assert line.unit_price == Decimal("1299.00")


def test_hydrate_merges_duplicate_rows_and_ignores_garbage(local_store) -> None:
    local_store.set(
        "cart-storage",
        {
            "version": 1,
            "items": [
                {"product_id": "a", "name": "A", "unit_price": "10", "quantity": 1},
                {"product_id": "a", "name": "A", "unit_price": "10", "quantity": 2},
            ],
        },
    )
    cart = CartStore(local_store)
    cart.hydrate()
    assert [(item.product_id, item.quantity) for item in cart.items] == [("a", 3)]

    local_store.set("cart-storage", {"items": "not-a-list"})
    cart.hydrate()
    assert cart.items == []


class BrokenStore(KeyValueStore):
    def set(self, key, value):
        raise OSError("disk full")


def test_persistence_failure_is_logged_not_raised(database, caplog) -> None:
    cart = CartStore(BrokenStore(database))
    cart.add_item(_product("a", "100"))

    assert cart.total_items() == 1
    assert any("Failed to persist cart" in record.getMessage() for record in caplog.records)


def test_mutations_emit_notices(local_store, emitter) -> None:
    cart = CartStore(local_store, emitter=emitter)
    cart.add_item(_product("a", "100"))
    cart.remove_item("a")
    cart.clear()

    kinds = [notice.type for notice in emitter.get_events()]
    assert kinds == [EventType.CART_ITEM_ADDED, EventType.CART_ITEM_REMOVED, EventType.CART_CLEARED]


def test_delivery_charge_waived_from_threshold(local_store) -> None:
    cart = CartStore(local_store)
    assert cart.delivery_charge() == Decimal("0")

    cart.add_item(_product("a", "450"))
    assert cart.delivery_charge() == Decimal("49")
    assert cart.amount_to_free_delivery() == Decimal("49")
    assert cart.grand_total() == Decimal("499")

    cart.add_item(_product("b", "49"))
    assert cart.total_price() == Decimal("499")
    assert cart.delivery_charge() == Decimal("0")
    assert cart.amount_to_free_delivery() == Decimal("0")
    assert cart.grand_total() == Decimal("499")
