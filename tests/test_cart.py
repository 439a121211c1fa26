import json
import threading

from cart import Cart, CartState, JsonFileStorage, MemoryStorage, ViewedHistory, reduce_cart, CART_KEY

CHAIR = {"id": "p1", "name": "Teak Chair", "price": 10000}
SOFA = {"id": "p2", "name": "Carved Sofa", "price": 250000}


def test_adding_same_product_merges_quantities():
    state = reduce_cart(CartState(), {"type": "add", "product": CHAIR, "quantity": 2})
    state = reduce_cart(state, {"type": "add", "product": CHAIR, "quantity": 3})
    assert len(state.items) == 1
    assert state.items[0].quantity == 5


def test_update_quantity_to_zero_removes_line():
    cart = Cart()
    cart.add_item(CHAIR, 2)
    cart.add_item(SOFA, 1)
    cart.update_quantity("p1", 0)
    assert cart.product_ids() == ["p2"]


def test_remove_and_clear():
    cart = Cart()
    cart.add_item(CHAIR, 1)
    cart.add_item(SOFA, 1)
    cart.remove_item("p2")
    assert cart.product_ids() == ["p1"]
    cart.clear()
    assert cart.items == []


def test_add_after_clear_is_not_the_same_as_clear_after_add():
    cart = Cart()
    cart.add_item(CHAIR, 1)
    cart.clear()
    cart.add_item(SOFA, 1)
    assert cart.product_ids() == ["p2"]


def test_total_and_checkout_lines():
    cart = Cart()
    cart.add_item(CHAIR, 2)
    cart.add_item(SOFA, 1)
    assert cart.total_price == 270000
    assert [(l.product_id, l.quantity) for l in cart.checkout_lines()] == [("p1", 2), ("p2", 1)]


def test_every_transition_is_persisted_and_reloaded():
    storage = MemoryStorage()
    cart = Cart(storage)
    cart.add_item(CHAIR, 2)
    stored = json.loads(storage.get(CART_KEY))
    assert stored["items"][0]["quantity"] == 2

    reloaded = Cart(storage)
    assert reloaded.product_ids() == ["p1"]
    assert reloaded.items[0].quantity == 2


def test_corrupt_storage_starts_empty():
    cart = Cart(MemoryStorage({CART_KEY: "{not json"}))
    assert cart.items == []


def test_file_storage_survives_restart(tmp_path):
    path = tmp_path / "storage.json"
    Cart(JsonFileStorage(path)).add_item(SOFA, 1)
    assert Cart(JsonFileStorage(path)).product_ids() == ["p2"]


def test_concurrent_adds_are_serialized():
    cart = Cart()

    def add_many():
        for _ in range(50):
            cart.add_item(CHAIR, 1)

    threads = [threading.Thread(target=add_many) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert cart.items[0].quantity == 200


def test_viewed_history_keeps_five_most_recent():
    history = ViewedHistory()
    for pid in ["a", "b", "c", "d", "e", "f"]:
        history.record(pid)
    assert history.ids() == ["f", "e", "d", "c", "b"]
    history.record("d")
    assert history.ids() == ["f", "e", "d", "c", "b"]
