from database import create_document

from .conftest import signup


def add_order(db, user_id):
    return create_document(db, "orders", {"user_id": user_id, "customer_name": "x", "items": [], "total": 100, "status": "Pending"})


def test_orders_feed_loads_then_streams_then_clears_on_logout(client, db, customer):
    other = signup(client, "baraka@example.com")
    add_order(db, customer["uid"])
    add_order(db, other["uid"])

    with client.websocket_connect(f"/ws/orders?token={customer['token']}") as ws:
        assert ws.receive_json() == {"data": [], "is_loading": True}
        first = ws.receive_json()
        assert first["is_loading"] is False
        assert [o["user_id"] for o in first["data"]] == [customer["uid"]]

        add_order(db, customer["uid"])
        second = ws.receive_json()
        assert len(second["data"]) == 2

        ws.send_json({"token": None})
        assert ws.receive_json() == {"data": [], "is_loading": True}
        assert ws.receive_json() == {"data": [], "is_loading": False}


def test_orders_feed_for_admin_sees_everything(client, db, customer, admin):
    add_order(db, customer["uid"])
    add_order(db, admin["uid"])

    with client.websocket_connect(f"/ws/orders?token={admin['token']}") as ws:
        assert ws.receive_json()["is_loading"] is True
        assert len(ws.receive_json()["data"]) == 2


def test_orders_feed_without_token_is_empty(client):
    with client.websocket_connect("/ws/orders") as ws:
        assert ws.receive_json() == {"data": [], "is_loading": True}
        assert ws.receive_json() == {"data": [], "is_loading": False}


def test_products_feed_pushes_catalog_changes(client, make_product):
    make_product(name="Teak Chair")
    with client.websocket_connect("/ws/products") as ws:
        assert [p["name"] for p in ws.receive_json()["data"]] == ["Teak Chair"]
        make_product(name="Office Desk", category="office")
        assert len(ws.receive_json()["data"]) == 2


def test_orders_feed_ignores_malformed_frames(client, db, customer):
    add_order(db, customer["uid"])
    with client.websocket_connect(f"/ws/orders?token={customer['token']}") as ws:
        assert ws.receive_json()["is_loading"] is True
        assert len(ws.receive_json()["data"]) == 1

        ws.send_text("not json")
        ws.send_json(5)
        ws.send_json({"token": None})
        assert ws.receive_json() == {"data": [], "is_loading": True}
        assert ws.receive_json() == {"data": [], "is_loading": False}
