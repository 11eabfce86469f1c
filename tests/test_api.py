import json
from datetime import datetime, timedelta

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from table_order.core.config import get_settings

TEA_FORM = {"id": "m1", "name": "Tea", "price": "300", "category": "Drinks"}
ORDER = {
    "tableNumber": 5,
    "items": [{"menuItemId": "m1", "name": "Tea", "price": 500, "quantity": 2}],
}


def place(client, table=5, **overrides):
    body = {**ORDER, "tableNumber": table, **overrides}
    response = client.post("/api/orders", json=body)
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# ROOT & HEALTH
# =============================================================================

def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["menu"] == "/api/menu"


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "operational"
    assert data["database"] == "healthy"
    assert data["storage_backend"] == "sql"


# =============================================================================
# MENU
# =============================================================================

def test_empty_menu(client):
    response = client.get("/api/menu")
    assert response.status_code == 200
    assert response.json() == {"categories": []}


def test_create_menu_item(client):
    response = client.post("/api/menu", data=TEA_FORM)
    assert response.status_code == 201
    assert response.json() == {"message": "Menu item added", "id": "m1"}

    categories = client.get("/api/menu").json()["categories"]
    assert categories == [{
        "name": "Drinks",
        "items": [{
            "id": "m1",
            "name": "Tea",
            "description": "",
            "price": 300,
            "image": "",
            "category": "Drinks",
            "options": [],
            "isRecommended": False,
        }],
    }]


def test_create_menu_item_with_options_and_flag(client):
    form = {
        **TEA_FORM,
        "options": json.dumps([{"name": "Large", "price": 50}]),
        "isRecommended": "1",
    }
    assert client.post("/api/menu", data=form).status_code == 201

    item = client.get("/api/menu").json()["categories"][0]["items"][0]
    assert item["options"] == [{"name": "Large", "price": 50}]
    assert item["isRecommended"] is True


def test_items_grouped_by_category(client):
    client.post("/api/menu", data=TEA_FORM)
    client.post("/api/menu", data={**TEA_FORM, "id": "m2", "name": "Ramen", "category": "Mains"})
    client.post("/api/menu", data={**TEA_FORM, "id": "m3", "name": "Beer"})

    categories = client.get("/api/menu").json()["categories"]
    grouped = {c["name"]: {i["id"] for i in c["items"]} for c in categories}
    assert grouped == {"Drinks": {"m1", "m3"}, "Mains": {"m2"}}


def test_duplicate_menu_item(client):
    client.post("/api/menu", data=TEA_FORM)
    response = client.post("/api/menu", data=TEA_FORM)

    assert response.status_code == 409
    assert response.json()["error"] == "DuplicateId"
    assert response.json()["success"] is False


def test_menu_item_missing_name(client):
    form = {k: v for k, v in TEA_FORM.items() if k != "name"}
    response = client.post("/api/menu", data=form)

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"
    assert client.get("/api/menu").json() == {"categories": []}


def test_menu_item_bad_price(client):
    response = client.post("/api/menu", data={**TEA_FORM, "price": "cheap"})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"


def test_menu_item_bad_options_json(client):
    response = client.post("/api/menu", data={**TEA_FORM, "options": "[{"})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"


def test_update_menu_item_is_partial(client):
    client.post("/api/menu", data={**TEA_FORM, "description": "Hot"})
    response = client.put("/api/menu/m1", data={"price": "350"})

    assert response.status_code == 200
    assert response.json() == {"message": "Menu item updated", "id": "m1"}
    item = client.get("/api/menu").json()["categories"][0]["items"][0]
    assert item["price"] == 350
    assert item["name"] == "Tea"
    assert item["description"] == "Hot"


def test_update_unknown_menu_item(client):
    response = client.put("/api/menu/ghost", data={"price": "1"})
    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


def test_delete_menu_item(client):
    client.post("/api/menu", data=TEA_FORM)
    response = client.delete("/api/menu/m1")

    assert response.status_code == 200
    assert response.json() == {"message": "Menu item deleted", "id": "m1"}
    assert client.get("/api/menu").json() == {"categories": []}


def test_delete_unknown_menu_item(client):
    client.post("/api/menu", data=TEA_FORM)
    response = client.delete("/api/menu/ghost")

    assert response.status_code == 404
    assert len(client.get("/api/menu").json()["categories"][0]["items"]) == 1


def test_menu_image_upload(client, png_bytes):
    response = client.post(
        "/api/menu",
        data=TEA_FORM,
        files={"imageFile": ("tea.png", png_bytes, "image/png")},
    )
    assert response.status_code == 201

    item = client.get("/api/menu").json()["categories"][0]["items"][0]
    assert item["image"] == "menu_m1.jpeg"
    for directory in get_settings().asset_paths:
        assert (directory / "menu_m1.jpeg").exists()


def test_menu_image_replaced_on_update(client, png_bytes):
    client.post("/api/menu", data=TEA_FORM)
    response = client.put(
        "/api/menu/m1",
        data={"name": "Green Tea"},
        files={"imageFile": ("tea.png", png_bytes, "image/png")},
    )
    assert response.status_code == 200

    item = client.get("/api/menu").json()["categories"][0]["items"][0]
    assert item["name"] == "Green Tea"
    assert item["image"] == "menu_m1.jpeg"


def test_menu_seeded_on_startup(sql_app, monkeypatch, tmp_path):
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps({
        "categories": [{"name": "Drinks", "items": [{"id": "tea", "name": "Tea", "price": 300}]}]
    }), encoding="utf-8")
    monkeypatch.setattr(get_settings(), "menu_seed_file", str(seed))

    with TestClient(sql_app) as client:
        categories = client.get("/api/menu").json()["categories"]

    assert categories[0]["name"] == "Drinks"
    assert categories[0]["items"][0]["id"] == "tea"


# =============================================================================
# ORDERS
# =============================================================================

def test_create_order(client):
    response = client.post("/api/orders", json=ORDER)

    assert response.status_code == 201
    data = response.json()
    assert data["tableNumber"] == 5
    assert data["totalPrice"] == 1000
    assert data["status"] == "RECEIVED"
    assert data["items"][0]["menuItemId"] == "m1"
    assert data["items"][0]["selectedOptions"] == []
    assert "timestamp" in data


def test_total_computed_server_side(client):
    data = place(client, totalPrice=1)
    assert data["totalPrice"] == 1000


def test_empty_order_rejected(client):
    response = client.post("/api/orders", json={"tableNumber": 5, "items": []})

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"
    assert client.get("/api/orders", params={"tableNumber": 5}).json() == []


def test_order_without_table_rejected(client):
    response = client.post("/api/orders", json={"items": ORDER["items"]})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"


def test_orders_for_table(client):
    first = place(client, 5)
    second = place(client, 5)
    place(client, 6)

    orders = client.get("/api/orders", params={"tableNumber": 5}).json()
    assert [o["id"] for o in orders] == [second["id"], first["id"]]


def test_orders_for_table_needs_table_number(client):
    response = client.get("/api/orders")
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"


def test_settled_orders_hidden_from_table(client):
    order = place(client, 5)
    response = client.put(f"/api/orders/{order['id']}/status", json={"status": "SETTLED"})

    assert response.status_code == 200
    assert response.json() == {"message": "Updated", "id": order["id"], "status": "SETTLED"}
    assert client.get("/api/orders", params={"tableNumber": 5}).json() == []


def test_invalid_status(client):
    order = place(client, 5)
    response = client.put(f"/api/orders/{order['id']}/status", json={"status": "FLYING"})

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidStatus"
    assert client.get("/api/kitchen/orders").json()[0]["status"] == "RECEIVED"


def test_status_of_unknown_order(client):
    response = client.put("/api/orders/999/status", json={"status": "READY"})
    assert response.status_code == 404
    assert response.json()["error"] == "NotFound"


def test_kitchen_queue(client):
    first = place(client, 1)
    second = place(client, 2)
    third = place(client, 3)
    client.put(f"/api/orders/{second['id']}/status", json={"status": "KITCHEN_DONE"})
    client.put(f"/api/orders/{third['id']}/status", json={"status": "READY"})

    queue = client.get("/api/kitchen/orders").json()
    assert [o["id"] for o in queue] == [first["id"], third["id"]]


# =============================================================================
# STAFF CALLS & TABLES
# =============================================================================

def test_staff_call(client):
    response = client.post("/api/call", json={"tableNumber": 4})
    assert response.status_code == 201
    call_id = response.json()["id"]

    queue = client.get("/api/kitchen/orders").json()
    assert queue[0]["id"] == call_id
    assert queue[0]["status"] == "CALLED"
    assert queue[0]["totalPrice"] == 0


def test_staff_call_needs_table(client):
    response = client.post("/api/call", json={})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidInput"


def test_active_tables(client):
    assert client.get("/api/tables").json() == []

    place(client, 9)
    order = place(client, 3)
    client.post("/api/call", json={"tableNumber": 5})
    assert client.get("/api/tables").json() == [3, 5, 9]

    client.put(f"/api/orders/{order['id']}/status", json={"status": "SETTLED"})
    assert client.get("/api/tables").json() == [5, 9]


# =============================================================================
# VALIDATION & FAILURES
# =============================================================================

def test_non_numeric_line_values_rejected(client):
    for line in (
        {"name": "Tea", "price": True, "quantity": 3},
        {"name": "Tea", "price": "500", "quantity": 2},
        {"name": "Tea", "price": 500, "quantity": "2"},
    ):
        response = client.post("/api/orders", json={"tableNumber": 5, "items": [line]})
        assert response.status_code == 400, line
        assert response.json()["error"] == "InvalidInput"

    assert client.get("/api/orders", params={"tableNumber": 5}).json() == []


def test_non_string_status_is_invalid_status(client):
    order = place(client, 5)
    response = client.put(f"/api/orders/{order['id']}/status", json={"status": 5})

    assert response.status_code == 400
    assert response.json()["error"] == "InvalidStatus"
    assert client.get("/api/kitchen/orders").json()[0]["status"] == "RECEIVED"


def test_missing_status_is_invalid_status(client):
    order = place(client, 5)

    no_body = client.put(f"/api/orders/{order['id']}/status")
    assert no_body.status_code == 400
    assert no_body.json()["error"] == "InvalidStatus"

    empty_body = client.put(f"/api/orders/{order['id']}/status", json={})
    assert empty_body.status_code == 400
    assert empty_body.json()["error"] == "InvalidStatus"


def test_timestamps_are_utc(client):
    created = place(client, 5)
    listed = client.get("/api/orders", params={"tableNumber": 5}).json()[0]

    for value in (created["timestamp"], listed["timestamp"]):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        assert parsed.utcoffset() == timedelta(0)


def test_database_failure_is_store_error(client, monkeypatch):
    async def failing_commit(self):
        raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

    with monkeypatch.context() as patch:
        patch.setattr(AsyncSession, "commit", failing_commit)
        response = client.post("/api/orders", json=ORDER)

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "StoreError", "detail": "Database error"}
    assert "disk" not in response.text
    assert client.get("/api/orders", params={"tableNumber": 5}).json() == []
