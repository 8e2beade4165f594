"""
Delivery tests.

Verifies:
- Creating a delivery adds to stock and writes a "delivery" log, atomically
- Quantity edits apply the delta; item edits move the whole quantity
- Deleting reverses the stock effect
- Reversals that would drive stock negative are refused with 409
- Invoice uploads (multipart) are validated and stored
"""

import io
import os

from atelier.extensions import db
from atelier.models import Delivery, Stock, StockLog


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


def _create(client, headers, supplier, item_name="Gold 22K", quantity=10):
    resp = client.post(
        "/api/deliveries",
        json={"supplier_id": supplier.id, "item_name": item_name, "quantity": quantity},
        headers=headers,
    )
    assert resp.status_code == 201, resp.json
    return resp.json


def _quantity(item_name):
    stock = db.session.query(Stock).filter_by(item_name=item_name).first()
    return stock.quantity if stock else None


def _log_types(item_name):
    logs = db.session.query(StockLog).filter_by(item_name=item_name).order_by(StockLog.id.asc()).all()
    return [(log.type, log.change_amount) for log in logs]


class TestCreateDelivery:

    def test_create_adds_stock(self, client, admin_headers, supplier):
        body = _create(client, admin_headers, supplier, quantity=10)
        assert body["delivery"]["quantity"] == 10
        assert body["delivery"]["supplier"]["name"] == "Lanka Gems"
        assert body["stock"]["quantity"] == 10

        _create(client, admin_headers, supplier, quantity=5)
        assert _quantity("Gold 22K") == 15
        assert _log_types("Gold 22K") == [("delivery", 10), ("delivery", 5)]

    def test_log_links_delivery(self, client, admin_headers, supplier):
        body = _create(client, admin_headers, supplier)
        log = db.session.query(StockLog).one()
        assert log.delivery_id == body["delivery"]["id"]
        assert log.quantity_before == 0
        assert log.quantity_after == 10

    def test_missing_fields(self, client, admin_headers, supplier):
        resp = client.post("/api/deliveries", json={"supplier_id": supplier.id, "item_name": "Gold"},
                           headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_supplier(self, client, admin_headers, db_session):
        resp = client.post("/api/deliveries", json={"supplier_id": 999, "item_name": "Gold", "quantity": 1},
                           headers=admin_headers)
        assert resp.status_code == 400
        assert db.session.query(Delivery).count() == 0
        assert db.session.query(Stock).count() == 0

    def test_non_positive_quantity(self, client, admin_headers, supplier):
        for quantity in (-1, "abc", 2.5):
            resp = client.post(
                "/api/deliveries",
                json={"supplier_id": supplier.id, "item_name": "Gold", "quantity": quantity},
                headers=admin_headers,
            )
            assert resp.status_code == 400, quantity
        assert db.session.query(Stock).count() == 0

    def test_multipart_with_invoice(self, app, client, admin_headers, supplier):
        resp = client.post(
            "/api/deliveries",
            data={
                "supplier_id": str(supplier.id),
                "item_name": "Silver bar",
                "quantity": "4",
                "delivery_date": "2024-03-01",
                "invoice": (io.BytesIO(PNG_BYTES), "invoice.png"),
            },
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 201, resp.json
        url = resp.json["delivery"]["invoice_image"]
        assert url.startswith("/uploads/invoices/")
        assert url.endswith(".png")
        assert resp.json["delivery"]["delivery_date"].startswith("2024-03-01")

        stored = os.path.join(app.config["UPLOAD_FOLDER"], url[len("/uploads/"):])
        assert os.path.exists(stored)

        served = client.get(url)
        assert served.status_code == 200
        assert served.data == PNG_BYTES

    def test_invoice_bad_extension(self, client, admin_headers, supplier):
        resp = client.post(
            "/api/deliveries",
            data={
                "supplier_id": str(supplier.id),
                "item_name": "Silver bar",
                "quantity": "4",
                "invoice": (io.BytesIO(b"%PDF-1.4"), "invoice.pdf"),
            },
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400
        assert db.session.query(Delivery).count() == 0


class TestUpdateDelivery:

    def test_quantity_change_applies_delta(self, client, admin_headers, supplier):
        delivery = _create(client, admin_headers, supplier, quantity=10)["delivery"]

        resp = client.put(f"/api/deliveries/{delivery['id']}", json={"quantity": 7}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["delivery"]["quantity"] == 7
        assert _quantity("Gold 22K") == 7
        assert _log_types("Gold 22K") == [("delivery", 10), ("delivery_edit", -3)]

    def test_item_change_moves_stock(self, client, admin_headers, supplier):
        delivery = _create(client, admin_headers, supplier, "Gold 22K", 10)["delivery"]

        resp = client.put(
            f"/api/deliveries/{delivery['id']}",
            json={"item_name": "Gold 24K", "quantity": 8},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert _quantity("Gold 22K") == 0
        assert _quantity("Gold 24K") == 8
        assert _log_types("Gold 22K")[-1] == ("delivery_edit", -10)
        assert _log_types("Gold 24K") == [("delivery_edit", 8)]
        assert {s["item_name"] for s in resp.json["stock"]} == {"Gold 22K", "Gold 24K"}

    def test_edit_without_stock_fields_moves_nothing(self, client, admin_headers, supplier):
        delivery = _create(client, admin_headers, supplier)["delivery"]
        resp = client.put(
            f"/api/deliveries/{delivery['id']}",
            json={"delivery_date": "2024-05-05T10:00:00Z"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["stock"] == []
        assert db.session.query(StockLog).count() == 1

    def test_reduce_below_consumed_is_refused(self, client, admin_headers, supplier):
        body = _create(client, admin_headers, supplier, quantity=10)
        stock_id = body["stock"]["id"]
        client.put(f"/api/stock/{stock_id}", json={"change_amount": -8}, headers=admin_headers)

        resp = client.put(
            f"/api/deliveries/{body['delivery']['id']}", json={"quantity": 1}, headers=admin_headers
        )
        assert resp.status_code == 409
        assert resp.json["available"] == 2
        assert resp.json["change_amount"] == -9

        # Nothing changed
        assert _quantity("Gold 22K") == 2
        assert db.session.get(Delivery, body["delivery"]["id"]).quantity == 10

    def test_update_missing(self, client, admin_headers, db_session):
        resp = client.put("/api/deliveries/999", json={"quantity": 2}, headers=admin_headers)
        assert resp.status_code == 404

    def test_replacing_invoice_removes_old_file(self, app, client, admin_headers, supplier):
        resp = client.post(
            "/api/deliveries",
            data={
                "supplier_id": str(supplier.id),
                "item_name": "Silver bar",
                "quantity": "4",
                "invoice": (io.BytesIO(PNG_BYTES), "first.png"),
            },
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        delivery = resp.json["delivery"]
        old_path = os.path.join(app.config["UPLOAD_FOLDER"], delivery["invoice_image"][len("/uploads/"):])

        resp = client.put(
            f"/api/deliveries/{delivery['id']}",
            data={"invoice": (io.BytesIO(PNG_BYTES), "second.jpg")},
            headers=admin_headers,
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert resp.json["delivery"]["invoice_image"].endswith(".jpg")
        assert not os.path.exists(old_path)


class TestDeleteDelivery:

    def test_delete_reverses_stock(self, client, admin_headers, supplier):
        first = _create(client, admin_headers, supplier, quantity=10)["delivery"]
        _create(client, admin_headers, supplier, quantity=3)

        resp = client.delete(f"/api/deliveries/{first['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["stock"]["quantity"] == 3
        assert _log_types("Gold 22K")[-1] == ("delivery_delete", -10)
        assert db.session.get(Delivery, first["id"]) is None

    def test_delete_after_consumption_is_refused(self, client, admin_headers, supplier):
        body = _create(client, admin_headers, supplier, quantity=5)
        client.put(f"/api/stock/{body['stock']['id']}", json={"change_amount": -5}, headers=admin_headers)

        resp = client.delete(f"/api/deliveries/{body['delivery']['id']}", headers=admin_headers)
        assert resp.status_code == 409
        assert db.session.get(Delivery, body["delivery"]["id"]) is not None
        assert _quantity("Gold 22K") == 0

    def test_delete_missing(self, client, admin_headers, db_session):
        assert client.delete("/api/deliveries/999", headers=admin_headers).status_code == 404


class TestListDeliveries:

    def test_list_and_get(self, client, admin_headers, supplier):
        first = _create(client, admin_headers, supplier, "Gold 22K", 1)["delivery"]
        second = _create(client, admin_headers, supplier, "Silver bar", 2)["delivery"]

        resp = client.get("/api/deliveries", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 2
        assert {d["id"] for d in resp.json["data"]} == {first["id"], second["id"]}

        resp = client.get(f"/api/deliveries/{first['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["item_name"] == "Gold 22K"
