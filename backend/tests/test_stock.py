"""
Stock ledger tests.

Verifies:
- Manual adjustments by id and by item name
- Balances never go negative
- Every change leaves a StockLog with before / after / change
- Stock.quantity == SUM(StockLog.change_amount) after any sequence of writes
"""

import unittest

import pytest

from atelier import create_app
from atelier.extensions import db
from atelier.models import Delivery, Stock, StockLog, Supplier, User
from atelier.services import delivery_service, stock_service
from atelier.services.stock_service import (
    NegativeStockError,
    StockNotFoundError,
    StockValidationError,
)


def _seed_stock(client, headers, supplier, item_name="Gold 22K", quantity=10):
    resp = client.post(
        "/api/deliveries",
        json={"supplier_id": supplier.id, "item_name": item_name, "quantity": quantity},
        headers=headers,
    )
    assert resp.status_code == 201, resp.json
    return resp.json["stock"]


class TestStockApi:

    def test_list_is_alphabetical(self, client, admin_headers, supplier):
        _seed_stock(client, admin_headers, supplier, "Silver bar", 3)
        _seed_stock(client, admin_headers, supplier, "Gold 22K", 5)

        resp = client.get("/api/stock", headers=admin_headers)
        assert resp.status_code == 200
        assert [s["item_name"] for s in resp.json["data"]] == ["Gold 22K", "Silver bar"]

    def test_adjust_by_id(self, client, admin_headers, supplier):
        stock = _seed_stock(client, admin_headers, supplier)

        resp = client.put(
            f"/api/stock/{stock['id']}",
            json={"change_amount": -4, "note": "Used for ring batch"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["before"] == 10
        assert resp.json["after"] == 6
        assert resp.json["stock"]["quantity"] == 6
        assert resp.json["log"]["type"] == "manual"
        assert resp.json["log"]["note"] == "Used for ring batch"

    def test_adjust_by_item_name(self, client, admin_headers, supplier):
        _seed_stock(client, admin_headers, supplier)
        resp = client.put(
            "/api/stock",
            json={"item_name": "  Gold   22K ", "change_amount": "3"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["after"] == 13

    def test_non_string_note_is_stored_as_text(self, client, admin_headers, supplier):
        _seed_stock(client, admin_headers, supplier)
        resp = client.put(
            "/api/stock",
            json={"item_name": "Gold 22K", "change_amount": -1, "note": 7},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["log"]["note"] == "7"

    def test_adjust_unknown_item_name(self, client, admin_headers, db_session):
        resp = client.put("/api/stock", json={"item_name": "Platinum", "change_amount": 1}, headers=admin_headers)
        assert resp.status_code == 404

    def test_adjust_unknown_id(self, client, admin_headers, db_session):
        resp = client.put("/api/stock/999", json={"change_amount": 1}, headers=admin_headers)
        assert resp.status_code == 404

    @pytest.mark.parametrize("amount", [0, None, "abc", 1.5, True])
    def test_adjust_rejects_bad_amount(self, client, admin_headers, supplier, amount):
        stock = _seed_stock(client, admin_headers, supplier)
        resp = client.put(f"/api/stock/{stock['id']}", json={"change_amount": amount}, headers=admin_headers)
        assert resp.status_code == 400

    def test_cannot_go_negative(self, client, admin_headers, supplier):
        stock = _seed_stock(client, admin_headers, supplier, quantity=2)

        resp = client.put(f"/api/stock/{stock['id']}", json={"change_amount": -3}, headers=admin_headers)
        assert resp.status_code == 400
        assert resp.json["error"] == "Stock cannot be negative"
        assert resp.json["available"] == 2

        # Nothing was written
        assert db.session.get(Stock, stock["id"]).quantity == 2
        assert db.session.query(StockLog).filter_by(type="manual").count() == 0

    def test_can_go_to_exactly_zero(self, client, admin_headers, supplier):
        stock = _seed_stock(client, admin_headers, supplier, quantity=2)
        resp = client.put(f"/api/stock/{stock['id']}", json={"change_amount": -2}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["after"] == 0

    def test_logs_newest_first(self, client, admin_headers, supplier):
        stock = _seed_stock(client, admin_headers, supplier)
        client.put(f"/api/stock/{stock['id']}", json={"change_amount": -1}, headers=admin_headers)

        resp = client.get("/api/stock/logs/all", headers=admin_headers)
        assert resp.status_code == 200
        types = [log["type"] for log in resp.json["data"]]
        assert types == ["manual", "delivery"]
        assert resp.json["data"][0]["updated_by"]["id"]

    def test_low_stock(self, app, client, admin_headers, supplier, monkeypatch):
        monkeypatch.setitem(app.config, "LOW_STOCK_THRESHOLD", 5)
        _seed_stock(client, admin_headers, supplier, "Gold 22K", 3)
        _seed_stock(client, admin_headers, supplier, "Silver bar", 50)

        resp = client.get("/api/stock/low", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["threshold"] == 5
        assert [s["item_name"] for s in resp.json["data"]] == ["Gold 22K"]


class StockLedgerServiceTests(unittest.TestCase):
    """Service-level ledger checks on a private app and database."""

    @classmethod
    def setUpClass(cls):
        cls.app = create_app({
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
            "SQLALCHEMY_TRACK_MODIFICATIONS": False,
            "MAIL_SUPPRESS_SEND": True,
        })
        cls.ctx = cls.app.app_context()
        cls.ctx.push()
        db.create_all()

    @classmethod
    def tearDownClass(cls):
        db.session.remove()
        db.drop_all()
        cls.ctx.pop()

    def setUp(self):
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        self.user = User(name="Ledger", email="ledger@test.local", password_hash="x", role="admin")
        self.supplier = Supplier(name="Ceylon Metals")
        db.session.add_all([self.user, self.supplier])
        db.session.commit()

    def _ledger_total(self, stock_id):
        return sum(
            log.change_amount
            for log in db.session.query(StockLog).filter_by(stock_id=stock_id).all()
        )

    def test_apply_creates_missing_item_at_zero(self):
        stock, log = stock_service.apply_stock_change(
            item_name="Rose gold", change_amount=4, log_type="delivery", user_id=self.user.id
        )
        db.session.commit()
        self.assertEqual(stock.quantity, 4)
        self.assertEqual(log.quantity_before, 0)
        self.assertEqual(log.quantity_after, 4)

    def test_apply_does_not_commit(self):
        stock, _ = stock_service.apply_stock_change(item_name="Rose gold", change_amount=4, log_type="delivery")
        db.session.commit()
        stock_id = stock.id

        stock_service.apply_stock_change(stock_id=stock_id, change_amount=-1, log_type="manual")
        db.session.rollback()
        self.assertEqual(db.session.get(Stock, stock_id).quantity, 4)
        self.assertEqual(db.session.query(StockLog).count(), 1)

    def test_unknown_log_type(self):
        with self.assertRaises(StockValidationError):
            stock_service.apply_stock_change(item_name="Rose gold", change_amount=1, log_type="sale")

    def test_unknown_stock_id(self):
        with self.assertRaises(StockNotFoundError):
            stock_service.apply_stock_change(stock_id=12345, change_amount=1, log_type="manual")

    def test_negative_carries_context(self):
        stock_service.apply_stock_change(item_name="Rose gold", change_amount=2, log_type="delivery")
        db.session.commit()
        with self.assertRaises(NegativeStockError) as ctx:
            stock_service.apply_stock_change(item_name="Rose gold", change_amount=-5, log_type="manual")
        db.session.rollback()
        self.assertEqual(ctx.exception.available, 2)
        self.assertEqual(ctx.exception.change_amount, -5)
        self.assertEqual(ctx.exception.item_name, "Rose gold")

    def test_ledger_sum_matches_balance_after_mixed_writes(self):
        delivery, stock = delivery_service.create_delivery(
            supplier_id=self.supplier.id, item_name="Gold 22K", quantity=10, user_id=self.user.id
        )
        delivery_service.update_delivery(delivery.id, {"quantity": 12}, user_id=self.user.id)
        delivery_service.update_delivery(delivery.id, {"item_name": "Gold 24K"}, user_id=self.user.id)
        stock_service.adjust_stock(item_name="Gold 24K", change_amount=-3, user_id=self.user.id)
        delivery_service.create_delivery(
            supplier_id=self.supplier.id, item_name="Gold 22K", quantity=4, user_id=self.user.id
        )
        stock_service.adjust_stock(stock_id=stock.id, change_amount=-1, user_id=self.user.id)

        balances = {row.item_name: row.quantity for row in db.session.query(Stock).all()}
        self.assertEqual(balances, {"Gold 22K": 3, "Gold 24K": 9})

        for row in db.session.query(Stock).all():
            self.assertEqual(row.quantity, self._ledger_total(row.id), row.item_name)
            self.assertGreaterEqual(row.quantity, 0)

        self.assertEqual(stock_service.find_ledger_mismatches(), [])

    def test_item_move_past_consumed_stock_is_refused(self):
        delivery, stock = delivery_service.create_delivery(
            supplier_id=self.supplier.id, item_name="Gold 22K", quantity=10, user_id=self.user.id
        )
        stock_service.adjust_stock(stock_id=stock.id, change_amount=-3, user_id=self.user.id)

        with self.assertRaises(NegativeStockError) as ctx:
            delivery_service.update_delivery(delivery.id, {"item_name": "Gold 24K"}, user_id=self.user.id)
        self.assertEqual(ctx.exception.available, 7)
        self.assertEqual(ctx.exception.change_amount, -10)

        self.assertEqual(db.session.get(Stock, stock.id).quantity, 7)
        self.assertEqual(db.session.get(Delivery, delivery.id).item_name, "Gold 22K")
        self.assertIsNone(db.session.query(Stock).filter_by(item_name="Gold 24K").first())
        self.assertEqual(stock_service.find_ledger_mismatches(), [])

    def test_find_ledger_mismatches_reports_drift(self):
        _delivery, stock = delivery_service.create_delivery(
            supplier_id=self.supplier.id, item_name="Gold 22K", quantity=5
        )
        # Out-of-band write that skips the ledger
        db.session.execute(
            db.update(Stock).where(Stock.id == stock.id).values(quantity=7)
        )
        db.session.commit()

        mismatches = stock_service.find_ledger_mismatches()
        self.assertEqual(len(mismatches), 1)
        self.assertEqual(mismatches[0]["item_name"], "Gold 22K")
        self.assertEqual(mismatches[0]["quantity"], 7)
        self.assertEqual(mismatches[0]["ledger_total"], 5)

    def test_parse_change_amount(self):
        self.assertEqual(stock_service.parse_change_amount("-4"), -4)
        self.assertEqual(stock_service.parse_change_amount(2.0), 2)
        for bad in (0, "0", None, False, 2.5, "x"):
            with self.assertRaises(StockValidationError):
                stock_service.parse_change_amount(bad)


if __name__ == "__main__":
    unittest.main()
