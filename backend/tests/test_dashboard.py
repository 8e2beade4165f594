"""
Admin dashboard aggregate tests.
"""

from datetime import timedelta

import pytest

from atelier.models import Order, Stock
from atelier.time_utils import utcnow


def _order(db_session, user, design, *, status, cents, age_days=0, number):
    order = Order(
        user_id=user.id,
        design_id=design.id,
        order_number=number,
        total_price_cents=cents,
        status=status,
        shipping_city="Colombo",
        shipping_country="Sri Lanka",
        created_at=utcnow() - timedelta(days=age_days),
    )
    db_session.add(order)
    db_session.commit()
    return order


@pytest.fixture
def dashboard_data(db_session, customer_user, customer_design):
    _order(db_session, customer_user, customer_design, status="Delivered", cents=1_000_000, age_days=5,
           number="ORD-100001")
    _order(db_session, customer_user, customer_design, status="Delivered", cents=500_000, age_days=40,
           number="ORD-100002")
    _order(db_session, customer_user, customer_design, status="Pending", cents=2_000_000,
           number="ORD-100003")
    db_session.add_all([
        Stock(item_name="Gold 22K", quantity=2),
        Stock(item_name="Silver bar", quantity=50),
    ])
    db_session.commit()


class TestStats:

    def test_stats(self, client, admin_headers, dashboard_data):
        resp = client.get("/api/admin/dashboard/stats", headers=admin_headers)
        assert resp.status_code == 200
        stats = resp.json

        assert stats["total_orders"] == 3
        assert stats["completed_orders"] == 2
        assert stats["pending_approvals"] == 1
        assert stats["active_customers"] == 1
        assert stats["new_customers"] == 1
        assert stats["revenue"] == 1_500_000
        assert stats["avg_order_value"] == 500_000
        assert stats["conversion_rate"] == 66.7
        # 1_000_000 in the last 30 days vs 500_000 in the 30 before
        assert stats["revenue_change"] == 100.0
        # No previous-period baseline
        assert stats["pending_change"] == 0
        assert stats["customer_change"] == 0

    def test_empty(self, client, admin_headers):
        stats = client.get("/api/admin/dashboard/stats", headers=admin_headers).json
        assert stats["total_orders"] == 0
        assert stats["revenue"] == 0
        assert stats["avg_order_value"] == 0
        assert stats["conversion_rate"] == 0


class TestFeeds:

    def test_activities(self, client, admin_headers, dashboard_data):
        resp = client.get("/api/admin/dashboard/activities", headers=admin_headers)
        assert resp.status_code == 200
        items = resp.json
        assert len(items) <= 10

        actions = {item["action"] for item in items}
        assert {"New Order", "Stock Alert", "User Signup"} <= actions

        alerts = [item for item in items if item["action"] == "Stock Alert"]
        assert [a["desc"] for a in alerts] == ["Gold 22K is low on stock (2 left)"]
        assert all(item["time_ago"].endswith("ago") for item in items)

        stamps = [item["occurred_at"] for item in items]
        assert stamps == sorted(stamps, reverse=True)

    def test_recent_orders(self, client, admin_headers, dashboard_data):
        resp = client.get("/api/admin/dashboard/orders/recent", headers=admin_headers)
        assert resp.status_code == 200
        first = resp.json[0]
        assert first["order_number"] == "ORD-100003"
        assert first["status"] == "pending"
        assert first["customer_name"] == "Nimali Perera"
        assert first["product_name"] == "Rose gold ring"
        assert first["amount_cents"] == 2_000_000

    def test_notifications(self, client, admin_headers, dashboard_data):
        resp = client.get("/api/admin/dashboard/notifications", headers=admin_headers)
        assert resp.status_code == 200
        by_type = {n["type"]: n for n in resp.json}
        assert by_type["order"]["message"] == "1 orders pending approval"
        assert by_type["stock"]["count"] == 1
        assert by_type["customer"]["count"] == 1

    def test_notifications_empty(self, client, admin_headers):
        resp = client.get("/api/admin/dashboard/notifications", headers=admin_headers)
        assert all(n["type"] != "order" for n in resp.json)
        assert all(n["type"] != "stock" for n in resp.json)
