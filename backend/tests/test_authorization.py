"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Customers are denied staff operations (403)
- Suppliers and managers only reach their own areas
- Admin can reach every admin area
"""

import pytest


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/users"),
            ("GET", "/api/users/me"),
            ("GET", "/api/admin/users"),
            ("POST", "/api/admin/users"),
            ("GET", "/api/customers"),
            ("GET", "/api/customers/me/profile"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/deliveries"),
            ("GET", "/api/stock"),
            ("GET", "/api/stock/logs/all"),
            ("GET", "/api/jewellery"),
            ("GET", "/api/locker"),
            ("POST", "/api/designs/generate"),
            ("GET", "/api/designs/history"),
            ("POST", "/api/orders/ai"),
            ("GET", "/api/orders/my"),
            ("GET", "/api/orders"),
            ("GET", "/api/orders/approved"),
            ("GET", "/api/admin/dashboard/stats"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"


# =============================================================================
# CUSTOMER DENIED STAFF OPERATIONS: 403
# =============================================================================


class TestCustomerDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("GET", "/api/admin/users"),
            ("GET", "/api/customers"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/deliveries"),
            ("GET", "/api/stock"),
            ("GET", "/api/stock/low"),
            ("GET", "/api/locker"),
            ("GET", "/api/orders"),
            ("GET", "/api/orders/approved"),
            ("PUT", "/api/orders/1/approve"),
            ("PUT", "/api/orders/1/status"),
            ("POST", "/api/jewellery"),
            ("GET", "/api/admin/dashboard/stats"),
            ("GET", "/api/admin/dashboard/notifications"),
        ],
    )
    def test_forbidden(self, client, customer_headers, method, path):
        resp = getattr(client, method.lower())(path, headers=customer_headers, json={})
        assert resp.status_code == 403, f"{method} {path} returned {resp.status_code}"


class TestManagerScope:

    def test_manager_can_list_orders(self, client, manager_headers):
        assert client.get("/api/orders", headers=manager_headers).status_code == 200

    def test_manager_can_create_jewellery(self, client, manager_headers):
        resp = client.post("/api/jewellery", json={"name": "Pearl drop"}, headers=manager_headers)
        assert resp.status_code == 201

    @pytest.mark.parametrize("path", ["/api/stock", "/api/suppliers", "/api/locker", "/api/users"])
    def test_manager_denied_admin_areas(self, client, manager_headers, path):
        assert client.get(path, headers=manager_headers).status_code == 403


class TestSupplierScope:

    def test_supplier_sees_approved_queue(self, client, supplier_headers):
        assert client.get("/api/orders/approved", headers=supplier_headers).status_code == 200

    def test_supplier_cannot_approve(self, client, supplier_headers):
        assert client.put("/api/orders/1/approve", json={}, headers=supplier_headers).status_code == 403

    def test_supplier_cannot_list_all_orders(self, client, supplier_headers):
        assert client.get("/api/orders", headers=supplier_headers).status_code == 403


class TestAdminAccess:

    @pytest.mark.parametrize(
        "path",
        [
            "/api/users",
            "/api/admin/users",
            "/api/customers",
            "/api/suppliers",
            "/api/deliveries",
            "/api/stock",
            "/api/stock/logs/all",
            "/api/stock/low",
            "/api/jewellery",
            "/api/locker",
            "/api/orders",
            "/api/admin/dashboard/stats",
            "/api/admin/dashboard/activities",
            "/api/admin/dashboard/orders/recent",
            "/api/admin/dashboard/notifications",
        ],
    )
    def test_admin_allowed(self, client, admin_headers, path):
        resp = client.get(path, headers=admin_headers)
        assert resp.status_code == 200, f"GET {path} returned {resp.status_code}"


class TestSystem:

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "ok"

    def test_unknown_route_is_json_404(self, client, db_session):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        assert resp.is_json

    def test_cors_for_client_url(self, client, db_session):
        resp = client.get("/api/health", headers={"Origin": "http://localhost:5173"})
        assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
        assert resp.headers["Access-Control-Allow-Credentials"] == "true"

    def test_no_cors_for_other_origin(self, client, db_session):
        resp = client.get("/api/health", headers={"Origin": "http://evil.example"})
        assert "Access-Control-Allow-Origin" not in resp.headers
