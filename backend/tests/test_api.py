"""
End-to-end API tests (registry on SQLite, targets on SQLite files)
"""
import pytest
from fastapi.testclient import TestClient


DATABASE_PAYLOAD = {
    "name": "Shop",
    "host": "localhost",
    "port": 5432,
    "database": "shop",
    "username": "tester",
    "password": "s3cret-pass",
}


@pytest.fixture
def database_id(client):
    response = client.post("/api/databases/", json=DATABASE_PAYLOAD)
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def auth_app_id(client, database_id, items_table, users_table):
    response = client.post("/api/apps/", json={
        "name": "Inventory", "database_id": database_id, "auth_enabled": True,
    })
    assert response.status_code == 201
    return response.json()["id"]


@pytest.fixture
def admin_client(client, auth_app_id):
    response = client.post(f"/api/auth/login/{auth_app_id}", json={"username": "admin", "password": "admin"})
    assert response.status_code == 200
    return client


def login(app_id, username, password):
    from pgconsole.main import app

    other = TestClient(app)
    response = other.post(f"/api/auth/login/{app_id}", json={"username": username, "password": password})
    assert response.status_code == 200
    return other


class TestDatabasesAPI:
    """Registered database endpoints"""

    def test_create_never_returns_password(self, client):
        response = client.post("/api/databases/", json=DATABASE_PAYLOAD)
        body = response.json()

        assert response.status_code == 201
        assert "password" not in body
        assert "encrypted_password" not in body
        assert body["created_on_server"] is False

        listed = client.get("/api/databases/").json()
        assert [db["name"] for db in listed] == ["Shop"]
        assert all("password" not in key for key in listed[0])

    def test_create_fails_when_unreachable(self, client, monkeypatch):
        from pgconsole.connections import pool_manager

        monkeypatch.setattr(
            pool_manager, "test_connection",
            lambda creds: {"success": False, "message": "timeout expired"},
        )
        response = client.post("/api/databases/", json=DATABASE_PAYLOAD)

        assert response.status_code == 502
        assert response.json()["error"] == "ConnectionError"
        assert client.get("/api/databases/").json() == []

    def test_missing_fields(self, client):
        response = client.post("/api/databases/", json={"name": "x"})
        assert response.status_code == 422

    def test_test_connection(self, client, database_id):
        response = client.post(f"/api/databases/{database_id}/test")
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_update_and_delete(self, client, database_id):
        response = client.put(f"/api/databases/{database_id}", json={"name": "Shop 2"})
        assert response.status_code == 200
        assert response.json()["name"] == "Shop 2"

        assert client.delete(f"/api/databases/{database_id}").status_code == 200
        assert client.get(f"/api/databases/{database_id}").status_code == 404

    def test_from_conf(self, client):
        import os
        from pgconsole.config import settings

        os.makedirs(settings.CONF_DIR, exist_ok=True)
        with open(os.path.join(settings.CONF_DIR, "warehouse.conf"), "w") as f:
            f.write("host=localhost\ndatabase=warehouse\nuser=tester\npassword=pw\n")

        response = client.post("/api/databases/from-conf", json={"filename": "warehouse.conf"})
        assert response.status_code == 201
        assert response.json()["name"] == "warehouse"
        assert response.json()["database"] == "warehouse"


class TestDataBrowserAPI:
    """Operator access to a registered database"""

    def test_create_table_and_rows(self, client, database_id):
        response = client.post(f"/api/data/{database_id}/tables", json={
            "name": "products",
            "columns": [
                {"name": "id", "type": "INTEGER", "primary_key": True},
                {"name": "title", "type": "VARCHAR(200)", "nullable": False},
                {"name": "stock", "type": "INTEGER", "default": {"value": 0}},
            ],
        })
        assert response.status_code == 201
        assert [c["name"] for c in response.json()["columns"]] == ["id", "title", "stock"]

        assert client.get(f"/api/data/{database_id}/tables").json() == {"tables": ["products"]}

        inserted = client.post(f"/api/data/{database_id}/tables/products/rows", json={"data": {"title": "Lamp"}})
        assert inserted.status_code == 201
        assert inserted.json()["stock"] == 0

        updated = client.put(f"/api/data/{database_id}/tables/products/rows", json={
            "data": {"stock": 3}, "where": {"title": "Lamp"},
        })
        assert updated.json()["row_count"] == 1

        page = client.get(f"/api/data/{database_id}/tables/products/data").json()
        assert page["data"][0]["stock"] == 3
        assert page["pagination"]["total"] == 1

        deleted = client.request("DELETE", f"/api/data/{database_id}/tables/products/rows", json={"where": {}})
        assert deleted.status_code == 400
        assert deleted.json()["error"] == "MissingWhereClause"

    def test_schema(self, client, database_id, items_table):
        response = client.get(f"/api/data/{database_id}/tables/items/schema")
        assert response.status_code == 200
        assert response.json()["table"] == "items"

    def test_bad_foreign_key_action(self, client, database_id):
        response = client.post(f"/api/data/{database_id}/tables", json={
            "name": "t1",
            "columns": [{"name": "id", "type": "INTEGER", "primary_key": True}],
            "foreign_keys": [{"column": "id", "references_table": "x", "references_column": "id",
                              "on_delete": "explode"}],
        })
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidQueryParameter"

    def test_unknown_database(self, client):
        assert client.get("/api/data/999/tables").status_code == 404

    def test_custom_query(self, client, database_id, items_table):
        url = f"/api/data/{database_id}/query"
        inserted = client.post(url, json={
            "query": "INSERT INTO items (name, sku, qty) VALUES (:name, :sku, :qty)",
            "params": {"name": "gear", "sku": "G-1", "qty": 4},
        })
        assert inserted.status_code == 200
        assert inserted.json()["row_count"] == 1

        selected = client.post(url, json={
            "query": "SELECT name, qty FROM items WHERE sku = :sku",
            "params": {"sku": "G-1"},
        })
        body = selected.json()
        assert selected.status_code == 200
        assert body["data"] == [{"name": "gear", "qty": 4}]
        assert body["columns"] == ["name", "qty"]

    @pytest.mark.parametrize("query", ["DROP TABLE items", "CREATE TABLE x (id INTEGER)", ""])
    def test_custom_query_refused(self, client, database_id, items_table, query):
        response = client.post(f"/api/data/{database_id}/query", json={"query": query})

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidQueryParameter"
        assert client.get(f"/api/data/{database_id}/tables").json() == {"tables": ["items"]}

    def test_custom_query_engine_error(self, client, database_id, items_table):
        response = client.post(f"/api/data/{database_id}/query", json={"query": "SELECT nope FROM items"})

        assert response.status_code == 500
        assert response.json()["error"] == "QueryExecutionError"


class TestDynamicAPI:
    """Per-app gateway and documentation"""

    def test_requires_session(self, client, auth_app_id):
        response = client.get(f"/api/{auth_app_id}/items")

        assert response.status_code == 401
        assert response.json() == {"error": "NotAuthenticated", "message": "Not authenticated"}

    def test_crud_as_admin(self, admin_client, auth_app_id):
        base = f"/api/{auth_app_id}/items"

        created = admin_client.post(base, json={"name": "bolt", "sku": "B-1", "unknown": True})
        assert created.status_code == 201
        item_id = created.json()["id"]

        assert admin_client.get(f"{base}/{item_id}").json()["name"] == "bolt"

        updated = admin_client.put(f"{base}/{item_id}", json={"qty": 9})
        assert updated.json()["qty"] == 9

        listing = admin_client.get(base, params={"limit": 5, "sort": "id:desc", "filter": '{"sku": "B-1"}'})
        assert listing.json()["pagination"] == {"total": 1, "limit": 5, "offset": 0}

        deleted = admin_client.delete(f"{base}/{item_id}")
        assert deleted.json()["deleted"]["id"] == item_id
        assert admin_client.get(f"{base}/{item_id}").status_code == 404

    def test_duplicate_is_conflict(self, admin_client, auth_app_id):
        base = f"/api/{auth_app_id}/items"
        admin_client.post(base, json={"name": "a", "sku": "DUP"})
        response = admin_client.post(base, json={"name": "b", "sku": "DUP"})

        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateKey"

    def test_viewer_cannot_write(self, admin_client, auth_app_id):
        created = admin_client.post(f"/api/auth/users/{auth_app_id}", json={
            "username": "val", "password": "viewer-pw", "role": "viewer",
        })
        assert created.status_code == 201

        base = f"/api/{auth_app_id}/items"
        existing = admin_client.post(base, json={"name": "kept", "sku": "K-1", "qty": 3}).json()

        viewer = login(auth_app_id, "val", "viewer-pw")
        attempts = [
            viewer.post(base, json={"name": "nope"}),
            viewer.put(f"{base}/{existing['id']}", json={"name": "changed", "qty": 99}),
            viewer.delete(f"{base}/{existing['id']}"),
        ]

        for response in attempts:
            assert response.status_code == 403
            assert response.json()["error"] == "InsufficientPermissions"
        assert viewer.get(base).json()["pagination"]["total"] == 1
        assert viewer.get(f"{base}/{existing['id']}").json() == existing

    def test_principal_table_hidden(self, admin_client, auth_app_id):
        assert admin_client.get(f"/api/{auth_app_id}/users").status_code == 404

    def test_reserved_name(self, admin_client, auth_app_id):
        response = admin_client.get(f"/api/{auth_app_id}/select")
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidIdentifier"

    def test_bad_filter(self, admin_client, auth_app_id):
        response = admin_client.get(f"/api/{auth_app_id}/items", params={"filter": "{oops"})
        assert response.status_code == 400

    def test_documentation(self, admin_client, auth_app_id):
        response = admin_client.get(f"/docs/{auth_app_id}")
        body = response.json()

        assert response.status_code == 200
        assert body["app"] == "Inventory"
        assert [entry["table"] for entry in body["endpoints"]] == ["items"]

    def test_public_app_allows_anonymous_reads(self, client, database_id, items_table):
        app_id = client.post("/api/apps/", json={
            "name": "Catalog", "database_id": database_id, "public_access": True,
        }).json()["id"]

        assert client.get(f"/api/{app_id}/items").status_code == 200
        assert client.post(f"/api/{app_id}/items", json={"name": "x"}).status_code == 403

    def test_unknown_app(self, client):
        assert client.get("/api/no-such-app/items").status_code == 404


class TestAuthAPI:
    """Per-app login, logout and user management"""

    def test_login_failure_is_opaque(self, client, auth_app_id):
        wrong_password = client.post(f"/api/auth/login/{auth_app_id}", json={"username": "admin", "password": "x"})
        wrong_user = client.post(f"/api/auth/login/{auth_app_id}", json={"username": "ghost", "password": "x"})

        assert wrong_password.status_code == wrong_user.status_code == 401
        assert wrong_password.json() == wrong_user.json()

    def test_status_and_logout(self, admin_client, auth_app_id):
        status = admin_client.get(f"/api/auth/status/{auth_app_id}").json()
        assert status["authenticated"] is True
        assert status["user"]["role"] == "admin"

        admin_client.post(f"/api/auth/logout/{auth_app_id}")
        assert admin_client.get(f"/api/auth/status/{auth_app_id}").json()["authenticated"] is False
        assert admin_client.get(f"/api/{auth_app_id}/items").status_code == 401

    def test_user_management_requires_admin(self, admin_client, auth_app_id):
        admin_client.post(f"/api/auth/users/{auth_app_id}", json={
            "username": "ed", "password": "editor-pw", "role": "editor",
        })
        editor = login(auth_app_id, "ed", "editor-pw")

        assert editor.get(f"/api/auth/users/{auth_app_id}").status_code == 403
        users = admin_client.get(f"/api/auth/users/{auth_app_id}").json()
        assert [u["username"] for u in users] == ["admin", "ed"]

    def test_duplicate_username(self, admin_client, auth_app_id):
        response = admin_client.post(f"/api/auth/users/{auth_app_id}", json={
            "username": "admin", "password": "again",
        })
        assert response.status_code == 409

    def test_admin_cannot_delete_self(self, admin_client, auth_app_id):
        me = admin_client.get(f"/api/auth/status/{auth_app_id}").json()["user"]
        response = admin_client.delete(f"/api/auth/users/{auth_app_id}/{me['id']}")
        assert response.status_code == 400

    def test_change_password(self, admin_client, auth_app_id):
        response = admin_client.post(f"/api/auth/change-password/{auth_app_id}", json={
            "current_password": "admin", "new_password": "better-secret",
        })
        assert response.status_code == 200

        login(auth_app_id, "admin", "better-secret")

    def test_demotion_applies_to_live_session(self, admin_client, auth_app_id):
        created = admin_client.post(f"/api/auth/users/{auth_app_id}", json={
            "username": "ed", "password": "editor-pw", "role": "editor",
        }).json()
        editor = login(auth_app_id, "ed", "editor-pw")
        base = f"/api/{auth_app_id}/items"
        assert editor.post(base, json={"name": "first"}).status_code == 201

        admin_client.put(f"/api/auth/users/{auth_app_id}/{created['id']}", json={"role": "viewer"})

        assert editor.post(base, json={"name": "second"}).status_code == 403
        assert editor.get(f"/api/auth/status/{auth_app_id}").json()["user"]["role"] == "viewer"
        assert editor.get(base).json()["pagination"]["total"] == 1

    def test_deactivated_principal_loses_session(self, admin_client, auth_app_id):
        created = admin_client.post(f"/api/auth/users/{auth_app_id}", json={
            "username": "ed", "password": "editor-pw", "role": "editor",
        }).json()
        editor = login(auth_app_id, "ed", "editor-pw")

        admin_client.put(f"/api/auth/users/{auth_app_id}/{created['id']}", json={"is_active": False})

        assert editor.get(f"/api/{auth_app_id}/items").status_code == 401
        assert editor.get(f"/api/auth/status/{auth_app_id}").json()["authenticated"] is False


class TestAppsAPI:

    def test_crud(self, client, database_id):
        created = client.post("/api/apps/", json={"name": "Board", "database_id": database_id})
        app_id = created.json()["id"]
        assert created.json()["auth_enabled"] is False

        assert client.put(f"/api/apps/{app_id}", json={"icon": "chart"}).json()["icon"] == "chart"
        assert [a["name"] for a in client.get("/api/apps/").json()] == ["Board"]
        assert client.delete(f"/api/apps/{app_id}").status_code == 200
        assert client.get(f"/api/apps/{app_id}").status_code == 404

    def test_deleting_database_orphans_app(self, client, database_id):
        app_id = client.post("/api/apps/", json={"name": "Board", "database_id": database_id}).json()["id"]
        client.delete(f"/api/databases/{database_id}")

        assert client.get(f"/api/apps/{app_id}").json()["database_id"] is None


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
