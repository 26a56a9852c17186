"""
Tests for the CRUD routers through the HTTP API.
"""

import pytest
from fastapi import Depends, Header
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from data_crud.main import create_app
from data_crud.routers import CrudRouter, JsonExporter, ReadRouter
from data_crud.services.authorization import RoleAuthorizationManager
from data_crud.services.standard import MongoCrudService, SqlAlchemyCrudService
from shared.infrastructure.db import get_db
from tests.conftest import build_foo_router
from tests.models import Bar, BarInput, Foo, FooInput, FooOutput


class TestReadEndpoints:
    def test_page_defaults(self, client, seed_foos):
        response = client.get("/foos/")

        assert response.status_code == 200
        body = response.json()
        assert len(body["content"]) == 5
        assert body["page"] == {
            "number": 0,
            "size": 20,
            "number_of_elements": 5,
            "total_elements": 5,
            "total_pages": 1,
            "first": True,
            "last": True,
        }

    def test_page_sorted_window(self, client, seed_foos):
        response = client.get("/foos/", params={"size": 2, "page": 1, "sort": "name,desc"})

        body = response.json()
        assert [f["name"] for f in body["content"]] == ["delta", "beta"]
        assert body["page"]["total_pages"] == 3
        assert body["sort"] == ["name,desc"]

    def test_search_and_query(self, client, seed_foos):
        response = client.get("/foos/", params={"search": "a", "query": "owner.name==Ann"})

        assert sorted(f["name"] for f in response.json()["content"]) == ["alpha", "gamma"]

    def test_malformed_query_is_bad_request(self, client, seed_foos):
        response = client.get("/foos/", params={"query": "name=oops=x"})

        assert response.status_code == 400
        assert "Invalid RSQL query" in response.json()["detail"]

    def test_unknown_sort_property_is_bad_request(self, client, seed_foos):
        assert client.get("/foos/", params={"sort": "colour"}).status_code == 400

    @pytest.mark.parametrize("params", [{"size": 0}, {"page": -1}, {"size": 100000}])
    def test_invalid_paging(self, client, params):
        assert client.get("/foos/", params=params).status_code == 422

    def test_find(self, client, seed_foos):
        alpha = seed_foos[0]

        response = client.get(f"/foos/{alpha.id}")

        assert response.status_code == 200
        assert response.json() == {
            "id": alpha.id,
            "name": "alpha",
            "description": "first letter",
            "quantity": 1,
            "active": True,
            "owner_id": alpha.owner_id,
        }

    def test_find_missing(self, client, seed_foos):
        response = client.get("/foos/999")

        assert response.status_code == 404
        assert response.json()["detail"] == "Foo with id 999 not found"

    def test_find_all_by_ids(self, client, seed_foos):
        ids = [seed_foos[1].id, 999, seed_foos[2].id]

        response = client.get("/foos/ids", params={"ids": ids})

        assert sorted(f["name"] for f in response.json()) == ["beta", "gamma"]

    def test_count(self, client, seed_foos):
        assert client.get("/foos/count").json() == 5
        assert client.get("/foos/count", params={"query": "active==true"}).json() == 4
        assert client.get("/foos/count", params={"search": "river"}).json() == 1

    def test_exists(self, client, seed_foos):
        assert client.get("/foos/exists", params={"id": seed_foos[0].id}).json() is True
        assert client.get("/foos/exists", params={"id": 999}).json() is False

    def test_read_only_router_has_no_writes(self, db_session):
        def get_service(db: Session = Depends(get_db)):
            return SqlAlchemyCrudService(db, Foo, FooInput)

        app = create_app(ReadRouter(get_service, prefix="/foos").router)
        app.dependency_overrides[get_db] = lambda: db_session

        with TestClient(app) as test_client:
            assert test_client.get("/foos/count").json() == 0
            assert test_client.post("/foos/", json={"name": "x"}).status_code == 405


class TestWriteEndpoints:
    def test_create(self, client, seed_foos):
        response = client.post("/foos/", json={"name": "zeta", "quantity": 6})

        assert response.status_code == 200
        created = response.json()
        assert created["name"] == "zeta"
        assert created["active"] is True
        assert client.get(f"/foos/{created['id']}").status_code == 200
        assert client.get("/foos/count").json() == 6

    def test_create_invalid_body(self, client):
        response = client.post("/foos/", json={"name": "", "quantity": -1})
        assert response.status_code == 422

    def test_update(self, client, seed_foos):
        beta = seed_foos[1]

        response = client.put(f"/foos/{beta.id}", json={"name": "beta2", "quantity": 9})

        assert response.status_code == 200
        assert response.json()["name"] == "beta2"
        assert client.get(f"/foos/{beta.id}").json()["quantity"] == 9

    def test_update_missing(self, client, seed_foos):
        assert client.put("/foos/999", json={"name": "x"}).status_code == 404

    def test_delete(self, client, seed_foos):
        gamma = seed_foos[2]

        response = client.delete(f"/foos/{gamma.id}")

        assert response.status_code == 200
        assert response.text == f"Deleted {gamma.id}"
        assert client.get(f"/foos/{gamma.id}").status_code == 404

    def test_delete_missing(self, client, seed_foos):
        assert client.delete("/foos/999").status_code == 404


class TestApplication:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_correlation_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "req-1"})
        assert response.headers["X-Request-ID"] == "req-1"

    def test_static_paths_not_captured_as_ids(self, client, seed_foos):
        paths = [route.path for route in build_foo_router().router.routes]
        assert paths.index("/foos/count") < paths.index("/foos/{entity_id}")
        assert paths.index("/foos/export") < paths.index("/foos/{entity_id}")

        response = client.get("/foos/count")
        assert response.status_code == 200
        assert response.json() == 5


class TestAuthorization:
    """Role checks run against the principal bound from the request."""

    @pytest.fixture
    def secure_client(self, db_session):
        manager = RoleAuthorizationManager(read_roles={"VIEWER", "EDITOR"}, write_roles={"EDITOR"})

        def get_service(db: Session = Depends(get_db)):
            return SqlAlchemyCrudService(db, Foo, FooInput, authorization=manager)

        def get_principal(x_roles: str | None = Header(default=None)):
            if not x_roles:
                return None
            return {"roles": x_roles.split(",")}

        router = CrudRouter(
            get_service,
            output_schema=FooOutput,
            dto_schema=FooInput,
            prefix="/foos",
            principal_dependency=get_principal,
        )
        app = create_app(router.router)
        app.dependency_overrides[get_db] = lambda: db_session

        with TestClient(app) as test_client:
            yield test_client

    def test_anonymous_is_forbidden(self, secure_client, seed_foos):
        response = secure_client.get("/foos/")

        assert response.status_code == 403
        assert response.json()["detail"] == "Not authorized to perform PAGE"

    def test_viewer_reads_but_cannot_write(self, secure_client, seed_foos):
        headers = {"X-Roles": "VIEWER"}

        assert secure_client.get("/foos/count", headers=headers).json() == 5
        assert secure_client.post("/foos/", json={"name": "x"}, headers=headers).status_code == 403
        assert secure_client.delete(f"/foos/{seed_foos[0].id}", headers=headers).status_code == 403
        assert secure_client.get("/foos/count", headers=headers).json() == 5

    def test_editor_writes(self, secure_client, seed_foos):
        headers = {"X-Roles": "EDITOR"}

        response = secure_client.post("/foos/", json={"name": "x"}, headers=headers)

        assert response.status_code == 200


class TestDocumentRouter:
    """String ids and a JSON exporter over the MongoDB services."""

    @pytest.fixture
    def bar_client(self, bar_collection):
        def get_service():
            return MongoCrudService(bar_collection, Bar, BarInput)

        router = CrudRouter(
            get_service,
            output_schema=Bar,
            dto_schema=BarInput,
            exporter=JsonExporter("bars", indent=None),
            id_type=str,
            prefix="/bars",
        )
        with TestClient(create_app(router.router)) as test_client:
            yield test_client

    def test_crud_round(self, bar_client):
        created = bar_client.post("/bars/", json={"name": "anchor", "size": 3}).json()

        assert bar_client.get(f"/bars/{created['id']}").json()["name"] == "anchor"
        assert bar_client.get("/bars/", params={"query": "size=ge=3"}).json()["page"][
            "total_elements"
        ] == 1
        assert bar_client.delete(f"/bars/{created['id']}").text == f"Deleted {created['id']}"
        assert bar_client.get(f"/bars/{created['id']}").status_code == 404

    def test_json_export(self, bar_client):
        bar_client.post("/bars/", json={"name": "buoy", "size": 5, "tags": ["blue"]})

        response = bar_client.get("/bars/export", params={"fields": ["name", "tags"]})

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/json"
        assert response.json() == [{"name": "buoy", "tags": ["blue"]}]
