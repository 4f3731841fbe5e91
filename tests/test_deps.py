"""
Tests for the paging query-parameter dependency.
"""

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from crudcore.api import get_paging_query
from crudcore.schemas import PagingQuery


@pytest.fixture(scope="module")
def client():
    app = FastAPI()

    @app.get("/items")
    def list_items(paging: PagingQuery = Depends(get_paging_query)):
        return {
            **paging.model_dump(),
            "offset": paging.offset,
            "sort_direction": paging.sort_direction,
        }

    with TestClient(app) as test_client:
        yield test_client


class TestGetPagingQuery:
    """Test request parameter parsing."""

    def test_defaults(self, client):
        response = client.get("/items")
        assert response.status_code == 200
        body = response.json()
        assert body["page"] == 0
        assert body["size"] == 25
        assert body["order_by"] is None
        assert body["sort_direction"] is None

    def test_explicit_values(self, client):
        response = client.get("/items", params={"page": 2, "size": 10, "order_by": "name", "sort_by": "desc"})
        assert response.status_code == 200
        body = response.json()
        assert body["offset"] == 20
        assert body["order_by"] == "name"
        assert body["sort_direction"] == "desc"

    def test_direction_defaults_to_asc(self, client):
        body = client.get("/items", params={"order_by": "name"}).json()
        assert body["sort_direction"] == "asc"

    @pytest.mark.parametrize(
        "params",
        [{"size": 0}, {"page": -1}, {"size": 100000}, {"sort_by": "sideways"}],
    )
    def test_invalid_values_rejected(self, client, params):
        assert client.get("/items", params=params).status_code == 422
