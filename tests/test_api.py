"""
Integration tests for the catalog API.
Run: pytest tests/ -v
"""

from __future__ import annotations

import uuid
from datetime import datetime

import pytest
from sqlalchemy.exc import OperationalError

DUNE = {"title": "Dune", "author": "Frank Herbert", "publishedYear": 1965}


def _ts(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


async def _create(client, **fields):
    response = await client.post("/api/books", json={"title": "Book", "author": "Author", **fields})
    assert response.status_code == 201, response.text
    return response.json()


class TestHealthEndpoints:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Book API Server is running"
        assert "timestamp" in data

    @pytest.mark.asyncio
    async def test_unknown_route(self, client):
        response = await client.get("/api/nothing-here")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Route not found"}


class TestBookEndpoints:
    """Test book CRUD operations."""

    @pytest.mark.asyncio
    async def test_create_and_get_round_trip(self, client):
        response = await client.post("/api/books", json=DUNE)
        assert response.status_code == 201
        created = response.json()
        assert created["id"]
        assert created["title"] == "Dune"
        assert created["publishedYear"] == 1965
        assert created["createdAt"] == created["updatedAt"]

        response = await client.get(f"/api/books/{created['id']}")
        assert response.status_code == 200
        assert response.json() == created

    @pytest.mark.asyncio
    async def test_create_ignores_client_ids_and_timestamps(self, client):
        created = await _create(client, id="abc", createdAt="2000-01-01T00:00:00Z")
        assert created["id"] != "abc"
        assert not created["createdAt"].startswith("2000")

    @pytest.mark.asyncio
    async def test_get_nonexistent_book(self, client):
        response = await client.get(f"/api/books/{uuid.uuid4().hex}")
        assert response.status_code == 404
        assert response.json() == {"error": "Book not found"}

    @pytest.mark.asyncio
    async def test_get_malformed_id(self, client):
        response = await client.get("/api/books/not-a-valid-id")
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid book ID"}

    @pytest.mark.asyncio
    async def test_update_partial(self, client):
        created = await _create(client, genre="Fiction", pages=100)
        response = await client.put(f"/api/books/{created['id']}", json={"pages": 150})
        assert response.status_code == 200
        updated = response.json()
        assert updated["pages"] == 150
        assert updated["genre"] == "Fiction"
        assert updated["title"] == created["title"]
        assert updated["createdAt"] == created["createdAt"]
        assert _ts(updated["updatedAt"]) > _ts(created["updatedAt"])

        fetched = (await client.get(f"/api/books/{created['id']}")).json()
        assert fetched == updated

    @pytest.mark.asyncio
    async def test_update_missing_and_malformed(self, client):
        response = await client.put(f"/api/books/{uuid.uuid4().hex}", json={"pages": 10})
        assert response.status_code == 404
        response = await client.put("/api/books/xyz", json={"pages": 10})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete(self, client):
        created = await _create(client)
        response = await client.delete(f"/api/books/{created['id']}")
        assert response.status_code == 200
        assert response.json() == {"message": "Book deleted successfully"}

        response = await client.get(f"/api/books/{created['id']}")
        assert response.status_code == 404

        response = await client.delete(f"/api/books/{created['id']}")
        assert response.status_code == 404


class TestValidationErrors:
    @pytest.mark.asyncio
    async def test_empty_title(self, client):
        response = await client.post("/api/books", json={"title": "", "author": "A"})
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Validation failed"
        assert data["details"] == ["Title is required"]
        assert data["errors"] == [{"field": "title", "message": "Title is required"}]

    @pytest.mark.asyncio
    async def test_multiple_field_errors(self, client):
        response = await client.post(
            "/api/books",
            json={"title": "T", "author": "A", "publishedYear": 3000, "isbn": "not-an-isbn"},
        )
        assert response.status_code == 400
        fields = [e["field"] for e in response.json()["errors"]]
        assert fields == ["publishedYear", "isbn"]

    @pytest.mark.asyncio
    async def test_update_validation(self, client):
        created = await _create(client)
        response = await client.put(f"/api/books/{created['id']}", json={"title": "   "})
        assert response.status_code == 400
        assert response.json()["details"] == ["Title is required"]

    @pytest.mark.asyncio
    async def test_publisher_too_long(self, client):
        response = await client.post(
            "/api/books", json={"title": "T", "author": "A", "publisher": "  " + "p" * 101 + "  "}
        )
        assert response.status_code == 400
        assert response.json()["errors"] == [
            {"field": "publisher", "message": "Publisher name cannot be more than 100 characters"}
        ]

        listing = (await client.get("/api/books")).json()
        assert listing["total"] == 0

    @pytest.mark.asyncio
    async def test_non_object_body(self, client):
        response = await client.post("/api/books", json=["Dune"])
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    @pytest.mark.asyncio
    async def test_duplicate_isbn(self, client):
        first = await _create(client, title="First", isbn="978-0-441-01359-3")
        response = await client.post(
            "/api/books", json={"title": "Second", "author": "B", "isbn": "978-0-441-01359-3"}
        )
        assert response.status_code == 409
        assert response.json() == {"error": "A book with this ISBN already exists"}

        kept = (await client.get(f"/api/books/{first['id']}")).json()
        assert kept["title"] == "First"


class TestListing:
    @pytest.mark.asyncio
    async def test_empty_list(self, client):
        response = await client.get("/api/books")
        assert response.status_code == 200
        assert response.json() == {"books": [], "totalPages": 0, "currentPage": 1, "total": 0}

    @pytest.mark.asyncio
    async def test_pagination(self, client):
        for i in range(25):
            await _create(client, title=f"Book {i}")

        response = await client.get("/api/books", params={"page": 3, "limit": 10})
        assert response.status_code == 200
        data = response.json()
        assert len(data["books"]) == 5
        assert data["totalPages"] == 3
        assert data["currentPage"] == 3
        assert data["total"] == 25

    @pytest.mark.asyncio
    async def test_search_and_genre(self, client):
        await _create(client, title="The Great Gatsby", genre="Fiction")
        await _create(client, title="Gatsby: A Study", genre="Criticism")
        await _create(client, title="Dune", genre="Science Fiction")

        data = (await client.get("/api/books", params={"search": "gatsby"})).json()
        assert data["total"] == 2

        data = (await client.get("/api/books", params={"search": "gatsby", "genre": "FICTION"})).json()
        assert [b["title"] for b in data["books"]] == ["The Great Gatsby"]

    @pytest.mark.asyncio
    async def test_sort(self, client):
        for title in ("b", "c", "a"):
            await _create(client, title=title)
        data = (await client.get("/api/books", params={"sortBy": "title", "sortOrder": "asc"})).json()
        assert [b["title"] for b in data["books"]] == ["a", "b", "c"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [{"page": 0}, {"limit": 0}, {"page": "x"}, {"sortOrder": "sideways"}, {"sortBy": "rating"}],
    )
    async def test_invalid_list_params(self, client, params):
        response = await client.get("/api/books", params=params)
        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    @pytest.mark.asyncio
    async def test_large_limit_is_served(self, client):
        await _create(client)
        response = await client.get("/api/books", params={"limit": 1000})
        assert response.status_code == 200
        assert response.json()["totalPages"] == 1


class TestStoreFailure:
    @pytest.mark.asyncio
    async def test_store_error_maps_to_500(self, client):
        from app.main import app
        from app.routers.books import get_book_store
        from app.services.book_store import BookStore

        class BrokenSession:
            async def execute(self, *args, **kwargs):
                raise OperationalError("SELECT 1", {}, Exception("connection lost"))

        app.dependency_overrides[get_book_store] = lambda: BookStore(BrokenSession())
        response = await client.get("/api/books")
        assert response.status_code == 500
        assert response.json() == {"error": "Server error while fetching books"}


class TestMetrics:
    """Test Prometheus metrics endpoint."""

    @pytest.mark.asyncio
    async def test_metrics_endpoint(self, client):
        await client.get("/api/health")
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert "http_requests_total" in response.text

    @pytest.mark.asyncio
    async def test_unmatched_paths_share_one_label(self, client):
        await client.get("/api/no-such-route-7f3a")
        response = await client.get("/metrics")
        assert 'endpoint="unmatched"' in response.text
        assert "no-such-route-7f3a" not in response.text
