"""
Tests for the search API endpoints.
"""

import pytest
from unittest.mock import patch

from searchable.core.config import settings
from searchable.core.exceptions import ConfigurationError


SEARCH_URL = f"{settings.API_V1_STR}/users/search"


class TestRootEndpoints:
    """Test service endpoints."""

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert "running" in response.json()["message"]

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestUserSearch:
    """Test GET /users/search."""

    @pytest.mark.asyncio
    async def test_search_ranks_results(self, client, seeded_users):
        response = await client.get(SEARCH_URL, params={"q": "john"})

        assert response.status_code == 200
        data = response.json()
        assert data["total_matches"] == 4
        assert data["results"][0]["user"]["id"] == "u-john"
        assert data["results"][0]["relevance"] == 150
        relevances = [result["relevance"] for result in data["results"]]
        assert relevances == sorted(relevances, reverse=True)
        assert data["query_info"]["query"] == "john"
        assert data["search_time"] >= 0

    @pytest.mark.asyncio
    async def test_search_matches_post_titles(self, client, seeded_users):
        response = await client.get(SEARCH_URL, params={"q": "johnstown"})

        assert response.status_code == 200
        data = response.json()
        assert [result["user"]["id"] for result in data["results"]] == ["u-ann"]

    @pytest.mark.asyncio
    async def test_entire_text_prioritizes_phrase(self, client, seeded_users):
        response = await client.get(SEARCH_URL, params={"q": "John Doe", "entire_text": "true"})

        assert response.status_code == 200
        results = response.json()["results"]
        assert results[0]["user"]["id"] == "u-doe"
        assert results[0]["relevance"] == 300 + 50 + 25

    @pytest.mark.asyncio
    async def test_entire_text_only(self, client, seeded_users):
        response = await client.get(SEARCH_URL, params={"q": "John Doe", "entire_text_only": "true"})

        assert response.status_code == 200
        assert [result["user"]["id"] for result in response.json()["results"]] == ["u-doe"]

    @pytest.mark.asyncio
    async def test_threshold(self, client, seeded_users):
        response = await client.get(SEARCH_URL, params={"q": "john", "threshold": 100})

        assert response.status_code == 200
        assert [result["user"]["id"] for result in response.json()["results"]] == ["u-john"]

    @pytest.mark.asyncio
    async def test_pagination(self, client, seeded_users):
        response = await client.get(SEARCH_URL, params={"q": "john", "page": 2, "per_page": 3})

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"] == {
            "page": 2,
            "per_page": 3,
            "total_items": 4,
            "total_pages": 2,
            "has_next": False,
            "has_previous": True,
        }
        assert [result["user"]["id"] for result in data["results"]] == ["u-ann"]

    @pytest.mark.asyncio
    async def test_empty_query_returns_nothing(self, client, seeded_users):
        response = await client.get(SEARCH_URL, params={"q": ""})

        assert response.status_code == 200
        assert response.json()["total_matches"] == 0

    @pytest.mark.asyncio
    async def test_entire_text_only_with_empty_query(self, client):
        response = await client.get(SEARCH_URL, params={"q": " ", "entire_text_only": "true"})

        assert response.status_code == 400
        assert "non-empty" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_per_page_limit(self, client):
        response = await client.get(SEARCH_URL, params={"q": "john", "per_page": settings.SEARCH_MAX_PAGE_SIZE + 1})

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_misconfigured_search(self, client):
        with patch("searchable.api.v1.users.search", side_effect=ConfigurationError("broken")):
            response = await client.get(SEARCH_URL, params={"q": "john"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Search is not configured"

    @pytest.mark.asyncio
    async def test_database_failure(self, client):
        with patch("searchable.api.v1.users.paginate", side_effect=RuntimeError("db down")):
            response = await client.get(SEARCH_URL, params={"q": "john"})

        assert response.status_code == 500
        assert response.json()["detail"] == "Search failed"
