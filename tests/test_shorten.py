"""Shorten endpoint behavior tests."""

import asyncio
from unittest.mock import patch

import pytest
from httpx import AsyncClient

from shortener.dependencies import ServiceManager


@pytest.mark.asyncio
async def test_shorten_valid_url(client: AsyncClient, manager: ServiceManager) -> None:
    response = await client.post("/shorten", json={"url": "https://www.google.com"})
    assert response.status_code == 201
    data = response.json()
    code = data["code"]
    assert len(code) == manager.settings.SHORT_CODE_LENGTH
    assert data["shortUrl"] == f"http://test/{code}"


@pytest.mark.asyncio
async def test_shorten_uses_configured_base_url(client: AsyncClient, manager: ServiceManager) -> None:
    manager.settings.BASE_URL = "https://sho.rt/"
    response = await client.post("/shorten", json={"url": "https://www.google.com", "slug": "g"})
    assert response.status_code == 201
    assert response.json()["shortUrl"] == "https://sho.rt/g"


@pytest.mark.asyncio
async def test_shorten_invalid_url(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "not-a-url"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_url"


@pytest.mark.asyncio
async def test_shorten_empty_url(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": ""})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_url"


@pytest.mark.asyncio
async def test_shorten_missing_url(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"slug": "abc"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_request"


@pytest.mark.asyncio
async def test_shorten_with_custom_slug(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "https://www.github.com", "slug": "my_code-1"})
    assert response.status_code == 201
    assert response.json()["code"] == "my_code-1"


@pytest.mark.asyncio
async def test_shorten_duplicate_slug(client: AsyncClient) -> None:
    await client.post("/shorten", json={"url": "https://www.github.com", "slug": "taken1"})
    response = await client.post("/shorten", json={"url": "https://www.example.com", "slug": "taken1"})
    assert response.status_code == 409
    assert response.json()["error"] == "slug_taken"


@pytest.mark.asyncio
async def test_shorten_slug_with_spaces(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "https://www.github.com", "slug": "has spaces"})
    assert response.status_code == 400
    data = response.json()
    assert data["error"] == "invalid_slug_format"
    assert data["reason"] == "invalid_characters"


@pytest.mark.asyncio
async def test_shorten_slug_too_long(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "https://www.github.com", "slug": "a" * 65})
    assert response.status_code == 400
    assert response.json()["reason"] == "too_long"


@pytest.mark.asyncio
async def test_shorten_reserved_slug(client: AsyncClient) -> None:
    response = await client.post("/shorten", json={"url": "https://www.github.com", "slug": "health"})
    assert response.status_code == 400
    assert response.json()["reason"] == "reserved"


@pytest.mark.asyncio
async def test_shorten_multiple_urls(client: AsyncClient) -> None:
    urls = [
        "https://www.google.com",
        "https://www.github.com",
        "https://www.python.org",
    ]
    codes = set()
    for url in urls:
        response = await client.post("/shorten", json={"url": url})
        assert response.status_code == 201
        codes.add(response.json()["code"])
    # All codes should be unique
    assert len(codes) == 3


@pytest.mark.asyncio
async def test_concurrent_same_slug(client: AsyncClient) -> None:
    responses = await asyncio.gather(
        *(client.post("/shorten", json={"url": f"https://example.com/{i}", "slug": "race"}) for i in range(5))
    )
    statuses = sorted(response.status_code for response in responses)
    assert statuses == [201, 409, 409, 409, 409]


@pytest.mark.asyncio
async def test_shorten_generation_exhausted(client: AsyncClient, manager: ServiceManager) -> None:
    await manager.store.insert_if_absent("samecode", "https://example.com")

    with patch("shortener.service.generate_random", return_value="samecode"):
        response = await client.post("/shorten", json={"url": "https://www.python.org"})

    assert response.status_code == 500
    assert response.json()["error"] == "generation_exhausted"
