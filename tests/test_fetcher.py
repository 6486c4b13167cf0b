# SPDX-License-Identifier: Apache-2.0
"""Tests for page fetchers."""

from __future__ import annotations

import json
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from pdf_rebuilder.core.errors import AnnotationFormatError, NestedAnnotationError
from pdf_rebuilder.core.models import DocumentHandle
from pdf_rebuilder.fetch import (
    ConfigurationError,
    FetcherError,
    FetchError,
    HttpPageFetcher,
    PageFetcher,
    build_headers,
    validate_header_value,
)
from pdf_rebuilder.fetch.http import DEFAULT_BASE_URL, DEFAULT_REFERER


def mock_session_returning(status: int, body: bytes) -> MagicMock:
    """Session whose get() yields a response with the given status and body."""
    mock_response = AsyncMock()
    mock_response.status = status
    mock_response.read = AsyncMock(return_value=body)

    mock_session = MagicMock()
    mock_session.get = MagicMock(return_value=AsyncMock())
    mock_session.get.return_value.__aenter__ = AsyncMock(return_value=mock_response)
    mock_session.get.return_value.__aexit__ = AsyncMock(return_value=None)
    return mock_session


def mock_session_raising(error: Exception) -> MagicMock:
    mock_session = MagicMock()
    mock_session.get = MagicMock(side_effect=error)
    return mock_session


def annotation_body(inner: Any) -> bytes:
    return json.dumps({"TextPageData": json.dumps(inner)}).encode("utf-8")


class TestExceptions:
    """Test exception hierarchy."""

    def test_fetch_error_inherits_from_fetcher_error(self) -> None:
        assert issubclass(FetchError, FetcherError)

    def test_configuration_error_inherits_from_fetcher_error(self) -> None:
        assert issubclass(ConfigurationError, FetcherError)

    def test_fetch_error_status(self) -> None:
        assert FetchError("nope", status=404).status == 404
        assert FetchError("nope").status is None


class TestHeaders:
    """Tests for header construction."""

    def test_default_headers(self) -> None:
        headers = build_headers("session=abc; other=1")
        assert headers == {
            "Referer": DEFAULT_REFERER,
            "Cookie": "session=abc; other=1",
        }

    def test_auth_token_header(self) -> None:
        headers = build_headers("session=abc", auth_token="Bearer xyz")
        assert headers["X-Authorization"] == "Bearer xyz"

    def test_empty_auth_token_is_omitted(self) -> None:
        assert "X-Authorization" not in build_headers("session=abc", auth_token="")

    def test_missing_cookie(self) -> None:
        with pytest.raises(ConfigurationError, match="Cookie is required"):
            build_headers("")

    @pytest.mark.parametrize("value", ["a\r\nInjected: 1", "a\nb", "a\x00b", "a\x7fb", "\x1b[0m"])
    def test_invalid_cookie_characters(self, value: str) -> None:
        with pytest.raises(ConfigurationError, match="Cookie"):
            build_headers(value)

    def test_invalid_auth_token_characters(self) -> None:
        with pytest.raises(ConfigurationError, match="X-Authorization"):
            build_headers("session=abc", auth_token="tok\ren")

    @pytest.mark.parametrize("value", ["plain", "with\ttab", "a=b; c=d", "café"])
    def test_valid_values(self, value: str) -> None:
        assert validate_header_value("Cookie", value) == value

    def test_fetcher_fails_fast_on_invalid_header(self) -> None:
        with pytest.raises(ConfigurationError):
            HttpPageFetcher(cookie="a=b\r\n")


class TestHttpPageFetcher:
    """Tests for HttpPageFetcher."""

    def test_implements_protocol(self) -> None:
        assert isinstance(HttpPageFetcher(cookie="a=b"), PageFetcher)

    def test_urls(self, handle: DocumentHandle) -> None:
        fetcher = HttpPageFetcher(cookie="a=b")
        prefix = f"{DEFAULT_BASE_URL}/123456/{handle.instance_id}"
        assert fetcher.image_url(handle, 0) == f"{prefix}/pages/page0"
        assert fetcher.annotations_url(handle, 17) == f"{prefix}/annotations/page17"

    def test_custom_base_url(self, handle: DocumentHandle) -> None:
        fetcher = HttpPageFetcher(cookie="a=b", base_url="http://localhost:8080/assets/")
        assert fetcher.image_url(handle, 3).startswith("http://localhost:8080/assets/123456/")

    @pytest.mark.asyncio
    async def test_session_lifecycle(self) -> None:
        fetcher = HttpPageFetcher(cookie="a=b", auth_token="tok")
        async with fetcher:
            assert fetcher._session is not None
            assert fetcher._session.headers["Cookie"] == "a=b"
            assert fetcher._session.headers["X-Authorization"] == "tok"
        assert fetcher._session is None

    @pytest.mark.asyncio
    async def test_enter_reuses_existing_session(self) -> None:
        fetcher = HttpPageFetcher(cookie="a=b")
        session = await fetcher._ensure_session()

        async with fetcher:
            assert fetcher._session is session

        assert session.closed
        assert fetcher._session is None

    @pytest.mark.asyncio
    async def test_fetch_image(self, handle: DocumentHandle) -> None:
        fetcher = HttpPageFetcher(cookie="a=b")
        fetcher._session = mock_session_returning(200, b"\x89PNG...")

        data = await fetcher.fetch_image(handle, 4)

        assert data == b"\x89PNG..."
        fetcher._session.get.assert_called_once_with(fetcher.image_url(handle, 4))

    @pytest.mark.asyncio
    async def test_fetch_image_error_status_returns_body(self, handle: DocumentHandle) -> None:
        """Past the last page the body is returned and fails to decode later."""
        fetcher = HttpPageFetcher(cookie="a=b")
        fetcher._session = mock_session_returning(403, b"<Error>AccessDenied</Error>")

        assert await fetcher.fetch_image(handle, 999) == b"<Error>AccessDenied</Error>"

    @pytest.mark.asyncio
    async def test_fetch_image_transport_error(self, handle: DocumentHandle) -> None:
        fetcher = HttpPageFetcher(cookie="a=b")
        fetcher._session = mock_session_raising(aiohttp.ClientConnectionError("reset"))

        with pytest.raises(FetchError, match="page 2"):
            await fetcher.fetch_image(handle, 2)

    @pytest.mark.asyncio
    async def test_fetch_annotations(self, handle: DocumentHandle) -> None:
        fetcher = HttpPageFetcher(cookie="a=b")
        inner = {"texts": [{"mt": [12, 0, 0, 12, 0, 0], "cs": [[1, 2, 3, 4, 65]]}]}
        fetcher._session = mock_session_returning(200, annotation_body(inner))

        page = await fetcher.fetch_annotations(handle, 1)

        assert page.glyph_count == 1
        assert page.runs[0].glyphs[0].char == "A"
        fetcher._session.get.assert_called_once_with(fetcher.annotations_url(handle, 1))

    @pytest.mark.asyncio
    async def test_fetch_annotations_error_status(self, handle: DocumentHandle) -> None:
        fetcher = HttpPageFetcher(cookie="a=b")
        fetcher._session = mock_session_returning(401, b"Unauthorized")

        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch_annotations(handle, 1)
        assert exc_info.value.status == 401

    @pytest.mark.asyncio
    async def test_fetch_annotations_transport_error(self, handle: DocumentHandle) -> None:
        fetcher = HttpPageFetcher(cookie="a=b")
        fetcher._session = mock_session_raising(aiohttp.ClientPayloadError("cut"))

        with pytest.raises(FetchError):
            await fetcher.fetch_annotations(handle, 1)

    @pytest.mark.asyncio
    async def test_fetch_annotations_outer_decode_error(self, handle: DocumentHandle) -> None:
        fetcher = HttpPageFetcher(cookie="a=b")
        fetcher._session = mock_session_returning(200, b'{"Other": 1}')

        with pytest.raises(AnnotationFormatError):
            await fetcher.fetch_annotations(handle, 1)

    @pytest.mark.asyncio
    async def test_fetch_annotations_nested_decode_error(self, handle: DocumentHandle) -> None:
        fetcher = HttpPageFetcher(cookie="a=b")
        fetcher._session = mock_session_returning(200, b'{"TextPageData": "not json"}')

        with pytest.raises(NestedAnnotationError):
            await fetcher.fetch_annotations(handle, 1)

    @pytest.mark.asyncio
    async def test_close(self) -> None:
        fetcher = HttpPageFetcher(cookie="a=b")
        mock_session = MagicMock()
        mock_session.close = AsyncMock()
        fetcher._session = mock_session

        await fetcher.close()

        mock_session.close.assert_awaited_once()
        assert fetcher._session is None
