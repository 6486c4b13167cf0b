# SPDX-License-Identifier: Apache-2.0
"""HTTP page fetcher for the paginated asset service."""

from __future__ import annotations

import asyncio
import logging
from typing import Any
from urllib.parse import quote

import aiohttp

from pdf_rebuilder.core.annotations import decode_annotations
from pdf_rebuilder.core.models import AnnotationPage, DocumentHandle
from pdf_rebuilder.fetch.base import ConfigurationError, FetchError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://plus.pearson.com/eplayer/pdfassets/prod1"
DEFAULT_REFERER = "https://plus.pearson.com/"

AUTH_TOKEN_HEADER = "X-Authorization"


def validate_header_value(name: str, value: str) -> str:
    """Check that a value can be sent as an HTTP header field.

    Visible ASCII, horizontal tab and non-ASCII text are accepted; other
    control characters (including CR and LF) and DEL are rejected.

    Args:
        name: Header name, used in the error message
        value: Header value

    Returns:
        The value, unchanged.

    Raises:
        ConfigurationError: If the value contains a forbidden character.
    """
    for position, char in enumerate(value):
        code = ord(char)
        if (code < 0x20 and char != "\t") or code == 0x7F:
            raise ConfigurationError(
                f"Invalid character {char!r} at position {position} in {name} header"
            )
    return value


def build_headers(
    cookie: str,
    auth_token: str | None = None,
    referer: str = DEFAULT_REFERER,
) -> dict[str, str]:
    """Build the default headers sent with every request.

    Args:
        cookie: Value of the Cookie header copied from a browser session
        auth_token: Value of the X-Authorization header (optional)
        referer: Value of the Referer header

    Returns:
        Header mapping for aiohttp.ClientSession.

    Raises:
        ConfigurationError: If the cookie is missing or a value is invalid.
    """
    if not cookie:
        raise ConfigurationError("Cookie is required")

    headers = {
        "Referer": validate_header_value("Referer", referer),
        "Cookie": validate_header_value("Cookie", cookie),
    }
    if auth_token:
        headers[AUTH_TOKEN_HEADER] = validate_header_value(AUTH_TOKEN_HEADER, auth_token)
    return headers


class HttpPageFetcher:
    """Page fetcher backed by aiohttp.

    One session is shared by all requests of a run. Use as an async
    context manager so the session is closed on every exit path.

    Example:
        >>> async with HttpPageFetcher(cookie="...") as fetcher:
        ...     data = await fetcher.fetch_image(handle, 0)
    """

    def __init__(
        self,
        cookie: str,
        auth_token: str | None = None,
        base_url: str = DEFAULT_BASE_URL,
        referer: str = DEFAULT_REFERER,
    ) -> None:
        """Initialize HttpPageFetcher.

        Args:
            cookie: Cookie header value
            auth_token: X-Authorization header value (optional)
            base_url: Asset service base URL
            referer: Referer header value

        Raises:
            ConfigurationError: If the headers cannot be built.
        """
        self._headers = build_headers(cookie, auth_token, referer)
        self._base_url = base_url.rstrip("/")
        self._session: aiohttp.ClientSession | None = None

    @property
    def headers(self) -> dict[str, str]:
        return dict(self._headers)

    async def __aenter__(self) -> HttpPageFetcher:
        await self._ensure_session()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(headers=self._headers)
        return self._session

    def _asset_url(self, handle: DocumentHandle, kind: str, page_index: int) -> str:
        instance = quote(handle.instance_id, safe="")
        return f"{self._base_url}/{handle.document_id}/{instance}/{kind}/page{page_index}"

    def image_url(self, handle: DocumentHandle, page_index: int) -> str:
        return self._asset_url(handle, "pages", page_index)

    def annotations_url(self, handle: DocumentHandle, page_index: int) -> str:
        return self._asset_url(handle, "annotations", page_index)

    async def fetch_image(self, handle: DocumentHandle, page_index: int) -> bytes:
        """Fetch the raw page image.

        The body is returned whatever the status code: past the last page
        the service answers with an error document, which fails to decode
        and ends the run.

        Raises:
            FetchError: On transport failure.
        """
        session = await self._ensure_session()
        url = self.image_url(handle, page_index)
        try:
            async with session.get(url) as response:
                data = await response.read()
                if response.status != 200:
                    logger.debug(
                        "Image request for page %d returned status %d (%d bytes)",
                        page_index,
                        response.status,
                        len(data),
                    )
                return data
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(f"Image request for page {page_index} failed: {e}") from e

    async def fetch_annotations(
        self, handle: DocumentHandle, page_index: int
    ) -> AnnotationPage:
        """Fetch and decode the page annotations.

        Raises:
            FetchError: On transport failure or non-success status.
            AnnotationDecodeError: If the payload cannot be decoded.
        """
        session = await self._ensure_session()
        url = self.annotations_url(handle, page_index)
        try:
            async with session.get(url) as response:
                if not 200 <= response.status < 300:
                    raise FetchError(
                        f"Annotation request for page {page_index} failed "
                        f"(status {response.status})",
                        status=response.status,
                    )
                payload = await response.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise FetchError(
                f"Annotation request for page {page_index} failed: {e}"
            ) from e

        return decode_annotations(payload)

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session:
            await self._session.close()
            self._session = None
