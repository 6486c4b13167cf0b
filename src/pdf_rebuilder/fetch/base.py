# SPDX-License-Identifier: Apache-2.0
"""Base classes and protocols for page fetchers."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pdf_rebuilder.core.models import AnnotationPage, DocumentHandle


class FetcherError(Exception):
    """Base exception for fetcher module."""

    pass


class FetchError(FetcherError):
    """Transport failure or non-success response.

    Fatal for the run; fetchers never retry.
    """

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class ConfigurationError(FetcherError):
    """Configuration error (missing cookie, invalid header value, etc.).

    Raised before any request is made.
    """

    pass


@runtime_checkable
class PageFetcher(Protocol):
    """Protocol definition for page sources.

    All fetcher implementations must conform to this protocol.
    """

    async def fetch_image(self, handle: DocumentHandle, page_index: int) -> bytes:
        """Fetch the raw raster of one page.

        Args:
            handle: Remote document
            page_index: 0-based page index

        Returns:
            Raw response body. Bytes that are not an image mark the end
            of the document.

        Raises:
            FetchError: On transport failure.
        """
        ...

    async def fetch_annotations(
        self, handle: DocumentHandle, page_index: int
    ) -> AnnotationPage:
        """Fetch and decode the text layer of one page.

        Args:
            handle: Remote document
            page_index: 0-based page index

        Returns:
            Decoded AnnotationPage.

        Raises:
            FetchError: On transport failure or non-success status.
            AnnotationDecodeError: If the payload cannot be decoded.
        """
        ...
