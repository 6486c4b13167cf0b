# SPDX-License-Identifier: Apache-2.0
"""Page fetcher modules.

Usage:
    from pdf_rebuilder.fetch import HttpPageFetcher
    async with HttpPageFetcher(cookie="...") as fetcher:
        data = await fetcher.fetch_image(handle, 0)
"""

from pdf_rebuilder.fetch.base import (
    ConfigurationError,
    FetchError,
    FetcherError,
    PageFetcher,
)
from pdf_rebuilder.fetch.http import HttpPageFetcher, build_headers, validate_header_value

__all__ = [
    "ConfigurationError",
    "FetchError",
    "FetcherError",
    "HttpPageFetcher",
    "PageFetcher",
    "build_headers",
    "validate_header_value",
]
