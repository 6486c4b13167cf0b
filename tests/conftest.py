# SPDX-License-Identifier: Apache-2.0
"""Shared fixtures: in-memory page images and a scripted page fetcher."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Callable
from io import BytesIO
from typing import Any, Union

import pytest
from PIL import Image

from pdf_rebuilder.core.models import AnnotationPage, DocumentHandle, Glyph, GlyphRun, TextMatrix

# What the asset service returns for a page past the end of the document
MISSING_PAGE_BODY = b'<?xml version="1.0"?><Error><Code>AccessDenied</Code></Error>'


def make_png(
    width: int,
    height: int,
    color: Any = (255, 255, 255),
    mode: str = "RGB",
) -> bytes:
    """Encode a solid-color PNG."""
    buffer = BytesIO()
    Image.new(mode, (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_run(text: str, x: float = 10.0, y: float = 20.0, size: float = 12.0) -> GlyphRun:
    """One baseline of glyphs spaced 8 units apart."""
    glyphs = [Glyph(x + 8.0 * i, y, 0.0, 0.0, ord(ch)) for i, ch in enumerate(text)]
    return GlyphRun(matrix=TextMatrix(size, 0.0, 0.0, size, 0.0, 0.0), glyphs=glyphs)


PageValue = Union[bytes, Exception]
AnnotationValue = Union[AnnotationPage, Exception]


class StubFetcher:
    """Scripted PageFetcher.

    Pages not listed in ``images`` answer with MISSING_PAGE_BODY, pages not
    listed in ``annotations`` with an empty AnnotationPage. Tracks requests
    in flight to check the concurrency model.
    """

    def __init__(
        self,
        images: dict[int, PageValue],
        annotations: dict[int, AnnotationValue] | None = None,
        latency: Callable[[str, int], float] | None = None,
    ) -> None:
        self.images = images
        self.annotations = annotations or {}
        self.latency = latency
        self.calls: list[tuple[str, int]] = []
        self.in_flight: list[int] = []
        self.max_in_flight = 0
        self.max_indices_in_flight = 0
        self.entered = False
        self.exited = False

    async def __aenter__(self) -> StubFetcher:
        self.entered = True
        return self

    async def __aexit__(self, *args: Any) -> None:
        self.exited = True

    async def _request(self, kind: str, index: int) -> None:
        self.calls.append((kind, index))
        self.in_flight.append(index)
        self.max_in_flight = max(self.max_in_flight, len(self.in_flight))
        self.max_indices_in_flight = max(self.max_indices_in_flight, len(set(self.in_flight)))
        try:
            delay = self.latency(kind, index) if self.latency else 0.0
            await asyncio.sleep(delay)
        finally:
            self.in_flight.remove(index)

    async def fetch_image(self, handle: DocumentHandle, page_index: int) -> bytes:
        await self._request("image", page_index)
        value = self.images.get(page_index, MISSING_PAGE_BODY)
        if isinstance(value, Exception):
            raise value
        return value

    async def fetch_annotations(
        self, handle: DocumentHandle, page_index: int
    ) -> AnnotationPage:
        await self._request("annotations", page_index)
        value = self.annotations.get(page_index, AnnotationPage())
        if isinstance(value, Exception):
            raise value
        return value


def random_latency(seed: int = 1234) -> Callable[[str, int], float]:
    """Random per-request latency of up to 5 ms, reproducible by seed."""
    rng = random.Random(seed)
    return lambda kind, index: rng.uniform(0.0, 0.005)


@pytest.fixture
def handle() -> DocumentHandle:
    return DocumentHandle(document_id=123456, instance_id="0f1e2d3c-4b5a-6978-8796-a5b4c3d2e1f0")


@pytest.fixture
def png_factory() -> Callable[..., bytes]:
    return make_png


@pytest.fixture
def run_factory() -> Callable[..., GlyphRun]:
    return make_run


@pytest.fixture
def stub_fetcher_cls() -> type[StubFetcher]:
    return StubFetcher


@pytest.fixture
def latency_factory() -> Callable[..., Callable[[str, int], float]]:
    return random_latency
