# SPDX-License-Identifier: Apache-2.0
"""Document assembler.

Drives the page index from 0 upward:

- BOOTSTRAPPING: page 0 image only, a decode failure is fatal.
- STREAMING: image and annotations of the current index fetched
  concurrently and joined before the next index is requested. The first
  image that fails to decode ends the document.
- FINISHED: the assembled document is written through the output sink.
- ABORTED: the first fatal error propagates; nothing is written.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

import pypdfium2 as pdfium  # type: ignore[import-untyped]

from pdf_rebuilder.core.compositor import DEFAULT_FONT_NAME, OutputDocument
from pdf_rebuilder.core.errors import ImageDecodeError
from pdf_rebuilder.core.image_decoder import decode_image
from pdf_rebuilder.core.models import (
    DEFAULT_RESOLUTION,
    AnnotationPage,
    DecodedImage,
    DocumentHandle,
    PageRecord,
    SourceResolution,
)
from pdf_rebuilder.fetch.base import PageFetcher
from pdf_rebuilder.pipeline.errors import SinkError
from pdf_rebuilder.pipeline.progress import ProgressCallback
from pdf_rebuilder.pipeline.sink import DEFAULT_TITLE, write_document

logger = logging.getLogger(__name__)

# Page indices are unsigned 32-bit at the service
MAX_PAGE_INDEX = 2**32 - 1

SAVE_MESSAGE = "Saving the document. This may take a while."


class AssemblyState(str, Enum):
    """States of the page assembly loop."""

    BOOTSTRAPPING = "bootstrapping"
    STREAMING = "streaming"
    FINISHED = "finished"
    ABORTED = "aborted"


@dataclass
class AssemblerConfig:
    """Document assembler configuration."""

    resolution: SourceResolution = DEFAULT_RESOLUTION

    # Exclusive upper bound of page indices to request
    max_page_index: int = MAX_PAGE_INDEX

    font_name: str = DEFAULT_FONT_NAME
    title: str | None = DEFAULT_TITLE


@dataclass
class AssemblyResult:
    """Document assembly result."""

    output_path: Path
    page_count: int
    pages: tuple[PageRecord, ...] = ()


def page_message(page_count: int) -> str:
    """Progress line for a composited page (1-based count)."""
    return f"Downloaded page {page_count:04d}."


class DocumentAssembler:
    """Assembles a remote paginated document into one PDF."""

    def __init__(
        self,
        fetcher: PageFetcher,
        config: AssemblerConfig | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> None:
        """Initialize DocumentAssembler.

        Args:
            fetcher: Configured page source, shared for the whole run
            config: Assembly configuration
            progress_callback: Receives one "page" event per composited page
                and one "save" event before serialization
        """
        self._fetcher = fetcher
        self._config = config or AssemblerConfig()
        self._progress_callback = progress_callback
        self._state = AssemblyState.BOOTSTRAPPING

    @property
    def state(self) -> AssemblyState:
        return self._state

    async def run(
        self,
        handle: DocumentHandle,
        output_path: Union[Path, str],
    ) -> AssemblyResult:
        """Assemble the whole document and write it to output_path.

        The output file is only touched after every page has been assembled.

        Raises:
            FetchError: On transport failure or failed annotation request.
            DecodeError: If the first page does not decode, or annotations
                of an existing page do not decode.
            SinkError: If the document cannot be written.
        """
        with OutputDocument(self._config.resolution, self._config.font_name) as document:
            page_count = await self.assemble(handle, document)
            self._notify("save", page_count, page_count, SAVE_MESSAGE)
            try:
                pdf_bytes = document.to_bytes()
            except pdfium.PdfiumError as e:
                raise SinkError("Failed to serialize document", cause=e) from e
            pages = document.pages

        path = write_document(pdf_bytes, output_path, title=self._config.title)
        logger.info("Assembled %d pages into %s", page_count, path)
        return AssemblyResult(output_path=path, page_count=page_count, pages=pages)

    async def assemble(self, handle: DocumentHandle, document: OutputDocument) -> int:
        """Run the assembly state machine into a caller-owned document.

        Returns:
            Number of pages appended.
        """
        self._state = AssemblyState.BOOTSTRAPPING
        try:
            await self._bootstrap(handle, document)
            index = 1
            while self._state is AssemblyState.STREAMING:
                if index >= self._config.max_page_index:
                    logger.warning("Reached page index limit %d", index)
                    self._state = AssemblyState.FINISHED
                    break
                self._state = await self._stream_page(handle, document, index)
                index += 1
        except Exception:
            self._state = AssemblyState.ABORTED
            raise
        return document.page_count

    async def _bootstrap(self, handle: DocumentHandle, document: OutputDocument) -> None:
        logger.debug("Fetching first page of %s", handle)
        data = await self._fetcher.fetch_image(handle, 0)
        # A document has at least one page: failure here is fatal
        image = decode_image(data)
        self._composite(document, 0, image, None)
        self._state = AssemblyState.STREAMING

    async def _stream_page(
        self,
        handle: DocumentHandle,
        document: OutputDocument,
        index: int,
    ) -> AssemblyState:
        image_result, annotation_result = await asyncio.gather(
            self._fetcher.fetch_image(handle, index),
            self._fetcher.fetch_annotations(handle, index),
            return_exceptions=True,
        )

        if isinstance(image_result, BaseException):
            raise image_result

        try:
            image = decode_image(image_result)
        except ImageDecodeError as e:
            logger.debug("Page %d image did not decode (%s); end of document", index, e)
            if isinstance(annotation_result, BaseException):
                logger.debug(
                    "Discarding annotation error for page %d: %s", index, annotation_result
                )
            return AssemblyState.FINISHED

        # The page exists, so a missing text layer is fatal
        if isinstance(annotation_result, BaseException):
            raise annotation_result

        self._composite(document, index, image, annotation_result)
        return AssemblyState.STREAMING

    def _composite(
        self,
        document: OutputDocument,
        index: int,
        image: DecodedImage,
        annotations: AnnotationPage | None,
    ) -> None:
        document.add_page(index, image, annotations)
        count = document.page_count
        self._notify("page", count, None, page_message(count))

    def _notify(self, stage: str, current: int, total: int | None, message: str = "") -> None:
        if self._progress_callback is None:
            return
        self._progress_callback(stage, current, total, message)
