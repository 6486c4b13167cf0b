# SPDX-License-Identifier: Apache-2.0
"""Page compositing using pypdfium2.

Each output page is sized from its own image, carries the image as a
full-page background and an invisible text layer of individually positioned
glyphs on top. The text layer is present for selection, search and copy but
is never painted.
"""

from __future__ import annotations

import ctypes
import logging
from io import BytesIO
from typing import Any, Optional

import pypdfium2 as pdfium  # type: ignore[import-untyped]
from PIL import Image

from .helpers import to_widestring, transform_object
from .models import (
    DEFAULT_RESOLUTION,
    AnnotationPage,
    DecodedImage,
    GlyphRun,
    PageRecord,
    SourceResolution,
)

logger = logging.getLogger(__name__)

# PDFium text render mode: neither fill nor stroke
FPDF_TEXTRENDERMODE_INVISIBLE = 3

DEFAULT_FONT_NAME = "Times-Roman"

# Glyph size comes from the run matrix, so the object font size stays at 1
TEXT_FONT_SIZE = 1.0

WHITE = (255, 255, 255)


def _to_rgb(image: Image.Image) -> Image.Image:
    """Flatten an image onto white and convert to RGB for PdfBitmap.from_pil."""
    has_alpha = image.mode in ("RGBA", "LA", "PA") or (
        image.mode == "P" and "transparency" in image.info
    )
    if has_alpha:
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, WHITE)
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    if image.mode != "RGB":
        return image.convert("RGB")
    return image


class OutputDocument:
    """Append-only PDF under construction.

    Pages are appended in strictly increasing index order and never removed
    or reordered.

    Example:
        >>> with OutputDocument() as document:
        ...     document.add_page(0, decode_image(png_bytes))
        ...     pdf_bytes = document.to_bytes()
    """

    def __init__(
        self,
        resolution: SourceResolution = DEFAULT_RESOLUTION,
        font_name: str = DEFAULT_FONT_NAME,
    ) -> None:
        """Initialize an empty output document.

        Args:
            resolution: Source rendering resolution used for page geometry
            font_name: Standard PDF font for the invisible text layer
        """
        self._resolution = resolution
        self._font_name = font_name
        self._pdf: Optional[pdfium.PdfDocument] = pdfium.PdfDocument.new()
        self._font_handle: Any = None
        self._pages: list[PageRecord] = []

    def __enter__(self) -> OutputDocument:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        """Close the PDF document and release resources."""
        if self._font_handle is not None:
            pdfium.raw.FPDFFont_Close(self._font_handle)
            self._font_handle = None
        if self._pdf is not None:
            self._pdf.close()
            self._pdf = None

    @property
    def page_count(self) -> int:
        return len(self._pages)

    @property
    def pages(self) -> tuple[PageRecord, ...]:
        return tuple(self._pages)

    @property
    def resolution(self) -> SourceResolution:
        return self._resolution

    def _ensure_open(self) -> pdfium.PdfDocument:
        if self._pdf is None:
            raise RuntimeError("Output document is closed")
        return self._pdf

    def _load_font(self) -> Any:
        """Load the text layer font once per document."""
        if self._font_handle is None:
            pdf = self._ensure_open()
            handle = pdfium.raw.FPDFText_LoadStandardFont(
                pdf.raw, self._font_name.encode("utf-8")
            )
            if not handle:
                raise RuntimeError(f"Failed to load standard font {self._font_name!r}")
            self._font_handle = handle
        return self._font_handle

    def add_page(
        self,
        index: int,
        image: DecodedImage,
        annotations: AnnotationPage | None = None,
    ) -> PageRecord:
        """Composite one page and append it.

        Args:
            index: Page index at the remote service
            image: Decoded page raster
            annotations: Text layer; None or empty for an image-only page

        Returns:
            PageRecord describing the appended page

        Raises:
            ValueError: If index does not follow the previous page
        """
        pdf = self._ensure_open()
        if self._pages and index <= self._pages[-1].index:
            raise ValueError(
                f"Page {index} appended after page {self._pages[-1].index}"
            )

        width_mm, height_mm = self._resolution.page_size_mm(image.width, image.height)
        width_pt, height_pt = self._resolution.page_size_pt(image.width, image.height)

        page = pdf.new_page(width_pt, height_pt)
        try:
            self._draw_image(page, image, width_pt, height_pt)
            written, skipped = 0, 0
            if annotations is not None:
                written, skipped = self._draw_text_layer(page, annotations)
            page.gen_content()
        finally:
            page.close()

        if skipped:
            logger.info("Page %d: skipped %d invalid code points", index, skipped)

        record = PageRecord(
            index=index,
            width_px=image.width,
            height_px=image.height,
            width_mm=width_mm,
            height_mm=height_mm,
            width_pt=width_pt,
            height_pt=height_pt,
            dpi=self._resolution.dpi,
            glyph_count=written,
            skipped_glyphs=skipped,
        )
        self._pages.append(record)
        logger.debug(
            "Composited page %d: %dx%d px -> %.2fx%.2f mm, %d glyphs",
            index,
            image.width,
            image.height,
            width_mm,
            height_mm,
            written,
        )
        return record

    def _draw_image(
        self,
        page: pdfium.PdfPage,
        image: DecodedImage,
        width_pt: float,
        height_pt: float,
    ) -> None:
        """Insert the page image scaled to fill the page."""
        pdf = self._ensure_open()
        bitmap = pdfium.PdfBitmap.from_pil(_to_rgb(image.image))
        image_obj = pdfium.PdfImage.new(pdf)
        image_obj.set_bitmap(bitmap)
        # Image space is the unit square
        image_obj.set_matrix(pdfium.PdfMatrix().scale(width_pt, height_pt))
        page.insert_obj(image_obj)
        bitmap.close()

    def _draw_text_layer(
        self,
        page: pdfium.PdfPage,
        annotations: AnnotationPage,
    ) -> tuple[int, int]:
        """Insert every glyph as an invisible text object.

        Returns:
            Tuple of (glyphs written, glyphs skipped)
        """
        written = 0
        skipped = 0
        for run in annotations.runs:
            run_written, run_skipped = self._draw_run(page, run)
            written += run_written
            skipped += run_skipped
        return written, skipped

    def _draw_run(self, page: pdfium.PdfPage, run: GlyphRun) -> tuple[int, int]:
        pdf = self._ensure_open()
        font_handle = self._load_font()
        written = 0
        skipped = 0

        for matrix, glyph in run.placements():
            char = glyph.char
            if char is None:
                skipped += 1
                continue

            text_obj = pdfium.raw.FPDFPageObj_CreateTextObj(
                pdf.raw, font_handle, ctypes.c_float(TEXT_FONT_SIZE)
            )
            if not text_obj:
                raise RuntimeError("Failed to create text object")

            if not pdfium.raw.FPDFText_SetText(text_obj, to_widestring(char)):
                pdfium.raw.FPDFPageObj_Destroy(text_obj)
                skipped += 1
                continue

            pdfium.raw.FPDFTextObj_SetTextRenderMode(text_obj, FPDF_TEXTRENDERMODE_INVISIBLE)
            transform_object(text_obj, matrix)
            pdfium.raw.FPDFPage_InsertObject(page.raw, text_obj)
            written += 1

        return written, skipped

    def to_bytes(self) -> bytes:
        """Serialize the document as PDF bytes."""
        buffer = BytesIO()
        pdf = self._ensure_open()
        pdf.save(buffer)
        return buffer.getvalue()
