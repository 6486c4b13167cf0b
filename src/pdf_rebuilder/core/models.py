# SPDX-License-Identifier: Apache-2.0
"""Data models for page reconstruction.

This module defines the values passed between the fetcher, the annotation
decoder, the page compositor and the document assembler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from PIL import Image

MAX_DOCUMENT_ID = 2**32 - 1

MM_PER_INCH = 25.4
POINTS_PER_INCH = 72.0


@dataclass(frozen=True)
class DocumentHandle:
    """Identifies one remote document instance.

    Attributes:
        document_id: Numeric product identifier (unsigned 32-bit)
        instance_id: Instance identifier (UUID string)
    """

    document_id: int
    instance_id: str

    def __post_init__(self) -> None:
        if not 0 <= self.document_id <= MAX_DOCUMENT_ID:
            raise ValueError(
                f"document_id must be in 0..{MAX_DOCUMENT_ID}, got {self.document_id}"
            )
        if not self.instance_id:
            raise ValueError("instance_id must not be empty")


@dataclass(frozen=True)
class SourceResolution:
    """Fixed rendering resolution of the remote service.

    The pixel-to-millimetre ratio and the declared DPI describe the same
    server-side setting and must change together.

    Attributes:
        pixels_per_mm: Image pixels per millimetre of page
        dpi: Rendering intent declared for page images
    """

    pixels_per_mm: float = 12.0
    dpi: float = 300.0

    def page_size_mm(self, width_px: int, height_px: int) -> tuple[float, float]:
        """Convert pixel dimensions to millimetres."""
        return (width_px / self.pixels_per_mm, height_px / self.pixels_per_mm)

    def page_size_pt(self, width_px: int, height_px: int) -> tuple[float, float]:
        """Convert pixel dimensions to PDF points."""
        width_mm, height_mm = self.page_size_mm(width_px, height_px)
        return (mm_to_pt(width_mm), mm_to_pt(height_mm))


DEFAULT_RESOLUTION = SourceResolution()


def mm_to_pt(value: float) -> float:
    """Convert millimetres to PDF points (1/72 inch)."""
    return value * POINTS_PER_INCH / MM_PER_INCH


def pt_to_mm(value: float) -> float:
    """Convert PDF points to millimetres."""
    return value * MM_PER_INCH / POINTS_PER_INCH


@dataclass
class DecodedImage:
    """Decoded page raster.

    Attributes:
        width: Width in pixels
        height: Height in pixels
        image: Decoded Pillow image
    """

    width: int
    height: int
    image: Image.Image


@dataclass(frozen=True)
class TextMatrix:
    """Text placement matrix [a, b, c, d, e, f].

    Maps text space to page space:
    x' = a*x + c*y + e
    y' = b*x + d*y + f
    """

    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    d: float = 1.0
    e: float = 0.0
    f: float = 0.0

    @classmethod
    def from_sequence(cls, values: list[float] | tuple[float, ...]) -> TextMatrix:
        """Create from a six-element sequence."""
        if len(values) != 6:
            raise ValueError(f"Text matrix needs 6 values, got {len(values)}")
        return cls(*(float(v) for v in values))

    def with_translation(self, x: float, y: float) -> TextMatrix:
        """Return a copy whose translation is replaced by (x, y)."""
        return TextMatrix(self.a, self.b, self.c, self.d, float(x), float(y))

    def to_tuple(self) -> tuple[float, float, float, float, float, float]:
        return (self.a, self.b, self.c, self.d, self.e, self.f)


@dataclass(frozen=True)
class Glyph:
    """One recognized character with its baseline origin.

    Attributes:
        x: Baseline origin X in page space
        y: Baseline origin Y in page space
        unused_a: Third record value, carried through but not used
        unused_b: Fourth record value, carried through but not used
        code_point: Unicode code point
    """

    x: float
    y: float
    unused_a: float
    unused_b: float
    code_point: int

    @property
    def char(self) -> str | None:
        """Character for the code point, or None if it is not a valid scalar."""
        if 0xD800 <= self.code_point <= 0xDFFF:
            return None
        if not 0 <= self.code_point <= 0x10FFFF:
            return None
        return chr(self.code_point)


@dataclass
class GlyphRun:
    """A line or span of glyphs sharing one base matrix."""

    matrix: TextMatrix
    glyphs: list[Glyph] = field(default_factory=list)

    def placements(self) -> list[tuple[TextMatrix, Glyph]]:
        """Per-glyph matrices: the base matrix translated to each glyph origin."""
        return [(self.matrix.with_translation(g.x, g.y), g) for g in self.glyphs]


@dataclass
class AnnotationPage:
    """Text layer of one page, in reading order."""

    runs: list[GlyphRun] = field(default_factory=list)

    @property
    def glyph_count(self) -> int:
        return sum(len(run.glyphs) for run in self.runs)

    def is_empty(self) -> bool:
        return self.glyph_count == 0


@dataclass(frozen=True)
class PageRecord:
    """Summary of one composited output page.

    Attributes:
        index: Page index at the remote service
        width_px: Source image width in pixels
        height_px: Source image height in pixels
        width_mm: Page width in millimetres
        height_mm: Page height in millimetres
        width_pt: Page width in PDF points
        height_pt: Page height in PDF points
        dpi: Declared rendering intent for the page image
        glyph_count: Glyphs written to the text layer
        skipped_glyphs: Glyphs dropped for invalid code points
    """

    index: int
    width_px: int
    height_px: int
    width_mm: float
    height_mm: float
    width_pt: float
    height_pt: float
    dpi: float
    glyph_count: int = 0
    skipped_glyphs: int = 0
