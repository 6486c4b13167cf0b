# SPDX-License-Identifier: Apache-2.0
"""Core decoding and page compositing modules."""

from .annotations import decode_annotations, decode_text_page_data
from .compositor import OutputDocument
from .errors import (
    AnnotationDecodeError,
    AnnotationFormatError,
    DecodeError,
    ImageDecodeError,
    NestedAnnotationError,
)
from .image_decoder import decode_image
from .models import (
    DEFAULT_RESOLUTION,
    AnnotationPage,
    DecodedImage,
    DocumentHandle,
    Glyph,
    GlyphRun,
    PageRecord,
    SourceResolution,
    TextMatrix,
)

__all__ = [
    "AnnotationDecodeError",
    "AnnotationFormatError",
    "AnnotationPage",
    "DEFAULT_RESOLUTION",
    "DecodeError",
    "DecodedImage",
    "DocumentHandle",
    "Glyph",
    "GlyphRun",
    "ImageDecodeError",
    "NestedAnnotationError",
    "OutputDocument",
    "PageRecord",
    "SourceResolution",
    "TextMatrix",
    "decode_annotations",
    "decode_image",
    "decode_text_page_data",
]
