# SPDX-License-Identifier: Apache-2.0
"""Decode error definitions."""

from __future__ import annotations


class DecodeError(Exception):
    """Base exception for payloads that cannot be decoded."""

    def __init__(self, message: str, detail: str | None = None) -> None:
        super().__init__(message if detail is None else f"{message}: {detail}")
        self.detail = detail


class ImageDecodeError(DecodeError):
    """Page image bytes are not a valid raster."""


class AnnotationDecodeError(DecodeError):
    """Annotation payload cannot be decoded."""


class AnnotationFormatError(AnnotationDecodeError):
    """Outer annotation payload is malformed."""


class NestedAnnotationError(AnnotationDecodeError):
    """Nested TextPageData payload is malformed."""
