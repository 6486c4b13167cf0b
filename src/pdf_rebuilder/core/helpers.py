# SPDX-License-Identifier: Apache-2.0
"""Helper functions for pypdfium2 raw API operations.

This module provides ctypes conversion utilities required for
pypdfium2's low-level PDFium API.
"""

from __future__ import annotations

import ctypes
from typing import Any

import pypdfium2 as pdfium  # type: ignore[import-untyped]

from .models import TextMatrix


def to_widestring(text: str) -> ctypes.Array:
    """Convert Python string to FPDF_WIDESTRING (UTF-16LE + null terminator).

    Characters outside the BMP become surrogate pairs.

    Args:
        text: Python string to convert

    Returns:
        ctypes array of c_ushort, suitable for FPDFText_SetText
    """
    encoded = text.encode("utf-16-le")
    units = [int.from_bytes(encoded[i : i + 2], "little") for i in range(0, len(encoded), 2)]
    units.append(0)
    return (ctypes.c_ushort * len(units))(*units)


def matrix_args(matrix: TextMatrix) -> tuple[ctypes.c_double, ...]:
    """Convert a TextMatrix to the six c_double arguments of FPDFPageObj_Transform."""
    return tuple(ctypes.c_double(v) for v in matrix.to_tuple())


def transform_object(obj_handle: Any, matrix: TextMatrix) -> None:
    """Apply a matrix to a raw page object handle.

    A freshly created object has the identity matrix, so this sets the
    object's matrix to exactly ``matrix``.
    """
    pdfium.raw.FPDFPageObj_Transform(obj_handle, *matrix_args(matrix))
