# SPDX-License-Identifier: Apache-2.0
"""Annotation payload decoder.

The annotation endpoint returns a JSON object whose ``TextPageData`` field is
itself a JSON document serialized into a string::

    {"TextPageData": "{\\"texts\\": [{\\"mt\\": [...], \\"cs\\": [[x, y, a, b, cp], ...]}]}"}

The payload is therefore parsed twice. Failures of the outer object raise
AnnotationFormatError, failures of the nested document raise
NestedAnnotationError.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .errors import AnnotationFormatError, NestedAnnotationError
from .models import AnnotationPage, Glyph, GlyphRun, TextMatrix

logger = logging.getLogger(__name__)

TEXT_PAGE_DATA_KEY = "TextPageData"
TEXTS_KEY = "texts"
MATRIX_KEY = "mt"
STREAM_KEY = "cs"

GLYPH_RECORD_SIZE = 5
MAX_CODE_POINT = 2**32 - 1


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _load_json(payload: str | bytes) -> Any:
    if isinstance(payload, bytes):
        payload = payload.decode("utf-8")
    return json.loads(payload)


def _parse_glyph(record: Any, run_index: int, glyph_index: int) -> Glyph:
    where = f"texts[{run_index}].cs[{glyph_index}]"
    if not isinstance(record, list) or len(record) != GLYPH_RECORD_SIZE:
        raise NestedAnnotationError(
            "Invalid glyph record", f"{where} must be a list of {GLYPH_RECORD_SIZE} values"
        )
    x, y, unused_a, unused_b, code_point = record
    if not all(_is_number(v) for v in (x, y, unused_a, unused_b)):
        raise NestedAnnotationError("Invalid glyph record", f"{where} has non-numeric position")
    if (
        not isinstance(code_point, int)
        or isinstance(code_point, bool)
        or not 0 <= code_point <= MAX_CODE_POINT
    ):
        raise NestedAnnotationError(
            "Invalid glyph record", f"{where} code point {code_point!r} is not an unsigned integer"
        )
    return Glyph(
        x=float(x),
        y=float(y),
        unused_a=float(unused_a),
        unused_b=float(unused_b),
        code_point=code_point,
    )


def _parse_run(entry: Any, run_index: int) -> GlyphRun:
    if not isinstance(entry, dict):
        raise NestedAnnotationError("Invalid text run", f"texts[{run_index}] must be an object")

    matrix = entry.get(MATRIX_KEY)
    if (
        not isinstance(matrix, list)
        or len(matrix) != 6
        or not all(_is_number(v) for v in matrix)
    ):
        raise NestedAnnotationError(
            "Invalid text run", f"texts[{run_index}].mt must be a list of 6 numbers"
        )

    stream = entry.get(STREAM_KEY)
    if not isinstance(stream, list):
        raise NestedAnnotationError("Invalid text run", f"texts[{run_index}].cs must be a list")

    glyphs = [_parse_glyph(record, run_index, i) for i, record in enumerate(stream)]
    return GlyphRun(matrix=TextMatrix.from_sequence(matrix), glyphs=glyphs)


def decode_text_page_data(text_page_data: str) -> AnnotationPage:
    """Decode the nested TextPageData document.

    Args:
        text_page_data: Serialized JSON string taken from the outer payload

    Returns:
        AnnotationPage with one GlyphRun per ``texts`` entry

    Raises:
        NestedAnnotationError: If the document is not valid JSON or has the wrong shape
    """
    try:
        data = json.loads(text_page_data)
    except json.JSONDecodeError as e:
        raise NestedAnnotationError("TextPageData is not valid JSON", str(e)) from e

    if not isinstance(data, dict):
        raise NestedAnnotationError("TextPageData must be a JSON object")
    texts = data.get(TEXTS_KEY)
    if not isinstance(texts, list):
        raise NestedAnnotationError(f"TextPageData.{TEXTS_KEY} must be a list")

    return AnnotationPage(runs=[_parse_run(entry, i) for i, entry in enumerate(texts)])


def decode_annotations(payload: str | bytes) -> AnnotationPage:
    """Decode a raw annotation response body.

    Args:
        payload: Response body of the annotation endpoint

    Returns:
        Decoded AnnotationPage

    Raises:
        AnnotationFormatError: If the outer object is malformed
        NestedAnnotationError: If the nested TextPageData document is malformed
    """
    try:
        outer = _load_json(payload)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise AnnotationFormatError("Annotation payload is not valid JSON", str(e)) from e

    if not isinstance(outer, dict):
        raise AnnotationFormatError("Annotation payload must be a JSON object")
    if TEXT_PAGE_DATA_KEY not in outer:
        raise AnnotationFormatError(f"Annotation payload has no {TEXT_PAGE_DATA_KEY} field")
    text_page_data = outer[TEXT_PAGE_DATA_KEY]
    if not isinstance(text_page_data, str):
        raise AnnotationFormatError(
            f"{TEXT_PAGE_DATA_KEY} must be a string, got {type(text_page_data).__name__}"
        )

    page = decode_text_page_data(text_page_data)
    logger.debug("Decoded %d text runs, %d glyphs", len(page.runs), page.glyph_count)
    return page
