# SPDX-License-Identifier: Apache-2.0
"""Output sink: document information and atomic file write.

The serialized document is stamped with document information using pikepdf
and written to a temporary file next to the destination, which then replaces
the destination in one step. A failed write leaves no file behind.
"""

from __future__ import annotations

import logging
import os
import tempfile
from io import BytesIO
from pathlib import Path
from typing import Union

import pikepdf  # type: ignore[import-untyped]

from pdf_rebuilder.pipeline.errors import SinkError

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Pearson Plus"
PRODUCER = "pdf-rebuilder"


def write_document(
    pdf_bytes: bytes,
    output_path: Union[Path, str],
    title: str | None = DEFAULT_TITLE,
) -> Path:
    """Write a serialized PDF to its destination.

    Args:
        pdf_bytes: Complete PDF produced by OutputDocument.to_bytes()
        output_path: Destination file path
        title: Document title; None leaves the title unset

    Returns:
        The destination path.

    Raises:
        SinkError: If the document cannot be opened or written.
    """
    path = Path(output_path)
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with pikepdf.open(BytesIO(pdf_bytes)) as pdf:
            if title:
                pdf.docinfo["/Title"] = title
            pdf.docinfo["/Producer"] = PRODUCER

            with tempfile.NamedTemporaryFile(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as f:
                tmp_path = Path(f.name)
            pdf.save(tmp_path)

        os.replace(tmp_path, path)
        tmp_path = None
    except (OSError, pikepdf.PdfError) as e:
        raise SinkError(f"Failed to write {path}", cause=e) from e
    finally:
        if tmp_path is not None:
            tmp_path.unlink(missing_ok=True)

    logger.info("Wrote %s (%d bytes before metadata)", path, len(pdf_bytes))
    return path
