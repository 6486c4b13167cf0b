# SPDX-License-Identifier: Apache-2.0
"""Progress callback protocol for document assembly."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ProgressCallback(Protocol):
    """Progress callback protocol.

    ``total`` is None while the page count is still unknown.
    """

    def __call__(
        self,
        stage: str,
        current: int,
        total: int | None,
        message: str = "",
    ) -> None: ...
