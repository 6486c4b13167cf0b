# SPDX-License-Identifier: Apache-2.0
"""Rebuild paginated page-image documents into searchable PDFs."""

__version__ = "0.1.0"
