# SPDX-License-Identifier: Apache-2.0
"""
PDF Rebuilder - CLI Tool

Downloads every page image of a remote document together with its text
annotations and rebuilds them into one searchable PDF.

Usage:
    rebuild-pdf -c <cookie> -p <product-id> -u <uuid> [options]

Examples:
    rebuild-pdf -c "$COOKIE" -p 123456 -u 0f1e2d3c-...      # Writes out.pdf
    rebuild-pdf -c "$COOKIE" -p 123456 -u 0f1e... -o book.pdf
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import NoReturn

from pdf_rebuilder.core.models import MAX_DOCUMENT_ID, DocumentHandle
from pdf_rebuilder.fetch.base import ConfigurationError
from pdf_rebuilder.fetch.http import DEFAULT_BASE_URL, HttpPageFetcher
from pdf_rebuilder.pipeline.assembler import AssemblerConfig, DocumentAssembler
from pdf_rebuilder.pipeline.sink import DEFAULT_TITLE

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_PATH = "out.pdf"

COOKIE_ENV_VAR = "PDF_REBUILDER_COOKIE"
AUTH_TOKEN_ENV_VAR = "PDF_REBUILDER_AUTH_TOKEN"


def product_id_type(value: str) -> int:
    """Parse an unsigned 32-bit product id."""
    try:
        product_id = int(value, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid product id: {value!r}") from None
    if not 0 <= product_id <= MAX_DOCUMENT_ID:
        raise argparse.ArgumentTypeError(
            f"product id must be between 0 and {MAX_DOCUMENT_ID}: {value}"
        )
    return product_id


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument Namespace.
    """
    parser = argparse.ArgumentParser(
        prog="rebuild-pdf",
        description="Rebuild a paginated online document into a searchable PDF",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=f"""
Examples:
  %(prog)s -c "$COOKIE" -p 123456 -u <uuid>               # Writes out.pdf
  %(prog)s -c "$COOKIE" -p 123456 -u <uuid> -o book.pdf   # Specify output file

Environment Variables:
  {COOKIE_ENV_VAR}      Cookie header value (instead of --cookie)
  {AUTH_TOKEN_ENV_VAR}  X-Authorization header value (instead of --auth-token)
""",
    )

    # Credentials
    parser.add_argument(
        "-c",
        "--cookie",
        help=f"Value of the Cookie header, copied from the browser (or set {COOKIE_ENV_VAR})",
    )
    parser.add_argument(
        "-a",
        "--auth-token",
        help=(
            "Value of the X-Authorization header. Only needed for links "
            f"(or set {AUTH_TOKEN_ENV_VAR})"
        ),
    )

    # Document
    parser.add_argument(
        "-p",
        "--product-id",
        type=product_id_type,
        required=True,
        help="Product id of the book",
    )
    parser.add_argument(
        "-u",
        "--uuid",
        required=True,
        help="UUID of the book",
    )

    # Output options
    parser.add_argument(
        "-o",
        "--output-path",
        type=Path,
        default=Path(DEFAULT_OUTPUT_PATH),
        help=f"Output file path (default: {DEFAULT_OUTPUT_PATH})",
    )
    parser.add_argument(
        "--title",
        default=DEFAULT_TITLE,
        help=f"Document title metadata (default: {DEFAULT_TITLE})",
    )
    parser.add_argument(
        "--base-url",
        default=DEFAULT_BASE_URL,
        help=f"Asset service base URL (default: {DEFAULT_BASE_URL})",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose output",
    )

    args = parser.parse_args(argv)
    if not args.uuid.strip():
        parser.error("argument -u/--uuid: must not be empty")
    return args


def print_progress(stage: str, current: int, total: int | None, message: str = "") -> None:
    """Print progress messages to stdout."""
    if message:
        print(message, flush=True)


def create_fetcher(args: argparse.Namespace) -> HttpPageFetcher:
    """Create the HTTP fetcher from arguments and environment.

    Raises:
        ConfigurationError: If the cookie is missing or a header value is invalid.
    """
    cookie = args.cookie or os.environ.get(COOKIE_ENV_VAR, "")
    if not cookie:
        raise ConfigurationError(
            f"Cookie is required. Set --cookie option or {COOKIE_ENV_VAR} environment variable."
        )
    auth_token = args.auth_token or os.environ.get(AUTH_TOKEN_ENV_VAR) or None
    return HttpPageFetcher(cookie=cookie, auth_token=auth_token, base_url=args.base_url)


async def run(args: argparse.Namespace) -> int:
    """Execute the rebuild.

    Args:
        args: Command line arguments.

    Returns:
        Exit code (0: success, 1: failure).
    """
    try:
        fetcher = create_fetcher(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    handle = DocumentHandle(document_id=args.product_id, instance_id=args.uuid)
    config = AssemblerConfig(title=args.title or None)
    assembler = DocumentAssembler(fetcher, config, progress_callback=print_progress)

    try:
        async with fetcher:
            result = await assembler.run(handle, args.output_path)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    print(f"Complete: {result.output_path} ({result.page_count} pages)")
    return 0


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point."""
    args = parse_args(argv)

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.WARNING
    logging.basicConfig(level=log_level, format="%(levelname)s: %(message)s")

    exit_code = asyncio.run(run(args))
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
