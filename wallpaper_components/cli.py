import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from .core import run_gallery
from .state import SessionFactory
from .types import FatalError
from .ui import TerminalUI
from .utils import ensure_url


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Download every wallpaper of an Alphacoders gallery into a folder named after the album.",
    )
    parser.add_argument("url", help="Gallery URL (first listing page)")
    parser.add_argument(
        "-o",
        "--output",
        default=".",
        help="Base directory; the album folder is created inside it",
    )
    parser.add_argument("-w", "--workers", type=int, default=1, help="Pages crawled in parallel")
    parser.add_argument("--timeout", type=int, default=60, help="Request timeout in seconds")
    parser.add_argument(
        "--failed-file",
        default="",
        help="Record failed pages/images to this file (relative paths land in the album folder)",
    )
    parser.add_argument("--no-pretty", action="store_true", help="Disable pretty terminal output")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        gallery_url = ensure_url(args.url)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    workers = max(1, args.workers)
    timeout = max(5, args.timeout)
    ui = TerminalUI(pretty=not args.no_pretty, workers=workers)
    sessions = SessionFactory()
    failed_file = Path(args.failed_file) if args.failed_file else None

    ui.info(f"Gallery: {gallery_url}")
    try:
        counts = run_gallery(
            gallery_url=gallery_url,
            output_root=Path(args.output),
            ui=ui,
            sessions=sessions,
            workers=workers,
            timeout=timeout,
            failed_file=failed_file,
        )
    except FatalError as exc:
        ui.error(f"Unable to continue. {exc}")
        return 1

    ui.info(
        "Summary: "
        f"downloaded={counts.get('downloaded', 0)}, "
        f"skipped={counts.get('skipped', 0)}, "
        f"failed={counts.get('failed', 0)}, "
        f"pages_skipped={counts.get('pages_skipped', 0)}"
    )
    return 0
