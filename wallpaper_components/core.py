import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

import requests
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from .markup import AlphacodersMarkup, GalleryMarkup
from .state import FailedLinkLogger, SessionFactory
from .types import (
    CHUNK_SIZE,
    HTML_PARSER,
    DownloadError,
    ExistingFileError,
    ExtractionError,
    FatalError,
    FetchError,
    GalleryReference,
    ImageDescriptor,
)
from .ui import TerminalUI
from .utils import build_download_url, build_output_path, clean_path_component, normalize_gallery_url


def fetch_page(session: requests.Session, url: str, timeout: int) -> BeautifulSoup:
    try:
        r = session.get(url, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as exc:
        raise FetchError(f"Could not download the HTML of {url}: {exc}") from exc
    try:
        return BeautifulSoup(r.content, HTML_PARSER)
    except ParserRejectedMarkup as exc:
        raise FetchError(f"Could not parse the HTML of {url}: {exc}") from exc


def load_gallery(
    session: requests.Session,
    gallery_url: str,
    timeout: int,
    markup: GalleryMarkup,
) -> GalleryReference:
    base_url = normalize_gallery_url(gallery_url)
    doc = fetch_page(session, base_url, timeout=timeout)
    total_pages = markup.extract_total_pages(doc)
    title = clean_path_component(markup.extract_title(doc), fallback="gallery")
    return GalleryReference(base_url=base_url, total_pages=total_pages, title=title)


def parse_content_length(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    try:
        length = int(value.strip())
    except ValueError:
        return None
    return length if length > 0 else None


def download_image(
    session: requests.Session,
    item: ImageDescriptor,
    out_dir: Path,
    timeout: int,
    ui: TerminalUI,
) -> Path:
    """Fetch one image into ``out_dir/<id>.<type>``.

    The target is claimed with an exclusive create before anything is
    requested, so an existing file is never touched. The body is streamed
    into a ``.part`` sibling (also created exclusively) and moved over the
    claimed name only once it is complete. Whatever interrupts the
    download, both files are removed again.
    """
    url = build_download_url(item)
    out_path = build_output_path(out_dir, item)
    try:
        out_path.open("xb").close()
    except FileExistsError as exc:
        raise ExistingFileError(f"{out_path.name} already exists") from exc
    except OSError as exc:
        raise DownloadError(f"Could not open output file {out_path}: {exc}") from exc

    tmp_path = out_path.with_name(out_path.name + ".part")
    key = out_path.name
    tmp_created = False
    completed = False
    ui.info(f"Downloading image to {out_path.name}")
    try:
        with tmp_path.open("xb") as f:
            tmp_created = True
            with session.get(url, stream=True, timeout=timeout) as r:
                r.raise_for_status()
                total = parse_content_length(r.headers.get("Content-Length"))
                downloaded = 0
                started_at = time.monotonic()
                speed_bps = 0.0
                for chunk in r.iter_content(chunk_size=CHUNK_SIZE):
                    if not chunk:
                        continue
                    f.write(chunk)
                    downloaded += len(chunk)
                    elapsed = time.monotonic() - started_at
                    if elapsed > 0:
                        speed_bps = downloaded / elapsed
                    ui.progress(key, current=downloaded, total=total, speed_bps=speed_bps)
                ui.progress(key, current=downloaded, total=total or downloaded, speed_bps=speed_bps, force=True)
        tmp_path.replace(out_path)
        completed = True
    except Exception as exc:
        raise DownloadError(f"Unable to download image url {url}: {exc}") from exc
    finally:
        if not completed:
            # an existing .part we did not create is left alone
            if tmp_created:
                tmp_path.unlink(missing_ok=True)
            out_path.unlink(missing_ok=True)
        ui.finish_progress_line(key)
    return out_path


def process_page(
    sessions: SessionFactory,
    ui: TerminalUI,
    gallery: GalleryReference,
    page: int,
    out_dir: Path,
    timeout: int,
    markup: GalleryMarkup,
    failed_logger: Optional[FailedLinkLogger],
) -> dict[str, int]:
    counts = {"downloaded": 0, "skipped": 0, "failed": 0, "pages_skipped": 0}
    session = sessions.get()
    page_url = gallery.page_url(page)
    try:
        doc = fetch_page(session, page_url, timeout=timeout)
    except FetchError as exc:
        ui.error(f"Skipped page {page}; {exc}")
        if failed_logger:
            failed_logger.add(gallery_url=gallery.base_url, page=page, reason=str(exc))
        counts["pages_skipped"] += 1
        return counts

    items = markup.extract_items(doc)
    ui.info(f"Page {page}/{gallery.total_pages}: found {len(items)} image(s)")
    for item in items:
        try:
            out_path = download_image(session, item, out_dir, timeout=timeout, ui=ui)
        except ExistingFileError as exc:
            ui.warn(f"Skipped image {item.id}; {exc}")
            counts["skipped"] += 1
            continue
        except DownloadError as exc:
            ui.error(
                f"Skipped image id={item.id} server={item.server} type={item.type}; {exc}"
            )
            if failed_logger:
                failed_logger.add(
                    gallery_url=gallery.base_url,
                    page=page,
                    reason=str(exc),
                    item_id=item.id,
                    filename=build_output_path(out_dir, item).name,
                    download_url=build_download_url(item),
                )
            counts["failed"] += 1
            continue
        ui.ok(f"{item.id} saved -> {out_path.name}")
        counts["downloaded"] += 1
    return counts


def run_gallery(
    gallery_url: str,
    output_root: Path,
    ui: TerminalUI,
    sessions: SessionFactory,
    workers: int = 1,
    timeout: int = 60,
    markup: Optional[GalleryMarkup] = None,
    failed_file: Optional[Path] = None,
) -> dict[str, int]:
    """Crawl every page of one gallery and download its images.

    Raises FatalError when the gallery cannot be crawled at all; single
    pages and images that fail are reported and counted instead.
    """
    markup = markup or AlphacodersMarkup()
    counts = {"downloaded": 0, "skipped": 0, "failed": 0, "pages_skipped": 0}

    try:
        gallery = load_gallery(sessions.get(), gallery_url, timeout=timeout, markup=markup)
    except FetchError as exc:
        raise FatalError(str(exc)) from exc
    except ExtractionError as exc:
        raise FatalError(f"Could not read gallery metadata: {exc}") from exc

    out_dir = output_root / gallery.title
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FatalError(f"Could not create output directory {out_dir}: {exc}") from exc
    ui.info(f"Album '{gallery.title}': {gallery.total_pages} page(s), saving to {out_dir}")

    failed_logger = None
    if failed_file is not None:
        failed_path = failed_file if failed_file.is_absolute() else out_dir / failed_file
        failed_logger = FailedLinkLogger(failed_path)

    pages = range(1, gallery.total_pages + 1)
    if workers == 1:
        for page in pages:
            page_counts = process_page(
                sessions=sessions,
                ui=ui,
                gallery=gallery,
                page=page,
                out_dir=out_dir,
                timeout=timeout,
                markup=markup,
                failed_logger=failed_logger,
            )
            for k, v in page_counts.items():
                counts[k] = counts.get(k, 0) + v
    else:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(
                    process_page,
                    sessions,
                    ui,
                    gallery,
                    page,
                    out_dir,
                    timeout,
                    markup,
                    failed_logger,
                )
                for page in pages
            ]
            for future in as_completed(futures):
                try:
                    page_counts = future.result()
                except Exception as exc:
                    ui.error(f"Worker error: {exc}")
                    page_counts = {"pages_skipped": 1}
                for k, v in page_counts.items():
                    counts[k] = counts.get(k, 0) + v

    return counts
