import html
import re
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from .types import DOWNLOAD_URL_TEMPLATE, INVALID_FS_CHARS, ImageDescriptor


def clean_filename(name: str, fallback: str) -> str:
    name = html.unescape(name or "").strip()
    name = re.sub(r"\s+", " ", name)
    name = INVALID_FS_CHARS.sub("_", name).strip(" .")
    return name or fallback


def clean_path_component(name: str, fallback: str) -> str:
    name = clean_filename(name, fallback="")
    if not name or name in {".", ".."}:
        return fallback
    return name


def ensure_url(url: str) -> str:
    url = url.strip()
    if not url:
        raise ValueError("Empty URL")
    parsed = urlparse(url)
    if not parsed.scheme:
        url = "https://" + url
        parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"Invalid URL: {url}")
    return url


def normalize_gallery_url(url: str) -> str:
    """Make sure ``&page=N`` can be appended to ``url``.

    Only looks for the ``?`` delimiter; scheme, host and existing
    parameters are left alone.
    """
    if "?" in url:
        return url
    return url + "?"


def build_download_url(item: ImageDescriptor) -> str:
    return DOWNLOAD_URL_TEMPLATE.format(id=item.id, server=item.server, type=item.type)


def build_output_path(out_dir: Path, item: ImageDescriptor) -> Path:
    return out_dir / clean_filename(f"{item.id}.{item.type}", fallback=f"{item.id}.bin")


def human_bytes(value: Optional[float]) -> str:
    if value is None:
        return "?"
    value = float(max(0.0, value))
    units = ["B", "KB", "MB", "GB", "TB"]
    idx = 0
    while value >= 1024 and idx < len(units) - 1:
        value /= 1024.0
        idx += 1
    return f"{value:.2f}{units[idx]}"
