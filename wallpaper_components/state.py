import threading
import time
from pathlib import Path
from typing import Optional

import requests

from .types import USER_AGENT


class SessionFactory:
    def __init__(self):
        self.local = threading.local()

    def get(self) -> requests.Session:
        session = getattr(self.local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update({"User-Agent": USER_AGENT})
            self.local.session = session
        return session


class FailedLinkLogger:
    """Tab-separated record of every page or image that could not be fetched."""

    HEADER = "timestamp\tgallery_url\tpage\titem_id\tfilename\treason\tdownload_url\n"

    def __init__(self, path: Path):
        self.path = path
        self.lock = threading.Lock()
        self.header_written = path.exists() and path.stat().st_size > 0
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @staticmethod
    def _safe(value: Optional[object]) -> str:
        if value is None:
            return ""
        return str(value).replace("\t", " ").replace("\r", " ").replace("\n", " ").strip()

    def add(
        self,
        gallery_url: str,
        page: int,
        reason: str,
        item_id: Optional[str] = None,
        filename: Optional[str] = None,
        download_url: Optional[str] = None,
    ) -> None:
        ts = time.strftime("%Y-%m-%d %H:%M:%S")
        fields = [
            ts,
            self._safe(gallery_url),
            self._safe(page),
            self._safe(item_id),
            self._safe(filename),
            self._safe(reason),
            self._safe(download_url),
        ]
        line = "\t".join(fields) + "\n"
        with self.lock:
            with self.path.open("a", encoding="utf-8") as f:
                if not self.header_written:
                    f.write(self.HEADER)
                    self.header_written = True
                f.write(line)
