import html
from typing import Optional

import pytest
import requests

from wallpaper_components.types import ImageDescriptor
from wallpaper_components.ui import TerminalUI
from wallpaper_components.utils import build_download_url


class FakeResponse:
    def __init__(
        self,
        content: bytes = b"",
        status_code: int = 200,
        chunk_size: int = 4,
        fail_after_chunks: Optional[int] = None,
        failure: Optional[BaseException] = None,
        headers: Optional[dict] = None,
    ):
        self.content = content
        self.status_code = status_code
        self.headers = {"Content-Length": str(len(content))} if headers is None else headers
        self.chunk_size = chunk_size
        self.fail_after_chunks = fail_after_chunks
        self.failure = failure or requests.ConnectionError("connection reset")
        self.closed = False

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)

    def iter_content(self, chunk_size: int = 1):
        for n, start in enumerate(range(0, len(self.content), self.chunk_size)):
            if self.fail_after_chunks is not None and n >= self.fail_after_chunks:
                raise self.failure
            yield self.content[start : start + self.chunk_size]

    def close(self) -> None:
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class FakeSession:
    """Serves canned responses by exact URL; unknown URLs fail like a dead host."""

    def __init__(self, routes: Optional[dict] = None):
        self.routes = dict(routes or {})
        self.calls: list[str] = []

    def get(self, url, timeout=None, stream=False, **kwargs):
        self.calls.append(url)
        route = self.routes.get(url)
        if route is None:
            raise requests.ConnectionError(f"cannot reach {url}")
        if isinstance(route, Exception):
            raise route
        if isinstance(route, bytes):
            return FakeResponse(route)
        return route


class StaticSessions:
    def __init__(self, session: FakeSession):
        self.session = session

    def get(self) -> FakeSession:
        return self.session


def gallery_html(
    title: Optional[str] = "Mountain Lakes",
    page_info: Optional[str] = "1 2 3 ... / 2",
    items: tuple = (),
) -> bytes:
    parts = ["<html><head><title>Wallpapers</title></head><body>"]
    if title is not None:
        parts.append(f'<h1 class="title">  {html.escape(title)}  </h1>')
    if page_info is not None:
        parts.append(f'<a class="btn btn-info btn-lg" href="#">{html.escape(page_info)}</a>')
    for attrs in items:
        rendered = " ".join(f'{k}="{html.escape(v)}"' for k, v in attrs.items())
        parts.append(
            f'<a class="btn btn-primary btn-block download-button" {rendered}>Download</a>'
        )
    parts.append("</body></html>")
    return "".join(parts).encode("utf-8")


def item_attrs(data_id: str, server: str = "2", data_type: str = "jpg") -> dict:
    return {"data-id": data_id, "data-server": server, "data-type": data_type}


def image_url(data_id: str, server: str = "2", data_type: str = "jpg") -> str:
    return build_download_url(ImageDescriptor(id=data_id, server=server, type=data_type))


@pytest.fixture
def ui() -> TerminalUI:
    return TerminalUI(pretty=False, workers=1)
