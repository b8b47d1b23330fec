import re
from typing import Callable

from bs4 import BeautifulSoup, Tag

from .types import ExtractionError, ImageDescriptor


def exact_class(class_attr: str) -> Callable[[Tag], bool]:
    """Match tags whose class attribute is exactly ``class_attr``; extra classes do not match."""
    wanted = class_attr.split()
    return lambda tag: tag.get("class") == wanted


class GalleryMarkup:
    """Reads gallery metadata and image descriptors out of a parsed page.

    A new gallery site only needs a subclass; the crawler never looks at
    markup directly.
    """

    def extract_title(self, doc: BeautifulSoup) -> str:
        raise NotImplementedError

    def extract_total_pages(self, doc: BeautifulSoup) -> int:
        raise NotImplementedError

    def extract_items(self, doc: BeautifulSoup) -> list[ImageDescriptor]:
        raise NotImplementedError


class AlphacodersMarkup(GalleryMarkup):
    TITLE_SELECTOR = "h1.title"
    PAGE_INFO_CLASS = "btn btn-info btn-lg"
    DOWNLOAD_BUTTON_CLASS = "btn btn-primary btn-block download-button"
    PAGE_COUNT_PATTERN = re.compile(r"/\s*([0-9]+)")
    ITEM_ATTRS = ("data-id", "data-server", "data-type")

    def extract_title(self, doc: BeautifulSoup) -> str:
        node = doc.select_one(self.TITLE_SELECTOR)
        if node is None:
            raise ExtractionError("Album title not found on the first page")
        title = node.get_text(" ", strip=True)
        if not title:
            raise ExtractionError("Album title is empty")
        return title

    def extract_total_pages(self, doc: BeautifulSoup) -> int:
        node = doc.find(exact_class(self.PAGE_INFO_CLASS))
        if node is None:
            raise ExtractionError("Page count not found on the first page (html error)")
        text = node.get_text(" ", strip=True)
        matches = self.PAGE_COUNT_PATTERN.findall(text)
        if not matches:
            raise ExtractionError(f"Cannot read the page count from {text!r}")
        total = int(matches[-1])
        if total < 1:
            raise ExtractionError(f"Gallery reports {total} pages")
        return total

    def extract_items(self, doc: BeautifulSoup) -> list[ImageDescriptor]:
        items: list[ImageDescriptor] = []
        for button in doc.find_all(exact_class(self.DOWNLOAD_BUTTON_CLASS)):
            values = [button.get(attr) for attr in self.ITEM_ATTRS]
            # decorative buttons come without the data attributes
            if not all(isinstance(v, str) and v for v in values):
                continue
            data_id, data_server, data_type = values
            items.append(ImageDescriptor(id=data_id, server=data_server, type=data_type))
        return items
