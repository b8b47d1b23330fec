from dataclasses import dataclass
import re


USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/122.0.0.0 Safari/537.36"
)
INVALID_FS_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1F]+')
DOWNLOAD_URL_TEMPLATE = "https://initiate.alphacoders.com/download/wallpaper/{id}/{server}/{type}"
HTML_PARSER = "lxml"
CHUNK_SIZE = 1024 * 512


class GalleryError(Exception):
    pass


class FetchError(GalleryError):
    pass


class ExtractionError(GalleryError):
    pass


class DownloadError(GalleryError):
    pass


class ExistingFileError(DownloadError):
    pass


class FatalError(GalleryError):
    pass


@dataclass(frozen=True)
class GalleryReference:
    base_url: str
    total_pages: int
    title: str

    def page_url(self, page: int) -> str:
        return f"{self.base_url}&page={page}"


@dataclass(frozen=True)
class ImageDescriptor:
    id: str
    server: str
    type: str
