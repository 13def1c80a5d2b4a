"""
Main Input Handler Module.

Sources voucher images for the pipeline. An image can come from the
external image store (by storage reference), from a URL, from a local
file, or already base64-encoded. Whatever the source, the result is an
ImagePayload holding base64 JPEG data.

Usage:
    from voucher_ocr.input_handler import ImageLoader, LocalImageStore

    loader = ImageLoader(store=LocalImageStore("data/images"))
    payload = loader.load_storage("kg2f7x.jpg")
    payload = loader.load_url("https://example.com/voucher.jpg")
"""

import base64
import binascii
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

import requests

from config import get_config
from voucher_ocr.utils.logger import get_logger
from voucher_ocr.utils.helpers import image_digest
from voucher_ocr.utils.exceptions import CorruptedImageError, ImageFetchError
from .image_processor import ImageProcessor

# Initialize module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class ImagePayload:
    """
    Image ready to be sent for extraction.

    Attributes:
        image_b64: Base64-encoded JPEG
        source: Human-readable origin (path, URL, storage ref)
        digest: SHA-256 of the JPEG bytes
    """
    image_b64: str
    source: str
    digest: str

    def __repr__(self) -> str:
        return f"ImagePayload(source='{self.source}', digest={self.digest[:12]})"


class ImageStore(ABC):
    """Read access to the external binary image storage."""

    @abstractmethod
    def read(self, ref: str) -> bytes:
        """Return the bytes stored under ref, raising ImageFetchError if absent."""


class LocalImageStore(ImageStore):
    """
    Image store backed by a local directory; references are relative paths.

    Example:
        >>> store = LocalImageStore("data/images")
        >>> store.read("2025/12/voucher-001.jpg")
    """

    def __init__(self, root: Optional[Union[str, Path]] = None) -> None:
        self.root = Path(root or get_config("paths.image_storage", "data/images")).resolve()

    def read(self, ref: str) -> bytes:
        path = (self.root / ref).resolve()

        if self.root not in path.parents:
            raise ImageFetchError(ref, "reference escapes the storage root")
        if not path.is_file():
            raise ImageFetchError(ref, "not found in image storage")

        return path.read_bytes()


class ImageLoader:
    """
    Loads images from any supported source into an ImagePayload.

    Attributes:
        store: ImageStore used for storage references
        fetch_timeout: Timeout in seconds for URL downloads
        processor: ImageProcessor used to validate and normalise bytes
    """

    def __init__(self, store: Optional[ImageStore] = None, fetch_timeout: Optional[float] = None) -> None:
        self.store = store
        self.fetch_timeout = fetch_timeout if fetch_timeout is not None else get_config("input.fetch_timeout", 20)
        self.processor = ImageProcessor()

    def load_bytes(self, image_bytes: bytes, source: str = "<bytes>") -> ImagePayload:
        """Validate raw bytes and wrap them as base64 JPEG."""
        jpeg_bytes = self.processor.to_jpeg(image_bytes, source)
        return ImagePayload(
            image_b64=base64.b64encode(jpeg_bytes).decode('ascii'),
            source=source,
            digest=image_digest(jpeg_bytes)
        )

    def load_base64(self, image_b64: str, source: str = "<base64>") -> ImagePayload:
        """Decode, validate and re-wrap an already base64-encoded image."""
        try:
            image_bytes = base64.b64decode(image_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CorruptedImageError(source, f"invalid base64: {e}")
        return self.load_bytes(image_bytes, source)

    def load_file(self, path: Union[str, Path]) -> ImagePayload:
        """Load an image from a local file."""
        path = Path(path)
        if not path.is_file():
            raise ImageFetchError(str(path), "file not found")
        return self.load_bytes(path.read_bytes(), str(path))

    def load_url(self, url: str) -> ImagePayload:
        """
        Download an image.

        Raises:
            ImageFetchError: Transport failure, timeout or non-2xx status.
        """
        logger.debug(f"Fetching image: {url}")
        try:
            response = requests.get(url, timeout=self.fetch_timeout)
        except requests.RequestException as e:
            raise ImageFetchError(url, str(e))

        if not 200 <= response.status_code < 300:
            raise ImageFetchError(url, f"HTTP {response.status_code}")

        return self.load_bytes(response.content, url)

    def load_storage(self, ref: str) -> ImagePayload:
        """
        Load an image from the configured image store.

        Raises:
            ImageFetchError: No store configured or reference not found.
        """
        if self.store is None:
            raise ImageFetchError(ref, "no image store configured")
        return self.load_bytes(self.store.read(ref), ref)
