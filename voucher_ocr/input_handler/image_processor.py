"""
Image Processor Module.

Checks that a payload is a decodable image and makes sure what is sent
to the extraction service really is a JPEG, since the request declares
image/jpeg. JPEG input is passed through byte-for-byte; other formats
(PNG, WebP, ...) are re-encoded. No enhancement is applied.
"""

import io

from PIL import Image, UnidentifiedImageError

from config import get_config
from voucher_ocr.utils.logger import get_logger
from voucher_ocr.utils.exceptions import CorruptedImageError

# Initialize module logger
logger = get_logger(__name__)


class ImageProcessor:
    """
    Validates image payloads and normalises them to JPEG.

    Attributes:
        max_image_bytes: Largest accepted payload
        jpeg_quality: Quality used when re-encoding

    Example:
        >>> processor = ImageProcessor()
        >>> jpeg_bytes = processor.to_jpeg(png_bytes, "voucher.png")
    """

    def __init__(self) -> None:
        self.max_image_bytes = get_config("input.max_image_bytes", 10485760)
        self.jpeg_quality = get_config("input.jpeg_quality", 90)

    def to_jpeg(self, image_bytes: bytes, source: str) -> bytes:
        """
        Validate image bytes and return them as JPEG.

        Args:
            image_bytes: Raw image file contents.
            source: Where the bytes came from, for error messages.

        Returns:
            JPEG bytes (the input itself if it already is a JPEG).

        Raises:
            CorruptedImageError: Empty, oversized or undecodable payload.
        """
        if not image_bytes:
            raise CorruptedImageError(source, "empty payload")
        if len(image_bytes) > self.max_image_bytes:
            raise CorruptedImageError(
                source,
                f"payload is {len(image_bytes)} bytes (limit {self.max_image_bytes})"
            )

        try:
            with Image.open(io.BytesIO(image_bytes)) as image:
                image_format = image.format
                image.load()

                if image_format == 'JPEG':
                    return image_bytes

                logger.debug(f"Re-encoding {image_format} image from {source} as JPEG")
                buffer = io.BytesIO()
                image.convert('RGB').save(buffer, format='JPEG', quality=self.jpeg_quality)
                return buffer.getvalue()

        except (UnidentifiedImageError, OSError) as e:
            raise CorruptedImageError(source, str(e))
