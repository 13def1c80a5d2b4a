"""
Input Handler Module for the Voucher OCR System.

Sources voucher images (storage reference, URL, file, base64) and
normalises them to base64 JPEG payloads.
"""

from .handler import ImageLoader, ImagePayload, ImageStore, LocalImageStore
from .image_processor import ImageProcessor

__all__ = ['ImageLoader', 'ImagePayload', 'ImageStore', 'LocalImageStore', 'ImageProcessor']
