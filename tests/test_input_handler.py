import base64
from unittest import mock

import pytest
import requests

from voucher_ocr.input_handler import ImageLoader, ImageProcessor, LocalImageStore
from voucher_ocr.utils.exceptions import CorruptedImageError, ImageFetchError
from voucher_ocr.utils.helpers import image_digest


class TestImageProcessor:

    def test_jpeg_passes_through_unchanged(self, jpeg_bytes):
        assert ImageProcessor().to_jpeg(jpeg_bytes, "voucher.jpg") == jpeg_bytes

    def test_png_is_reencoded(self, image_factory):
        png = image_factory(image_format="PNG")
        converted = ImageProcessor().to_jpeg(png, "voucher.png")

        assert converted != png
        assert converted[:2] == b"\xff\xd8"

    @pytest.mark.parametrize("payload", [b"", b"definitely not an image"])
    def test_undecodable(self, payload):
        with pytest.raises(CorruptedImageError):
            ImageProcessor().to_jpeg(payload, "upload")

    def test_size_limit(self, jpeg_bytes):
        processor = ImageProcessor()
        processor.max_image_bytes = 10

        with pytest.raises(CorruptedImageError):
            processor.to_jpeg(jpeg_bytes, "voucher.jpg")


class TestLocalImageStore:

    def test_read(self, tmp_path, jpeg_bytes):
        (tmp_path / "2025").mkdir()
        (tmp_path / "2025" / "v1.jpg").write_bytes(jpeg_bytes)

        assert LocalImageStore(tmp_path).read("2025/v1.jpg") == jpeg_bytes

    def test_missing(self, tmp_path):
        with pytest.raises(ImageFetchError):
            LocalImageStore(tmp_path).read("nope.jpg")

    def test_traversal_refused(self, tmp_path, jpeg_bytes):
        (tmp_path / "outside.jpg").write_bytes(jpeg_bytes)
        root = tmp_path / "store"
        root.mkdir()

        with pytest.raises(ImageFetchError):
            LocalImageStore(root).read("../outside.jpg")


class TestImageLoader:

    def test_load_bytes(self, jpeg_bytes, jpeg_b64):
        payload = ImageLoader().load_bytes(jpeg_bytes, "upload")

        assert payload.image_b64 == jpeg_b64
        assert payload.digest == image_digest(jpeg_bytes)
        assert payload.source == "upload"

    def test_load_base64(self, jpeg_b64):
        assert ImageLoader().load_base64(jpeg_b64).image_b64 == jpeg_b64

    def test_load_base64_invalid(self):
        with pytest.raises(CorruptedImageError):
            ImageLoader().load_base64("%%% not base64 %%%")

    def test_load_file(self, tmp_path, jpeg_bytes):
        path = tmp_path / "voucher.jpg"
        path.write_bytes(jpeg_bytes)

        assert ImageLoader().load_file(path).digest == image_digest(jpeg_bytes)

    def test_load_file_missing(self, tmp_path):
        with pytest.raises(ImageFetchError):
            ImageLoader().load_file(tmp_path / "voucher.jpg")

    @mock.patch("voucher_ocr.input_handler.handler.requests.get")
    def test_load_url(self, mock_get, jpeg_bytes):
        mock_get.return_value = mock.MagicMock(status_code=200, content=jpeg_bytes)

        payload = ImageLoader(fetch_timeout=7).load_url("https://cdn.example.com/v.jpg")

        mock_get.assert_called_once_with("https://cdn.example.com/v.jpg", timeout=7)
        assert base64.b64decode(payload.image_b64) == jpeg_bytes

    @mock.patch("voucher_ocr.input_handler.handler.requests.get")
    def test_load_url_http_error(self, mock_get):
        mock_get.return_value = mock.MagicMock(status_code=404, content=b"")

        with pytest.raises(ImageFetchError) as exc_info:
            ImageLoader().load_url("https://cdn.example.com/v.jpg")
        assert exc_info.value.details["reason"] == "HTTP 404"

    @mock.patch("voucher_ocr.input_handler.handler.requests.get")
    def test_load_url_transport_error(self, mock_get):
        mock_get.side_effect = requests.Timeout("slow")

        with pytest.raises(ImageFetchError):
            ImageLoader().load_url("https://cdn.example.com/v.jpg")

    def test_load_storage_without_store(self):
        with pytest.raises(ImageFetchError):
            ImageLoader().load_storage("v.jpg")
