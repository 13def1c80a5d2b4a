import base64
import io
import os

import pytest
from PIL import Image

from config import ConfigurationManager
from voucher_ocr.model_inference import ReplayBackend


API_KEY_VARS = ("GOOGLE_GENERATIVE_AI_API_KEY", "OPENROUTER_API_KEY")


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch):
    """Every test starts from the shipped settings.yaml and no credentials."""
    monkeypatch.delenv("VOUCHER_OCR_CONFIG", raising=False)
    for name in [n for n in os.environ if n.startswith("VOUCHER_OCR__")]:
        monkeypatch.delenv(name)
    for name in API_KEY_VARS:
        monkeypatch.delenv(name, raising=False)
    ConfigurationManager.reset()
    yield
    ConfigurationManager.reset()


@pytest.fixture()
def api_keys(monkeypatch):
    monkeypatch.setenv("GOOGLE_GENERATIVE_AI_API_KEY", "test-google-key")
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-openrouter-key")


def make_image_bytes(color=(200, 30, 30), image_format="JPEG", size=(24, 16)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=image_format)
    return buffer.getvalue()


@pytest.fixture()
def jpeg_bytes() -> bytes:
    return make_image_bytes()


@pytest.fixture()
def jpeg_b64(jpeg_bytes) -> str:
    return base64.b64encode(jpeg_bytes).decode("ascii")


@pytest.fixture()
def replay_backend() -> ReplayBackend:
    return ReplayBackend()


@pytest.fixture()
def image_factory():
    """Build distinct test images: image_factory(color, image_format)."""
    return make_image_bytes
